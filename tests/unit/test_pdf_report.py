import pytest
from PyQt6.QtCore import QBuffer, QByteArray, QIODevice
from PyQt6.QtGui import QColor, QImage

from core.exporters.pdf_report import ChartPage, PdfReportGenerator
from core.models.reporting import Chart, Report


@pytest.fixture
def generator(qapp):
    return PdfReportGenerator()


def png_bytes() -> bytes:
    image = QImage(40, 20, QImage.Format.Format_RGB32)
    image.fill(QColor("#3b82f6"))
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    image.save(buffer, "PNG")
    buffer.close()
    return bytes(data)


def test_single_chart_from_data(generator):
    chart = Chart(id="c1", title="Scores by Agent")
    pdf = generator.generate_chart(ChartPage(chart, [{"name": "Alice", "value": 85}]))
    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 500


def test_single_chart_without_data(generator):
    pdf = generator.generate_chart(ChartPage(Chart(id="c1", title="Empty"), None))
    assert pdf.startswith(b"%PDF")


def test_chart_with_image(generator):
    pdf = generator.generate_chart(ChartPage(Chart(id="c1", title="Picture"), image=png_bytes()))
    assert pdf.startswith(b"%PDF")


def test_report_one_page_per_chart(generator):
    report = Report(id="r1", title="Weekly <Quality>", description="All agents",
                    charts=[Chart(id="c1", title="A"), Chart(id="c2", title="B")])
    pages = [ChartPage(report.charts[1], {"value": 2}), ChartPage(report.charts[0], {"value": 1})]
    pdf = generator.generate_report(report, pages)
    assert pdf.startswith(b"%PDF")
    assert b"/Count 2" in pdf


def test_report_without_charts(generator):
    pdf = generator.generate_report(Report(id="r1", title="Nothing"), [])
    assert pdf.startswith(b"%PDF")
