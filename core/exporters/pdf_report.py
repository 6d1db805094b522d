"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/exporters/pdf_report.py
Version:        1.0.0
Description:    PDF export using ReportLab. A single chart, or a whole report
                with one page per chart in report order. Each page carries
                the rendered chart image when one is supplied, otherwise the
                chart data as a table.
------------------------------------------------------------------------------
"""

import io
import xml.sax.saxutils as saxutils
from dataclasses import dataclass
from typing import Any, List, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Image, PageBreak, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from PyQt6.QtCore import QCoreApplication, QDateTime, QLocale

from core.logger import get_logger
from core.models.reporting import Chart, Report
from core.normalizer import rows
from core.rendering import table_columns
from core.utils.formatting import format_cell

logger = get_logger("export")

MAX_TABLE_ROWS = 200


@dataclass
class ChartPage:
    """One chart to print: its definition, its data and an optional PNG of its surface."""
    chart: Chart
    data: Any = None
    image: Optional[bytes] = None
    subtitle: str = ""


class PdfReportGenerator:
    """Generates PDF documents from charts and reports."""

    def __init__(self, pagesize=landscape(A4)):
        self.pagesize = pagesize
        self.styles = getSampleStyleSheet()
        self.locale = QLocale()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Heading1'],
            fontSize=18,
            spaceAfter=0.3 * cm,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#2c3e50")
        ))
        self.styles.add(ParagraphStyle(
            name='ReportSubTitle',
            parent=self.styles['Normal'],
            fontSize=10,
            spaceAfter=0.6 * cm,
            alignment=TA_CENTER,
            textColor=colors.HexColor("#7f8c8d")
        ))
        self.styles.add(ParagraphStyle(
            name='ChartTitle',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceAfter=0.2 * cm,
            textColor=colors.HexColor("#2c3e50")
        ))

    def generate_chart(self, page: ChartPage) -> bytes:
        """Single chart on one page."""
        return self._build(page.chart.title or self.tr("Chart"), [page], with_cover=False)

    def generate_report(self, report: Report, pages: List[ChartPage]) -> bytes:
        """
        Whole report: a header on the first page, then one page per chart.
        `pages` must follow report order; charts without a page are skipped.
        """
        by_id = {p.chart.id: p for p in pages}
        ordered = [by_id[c.id] for c in report.charts if c.id in by_id]
        logger.info(f"PDF export of report '{report.title}': {len(ordered)} pages")
        return self._build(report.title or self.tr("Report"), ordered, with_cover=True,
                           description=report.description)

    def _build(self, title: str, pages: List[ChartPage], with_cover: bool, description: str = "") -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=self.pagesize,
            rightMargin=1.5 * cm,
            leftMargin=1.5 * cm,
            topMargin=1.5 * cm,
            bottomMargin=2 * cm,
            title=title,
        )
        story = []
        if with_cover:
            story.append(Paragraph(saxutils.escape(title), self.styles['ReportTitle']))
            now_str = self.locale.toString(QDateTime.currentDateTime(), QLocale.FormatType.ShortFormat)
            meta = self.tr("Generated: {date}").format(date=now_str)
            if description:
                meta = f"{saxutils.escape(description)}<br/>{meta}"
            story.append(Paragraph(meta, self.styles['ReportSubTitle']))

        for index, page in enumerate(pages):
            if index > 0:
                story.append(PageBreak())
            story.extend(self._chart_flowables(page, doc.width, doc.height))

        if not pages:
            story.append(Paragraph(self.tr("No charts"), self.styles['Normal']))

        doc.build(story, onFirstPage=self._footer, onLaterPages=self._footer)
        return buffer.getvalue()

    def _chart_flowables(self, page: ChartPage, width: float, height: float) -> list:
        flow = [Paragraph(saxutils.escape(page.chart.title or self.tr("Untitled chart")), self.styles['ChartTitle'])]
        if page.subtitle:
            flow.append(Paragraph(saxutils.escape(page.subtitle), self.styles['Normal']))
        flow.append(Spacer(1, 0.4 * cm))

        if page.image:
            img = Image(io.BytesIO(page.image), width=width, height=height * 0.7, kind='proportional')
            img.hAlign = 'CENTER'
            flow.append(img)
            return flow

        table = self._data_table(page.chart, page.data, width)
        if table is None:
            flow.append(Paragraph(self.tr("No data available"), self.styles['Normal']))
        else:
            flow.append(table)
        return flow

    def _data_table(self, chart: Chart, data: Any, width: float) -> Optional[Table]:
        table_rows = rows(data)
        columns = table_columns(chart, table_rows)
        if not table_rows or not columns:
            return None
        table_data = [[c.label for c in columns]]
        for row in table_rows[:MAX_TABLE_ROWS]:
            table_data.append([format_cell(row.get(c.field)) for c in columns])

        col_widths = [width / len(columns)] * len(columns)
        t = Table(table_data, hAlign='LEFT', colWidths=col_widths, repeatRows=1)
        t.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor("#f8f9fa")),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.HexColor("#2c3e50")),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 8),
            ('TOPPADDING', (0, 0), (-1, -1), 4),
            ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ]))
        for i in range(2, len(table_data), 2):
            t.setStyle(TableStyle([('BACKGROUND', (0, i), (-1, i), colors.HexColor("#f9fbff"))]))
        return t

    def _footer(self, canvas, doc):
        width, _height = doc.pagesize
        canvas.saveState()
        canvas.setFont('Helvetica', 8)
        canvas.setStrokeColor(colors.HexColor("#e2e8f0"))
        canvas.line(1.5 * cm, 1.5 * cm, width - 1.5 * cm, 1.5 * cm)
        canvas.drawCentredString(width / 2.0, 1 * cm, self.tr("Page {n}").format(n=canvas.getPageNumber()))
        canvas.drawRightString(width - 1.5 * cm, 1 * cm, "ChartDeck")
        canvas.restoreState()

    def tr(self, text: str) -> str:
        """Localized translation using Qt framework."""
        return QCoreApplication.translate("PdfReportGenerator", text)
