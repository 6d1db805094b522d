import math
from typing import Any, Optional

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLabel, QPushButton,
                             QTableWidget, QTableWidgetItem, QHeaderView, QStackedLayout,
                             QSizePolicy)
from PyQt6.QtCore import Qt, QRect, QRectF, QPointF, QBuffer, QByteArray, QIODevice
from PyQt6.QtGui import QPainter, QColor, QFont, QPen, QPainterPath

from core.models.reporting import Chart, ChartType
from core.rendering import (ChartRenderer, RenderModel, Placeholder, RenderState, KpiTile,
                            CartesianChart, DonutChart, ComboChart, TableView, HeatmapGrid,
                            GaugeDial, HEATMAP_HOURS)
from core.utils.formatting import format_grouped

PALETTE = [QColor("#3498db"), QColor("#e67e22"), QColor("#2ecc71"), QColor("#9b59b6"),
           QColor("#f1c40f"), QColor("#e74c3c"), QColor("#1abc9c"), QColor("#d35400")]
AXIS_COLOR = QColor("#bdc3c7")
GRID_COLOR = QColor("#ecf0f1")
LABEL_COLOR = QColor("#7f8c8d")
TEXT_COLOR = QColor("#2c3e50")
TARGET_COLOR = QColor("#e74c3c")


def format_axis_val(val: float) -> str:
    if abs(val) >= 1000000:
        return f"{val/1000000:.1f}M"
    if abs(val) >= 1000:
        return f"{val/1000:.1f}k"
    if val == int(val):
        return f"{int(val)}"
    return f"{val:.1f}"


class ChartCanvas(QWidget):
    """QPainter surface for every render model except tables."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.model: Optional[RenderModel] = None
        self.setMinimumHeight(80)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)

    def set_model(self, model: Optional[RenderModel]):
        self.model = model
        self.update()

    def paintEvent(self, event):
        if self.model is None:
            return
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painters = {
            Placeholder: self._paint_placeholder,
            KpiTile: self._paint_kpi,
            CartesianChart: self._paint_cartesian,
            DonutChart: self._paint_donut,
            ComboChart: self._paint_combo,
            HeatmapGrid: self._paint_heatmap,
            GaugeDial: self._paint_gauge,
        }
        paint = painters.get(type(self.model))
        if paint:
            paint(painter, self.model)
        painter.end()

    # --- Painters ---

    def _paint_placeholder(self, painter: QPainter, model: Placeholder):
        color = TARGET_COLOR if model.state == RenderState.ERROR else LABEL_COLOR
        painter.setPen(color)
        painter.setFont(QFont("Sans Serif", 9))
        painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter.value | Qt.TextFlag.TextWordWrap.value, model.message)

    def _paint_kpi(self, painter: QPainter, model: KpiTile):
        w, h = self.width(), self.height()
        painter.setPen(TEXT_COLOR)
        painter.setFont(QFont("Sans Serif", 24, QFont.Weight.Bold))
        value_rect = QRect(0, 0, w, int(h * 0.55))
        painter.drawText(value_rect, Qt.AlignmentFlag.AlignHCenter | Qt.AlignmentFlag.AlignBottom, model.text)

        y = int(h * 0.6)
        if model.show_trend and model.change_text:
            trend_color = {"up": QColor("#27ae60"), "down": TARGET_COLOR}.get(model.trend, LABEL_COLOR)
            arrow = {"up": "▲", "down": "▼"}.get(model.trend, "")
            painter.setPen(trend_color)
            painter.setFont(QFont("Sans Serif", 10, QFont.Weight.Bold))
            painter.drawText(QRect(0, y, w, 20), Qt.AlignmentFlag.AlignCenter, f"{arrow} {model.change_text}".strip())
            y += 24

        if model.progress is not None:
            bar_w = int(w * 0.7)
            bar = QRect((w - bar_w) // 2, y, bar_w, 8)
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(GRID_COLOR)
            painter.drawRoundedRect(bar, 4, 4)
            painter.setBrush(QColor("#27ae60") if model.achieved else PALETTE[0])
            painter.drawRoundedRect(QRect(bar.x(), y, int(bar_w * model.progress / 100), 8), 4, 4)
            painter.setPen(LABEL_COLOR)
            painter.setFont(QFont("Sans Serif", 8))
            painter.drawText(QRect(0, y + 10, w, 18), Qt.AlignmentFlag.AlignCenter,
                             self.tr("{p:.0f}% of target {t}").format(p=model.progress, t=format_grouped(model.target)))

    def _axes(self, painter: QPainter, axis_max: float, m_l, m_t, c_w, c_h, horizontal=False):
        painter.setFont(QFont("Sans Serif", 8))
        for i in range(5):
            val = axis_max * (i / 4)
            if horizontal:
                px = m_l + (val / axis_max) * c_w
                painter.setPen(QPen(GRID_COLOR, 1))
                painter.drawLine(int(px), m_t, int(px), m_t + c_h)
                painter.setPen(LABEL_COLOR)
                painter.drawText(int(px) - 30, m_t + c_h + 2, 60, 16, Qt.AlignmentFlag.AlignCenter, format_axis_val(val))
            else:
                py = m_t + c_h - (val / axis_max) * c_h
                painter.setPen(QPen(GRID_COLOR, 1))
                painter.drawLine(m_l, int(py), m_l + c_w, int(py))
                painter.setPen(LABEL_COLOR)
                painter.drawText(0, int(py) - 10, m_l - 8, 20, Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter, format_axis_val(val))
        painter.setPen(QPen(AXIS_COLOR, 1))
        painter.drawLine(m_l, m_t + c_h, m_l + c_w, m_t + c_h)
        painter.drawLine(m_l, m_t, m_l, m_t + c_h)

    def _paint_cartesian(self, painter: QPainter, model: CartesianChart):
        w, h = self.width(), self.height()
        m_l, m_r, m_t, m_b = (110 if model.horizontal else 50), 20, 15, 40
        c_w, c_h = max(w - m_l - m_r, 10), max(h - m_t - m_b, 10)
        points = model.points
        axis_max = (model.max_value or 1) * 1.1
        if model.relative:
            axis_max = 100.0
        total = sum(p.value for p in points) or 1

        self._axes(painter, axis_max, m_l, m_t, c_w, c_h, horizontal=model.horizontal)
        color = PALETTE[0]

        def scaled(v):
            return (v / total * 100) if model.relative else v

        if model.horizontal:
            slot = c_h / len(points)
            bar_h = min(slot * 0.7, 40)
            painter.setFont(QFont("Sans Serif", 7))
            for i, p in enumerate(points):
                by = m_t + i * slot + (slot - bar_h) / 2
                bw = (scaled(p.value) / axis_max) * c_w
                rect = QRect(m_l, int(by), int(bw), int(bar_h))
                painter.setPen(Qt.PenStyle.NoPen)
                painter.setBrush(color)
                painter.drawRect(rect)
                painter.setPen(TEXT_COLOR)
                label = painter.fontMetrics().elidedText(p.name, Qt.TextElideMode.ElideRight, m_l - 8)
                painter.drawText(0, int(by), m_l - 6, int(bar_h), Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter, label)
                if model.show_data_labels:
                    painter.drawText(rect.right() + 4, int(by), 60, int(bar_h), Qt.AlignmentFlag.AlignVCenter, format_axis_val(p.value))
            return

        slot = c_w / len(points)
        xs = [m_l + i * slot + slot / 2 for i in range(len(points))]
        ys = [m_t + c_h - (scaled(p.value) / axis_max) * c_h for p in points]

        if model.kind is ChartType.COLUMN:
            bar_w = min(slot * 0.7, 60)
            for x, y in zip(xs, ys):
                rect = QRect(int(x - bar_w / 2), int(y), int(bar_w), int(m_t + c_h - y))
                painter.setPen(Qt.PenStyle.NoPen)
                painter.setBrush(color)
                painter.drawRect(rect)
        else:
            path = QPainterPath(QPointF(xs[0], ys[0]))
            for i in range(1, len(xs)):
                if model.smooth:
                    cx = (xs[i - 1] + xs[i]) / 2
                    path.cubicTo(QPointF(cx, ys[i - 1]), QPointF(cx, ys[i]), QPointF(xs[i], ys[i]))
                else:
                    path.lineTo(QPointF(xs[i], ys[i]))
            if model.kind is ChartType.AREA:
                fill = QPainterPath(path)
                fill.lineTo(QPointF(xs[-1], m_t + c_h))
                fill.lineTo(QPointF(xs[0], m_t + c_h))
                fill.closeSubpath()
                area = QColor(color)
                area.setAlpha(70)
                painter.fillPath(fill, area)
            painter.setPen(QPen(color, 2))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawPath(path)
            for x, y in zip(xs, ys):
                if model.show_points:
                    painter.setBrush(color)
                    painter.drawEllipse(QPointF(x, y), 3.5, 3.5)

        painter.setFont(QFont("Sans Serif", 7))
        metrics = painter.fontMetrics()
        for x, y, p in zip(xs, ys, points):
            painter.setPen(TEXT_COLOR)
            label = metrics.elidedText(p.name, Qt.TextElideMode.ElideRight, int(slot) - 2)
            painter.drawText(int(x - slot / 2), m_t + c_h + 18, int(slot), 16, Qt.AlignmentFlag.AlignCenter, label)
            if model.show_data_labels:
                painter.drawText(int(x) - 30, int(y) - 16, 60, 14, Qt.AlignmentFlag.AlignCenter, format_axis_val(p.value))

        if model.target_line is not None:
            ty = m_t + c_h - (model.target_line / axis_max) * c_h
            painter.setPen(QPen(TARGET_COLOR, 1.5, Qt.PenStyle.DashLine))
            painter.drawLine(m_l, int(ty), m_l + c_w, int(ty))
            painter.drawText(m_l + c_w - 80, int(ty) - 14, 80, 12, Qt.AlignmentFlag.AlignRight,
                             self.tr("Target: {v}").format(v=format_axis_val(model.target_line)))

    def _paint_donut(self, painter: QPainter, model: DonutChart):
        w, h = self.width(), self.height()
        legend_w = 160 if model.show_legend else 0
        chart_w = w - legend_w
        radius = max(min(chart_w, h) // 2 - 20, 10)
        cx, cy = chart_w // 2, h // 2
        rect = QRect(cx - radius, cy - radius, radius * 2, radius * 2)

        start_angle = 90 * 16
        for i, s in enumerate(model.slices):
            span = int((s.value / model.total) * 360 * 16) if model.total else 0
            painter.setBrush(PALETTE[i % len(PALETTE)])
            painter.setPen(QPen(Qt.GlobalColor.white, 1))
            painter.drawPie(rect, start_angle, span)
            if model.show_data_labels and s.percent > 8:
                mid = math.radians((start_angle + span / 2) / 16.0)
                lx = cx + radius * 0.8 * math.cos(mid)
                ly = cy - radius * 0.8 * math.sin(mid)
                painter.setPen(Qt.GlobalColor.white)
                painter.setFont(QFont("Sans Serif", 7, QFont.Weight.Bold))
                painter.drawText(int(lx) - 30, int(ly) - 8, 60, 16, Qt.AlignmentFlag.AlignCenter, f"{s.percent:.1f}%")
            start_angle += span

        # Donut hole
        hole = int(radius * 0.55)
        painter.setBrush(self.palette().window())
        painter.setPen(Qt.PenStyle.NoPen)
        painter.drawEllipse(QPointF(cx, cy), hole, hole)
        if model.show_center_text:
            painter.setPen(TEXT_COLOR)
            painter.setFont(QFont("Sans Serif", 12, QFont.Weight.Bold))
            painter.drawText(QRect(cx - hole, cy - 12, hole * 2, 24), Qt.AlignmentFlag.AlignCenter, model.total_text)

        if model.show_legend:
            painter.setFont(QFont("Sans Serif", 8))
            metrics = painter.fontMetrics()
            y = max(10, cy - len(model.slices) * 11)
            for i, s in enumerate(model.slices):
                painter.setBrush(PALETTE[i % len(PALETTE)])
                painter.setPen(QPen(QColor("#cbd5e1"), 1))
                painter.drawRect(chart_w + 5, y + 4, 12, 12)
                painter.setPen(QColor("#334155"))
                label = metrics.elidedText(s.name, Qt.TextElideMode.ElideRight, legend_w - 75)
                painter.drawText(chart_w + 22, y, legend_w - 75, 20, Qt.AlignmentFlag.AlignVCenter, label)
                painter.drawText(w - 55, y, 50, 20, Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter, f"({s.percent:.1f}%)")
                y += 22

    def _paint_combo(self, painter: QPainter, model: ComboChart):
        w, h = self.width(), self.height()
        m_l, m_r, m_t, m_b = 50, 50, 15, 40
        c_w, c_h = max(w - m_l - m_r, 10), max(h - m_t - m_b, 10)
        points = model.points
        bar_max = (max([p.value for p in points] + [0]) or 1) * 1.1
        line_max = (max([p.count or 0 for p in points] + [0]) or 1) * 1.1
        self._axes(painter, bar_max, m_l, m_t, c_w, c_h)

        slot = c_w / len(points)
        bar_w = min(slot * 0.6, 50)
        line_pts = []
        for i, p in enumerate(points):
            x = m_l + i * slot + slot / 2
            by = m_t + c_h - (p.value / bar_max) * c_h
            rect = QRect(int(x - bar_w / 2), int(by), int(bar_w), int(m_t + c_h - by))
            painter.setPen(Qt.PenStyle.NoPen)
            painter.setBrush(PALETTE[0])
            painter.drawRect(rect)
            line_pts.append(QPointF(x, m_t + c_h - ((p.count or 0) / line_max) * c_h))
            painter.setPen(TEXT_COLOR)
            painter.setFont(QFont("Sans Serif", 7))
            label = painter.fontMetrics().elidedText(p.name, Qt.TextElideMode.ElideRight, int(slot) - 2)
            painter.drawText(int(x - slot / 2), m_t + c_h + 4, int(slot), 16, Qt.AlignmentFlag.AlignCenter, label)

        painter.setPen(QPen(PALETTE[1], 2))
        for a, b in zip(line_pts, line_pts[1:]):
            painter.drawLine(a, b)
        painter.setBrush(PALETTE[1])
        for pt in line_pts:
            painter.drawEllipse(pt, 3, 3)

        # Right axis for counts
        painter.setPen(LABEL_COLOR)
        painter.setFont(QFont("Sans Serif", 8))
        for i in range(5):
            val = line_max * (i / 4)
            py = m_t + c_h - (val / line_max) * c_h
            painter.drawText(m_l + c_w + 6, int(py) - 10, m_r - 6, 20, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter, format_axis_val(val))

    def _paint_heatmap(self, painter: QPainter, model: HeatmapGrid):
        w, h = self.width(), self.height()
        m_l, m_t, m_b = 36, 4, 18
        cell_w = (w - m_l - 4) / HEATMAP_HOURS
        cell_h = (h - m_t - m_b) / len(model.days)
        painter.setFont(QFont("Sans Serif", 7))
        for d, day in enumerate(model.days):
            y = m_t + d * cell_h
            painter.setPen(LABEL_COLOR)
            painter.drawText(0, int(y), m_l - 4, int(cell_h), Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter, self.tr(day))
            for hour in range(HEATMAP_HOURS):
                color = QColor(PALETTE[0])
                color.setAlphaF(model.intensity(d, hour))
                painter.fillRect(QRectF(m_l + hour * cell_w + 1, y + 1, cell_w - 2, cell_h - 2), color)
        painter.setPen(LABEL_COLOR)
        for hour in range(0, HEATMAP_HOURS, 3):
            painter.drawText(int(m_l + hour * cell_w), h - m_b, int(cell_w * 3), m_b, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter, f"{hour}h")

    def _paint_gauge(self, painter: QPainter, model: GaugeDial):
        w, h = self.width(), self.height()
        radius = max(min(w // 2, h - 30) - 10, 10)
        cx, cy = w // 2, h - 25
        rect = QRectF(cx - radius, cy - radius, radius * 2, radius * 2)

        arc_pen = QPen(GRID_COLOR, 14)
        arc_pen.setCapStyle(Qt.PenCapStyle.FlatCap)
        painter.setPen(arc_pen)
        painter.drawArc(rect, 0, 180 * 16)
        arc_pen.setColor(PALETTE[0])
        painter.setPen(arc_pen)
        painter.drawArc(rect, 180 * 16, -int(model.percentage / 100 * 180 * 16))

        if model.target is not None and model.maximum > model.minimum:
            frac = min(max((model.target - model.minimum) / (model.maximum - model.minimum), 0.0), 1.0)
            angle = math.pi * (1 - frac)
            painter.setPen(QPen(TARGET_COLOR, 2))
            painter.drawLine(QPointF(cx + (radius - 10) * math.cos(angle), cy - (radius - 10) * math.sin(angle)),
                             QPointF(cx + (radius + 10) * math.cos(angle), cy - (radius + 10) * math.sin(angle)))

        painter.setPen(TEXT_COLOR)
        painter.setFont(QFont("Sans Serif", 16, QFont.Weight.Bold))
        painter.drawText(QRect(cx - radius, cy - 30, radius * 2, 28), Qt.AlignmentFlag.AlignCenter, model.text)
        painter.setPen(LABEL_COLOR)
        painter.setFont(QFont("Sans Serif", 8))
        painter.drawText(int(cx - radius - 10), cy + 4, 40, 16, Qt.AlignmentFlag.AlignCenter, format_axis_val(model.minimum))
        painter.drawText(int(cx + radius - 30), cy + 4, 40, 16, Qt.AlignmentFlag.AlignCenter, format_axis_val(model.maximum))


class TableChartWidget(QWidget):
    """Paginated table with optional summary row."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.model: Optional[TableView] = None
        self.page_index = 0
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        self.table = QTableWidget()
        self.table.setEditTriggers(QTableWidget.EditTrigger.NoEditTriggers)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.table.verticalHeader().setVisible(False)
        layout.addWidget(self.table)

        nav = QHBoxLayout()
        self.btn_prev = QPushButton("‹")
        self.btn_prev.clicked.connect(lambda: self.set_page(self.page_index - 1))
        self.btn_next = QPushButton("›")
        self.btn_next.clicked.connect(lambda: self.set_page(self.page_index + 1))
        self.lbl_page = QLabel()
        nav.addStretch()
        nav.addWidget(self.btn_prev)
        nav.addWidget(self.lbl_page)
        nav.addWidget(self.btn_next)
        layout.addLayout(nav)

    def set_model(self, model: TableView):
        self.model = model
        self.page_index = 0
        self._fill()

    def set_page(self, index: int):
        if not self.model:
            return
        self.page_index = min(max(index, 0), self.model.page_count - 1)
        self._fill()

    def _fill(self):
        model = self.model
        page_rows = model.page(self.page_index)
        extra = 1 if model.summary else 0
        self.table.clear()
        self.table.setColumnCount(len(model.columns))
        self.table.setHorizontalHeaderLabels([c.label for c in model.columns])
        self.table.setRowCount(len(page_rows) + extra)
        for r, row in enumerate(page_rows):
            for c, text in enumerate(row):
                self.table.setItem(r, c, QTableWidgetItem(text))
        if model.summary:
            bold = QFont()
            bold.setBold(True)
            for c, text in enumerate(model.summary):
                item = QTableWidgetItem(text)
                item.setFont(bold)
                self.table.setItem(len(page_rows), c, item)
        self.lbl_page.setText(self.tr("Page {n} of {total}").format(n=self.page_index + 1, total=model.page_count))
        self.btn_prev.setEnabled(self.page_index > 0)
        self.btn_next.setEnabled(self.page_index < model.page_count - 1)


class ChartView(QWidget):
    """Renders one chart: canvas for graphical models, a table widget for tables."""

    def __init__(self, parent=None, renderer: Optional[ChartRenderer] = None):
        super().__init__(parent)
        self.renderer = renderer or ChartRenderer()
        self.model: Optional[RenderModel] = None
        self.stack = QStackedLayout(self)
        self.canvas = ChartCanvas()
        self.table = TableChartWidget()
        self.stack.addWidget(self.canvas)
        self.stack.addWidget(self.table)

    def show_chart(self, chart: Chart, data: Any, error: Optional[str] = None, loading: bool = False) -> RenderModel:
        self.model = self.renderer.render(chart, data, error=error, loading=loading)
        if isinstance(self.model, TableView):
            self.table.set_model(self.model)
            self.stack.setCurrentWidget(self.table)
        else:
            self.canvas.set_model(self.model)
            self.stack.setCurrentWidget(self.canvas)
        return self.model

    def to_png(self) -> bytes:
        """Current surface as PNG bytes (used for image and PDF export)."""
        pixmap = self.grab()
        data = QByteArray()
        buffer = QBuffer(data)
        buffer.open(QIODevice.OpenModeFlag.WriteOnly)
        pixmap.save(buffer, "PNG")
        buffer.close()
        return bytes(data)
