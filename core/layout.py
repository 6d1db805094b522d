"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/layout.py
Version:        1.0.0
Description:    Report Canvas Layout Engine. Keeps one rectangle per chart on
                a 12-column grid, applies drag/resize gestures with vertical
                compaction (collisions are resolved by pushing items down,
                never prevented) and emits the full arrangement when a
                gesture stops.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from core.logger import get_logger
from core.models.reporting import (
    GRID_COLUMNS, MAX_H, MAX_W, MIN_H, MIN_W, Chart, ChartLayoutEntry, LayoutRect,
)

logger = get_logger("layout")

LayoutCallback = Callable[[List[ChartLayoutEntry]], None]


@dataclass(frozen=True)
class GridSettings:
    cols: int = GRID_COLUMNS
    row_height: int = 80
    margin: Tuple[int, int] = (12, 12)
    container_padding: Tuple[int, int] = (0, 12)


@dataclass(frozen=True)
class PixelRect:
    x: int
    y: int
    width: int
    height: int


@dataclass
class _Item:
    id: str
    x: int
    y: int
    w: int
    h: int
    moved: bool = False

    def collides(self, other: "_Item") -> bool:
        if self.id == other.id:
            return False
        return (self.x < other.x + other.w and other.x < self.x + self.w
                and self.y < other.y + other.h and other.y < self.y + self.h)

    def rect(self) -> LayoutRect:
        return LayoutRect(x=self.x, y=self.y, w=self.w, h=self.h)


def _bottom(items: Iterable[_Item]) -> int:
    return max((i.y + i.h for i in items), default=0)


def _sorted(items: List[_Item]) -> List[_Item]:
    return sorted(items, key=lambda i: (i.y, i.x))


def _first_collision(items: Iterable[_Item], item: _Item) -> Optional[_Item]:
    for other in items:
        if other.collides(item):
            return other
    return None


def compact_vertical(items: List[_Item]) -> None:
    """
    Floats every item up as far as it goes, top-left first. An item that
    still overlaps a settled one is placed directly below it.
    """
    settled: List[_Item] = []
    for item in _sorted(items):
        item.y = min(_bottom(settled), item.y)
        while item.y > 0 and _first_collision(settled, replace(item, y=item.y - 1)) is None:
            item.y -= 1
        while True:
            hit = _first_collision(settled, item)
            if hit is None:
                break
            item.y = hit.y + hit.h
        item.y = max(item.y, 0)
        item.x = max(item.x, 0)
        item.moved = False
        settled.append(item)


def _move_item(items: List[_Item], item: _Item, x: Optional[int], y: Optional[int],
               user_action: bool, cols: int) -> None:
    """Moves `item` and cascades colliding items downward."""
    if (x is None or item.x == x) and (y is None or item.y == y):
        return
    old_y = item.y
    if x is not None:
        item.x = x
    if y is not None:
        item.y = y
    item.moved = True

    ordered = _sorted(items)
    if y is not None and old_y >= y:
        ordered.reverse()
    for other in [o for o in ordered if o.collides(item)]:
        if other.moved:
            continue
        _move_away(items, item, other, user_action, cols)


def _move_away(items: List[_Item], blocker: _Item, victim: _Item, user_action: bool, cols: int) -> None:
    if user_action:
        # Try to hop the victim above the dragged item if there is room
        candidate = _Item(id="__candidate__", x=victim.x, y=max(blocker.y - victim.h, 0), w=victim.w, h=victim.h)
        if _first_collision(items, candidate) is None:
            _move_item(items, victim, None, candidate.y, False, cols)
            return
    _move_item(items, victim, None, victim.y + 1, False, cols)


class GridLayoutEngine:
    """
    Layout state for one report canvas.

    Rectangles are loaded as stored (no compaction at rest). Gestures are
    ignored unless `can_edit`; when a drag or resize stops with a changed
    arrangement the full entry list is passed to `on_layout_change`.
    """

    def __init__(self, settings: Optional[GridSettings] = None, can_edit: bool = False,
                 on_layout_change: Optional[LayoutCallback] = None):
        self.settings = settings or GridSettings()
        self.can_edit = can_edit
        self.on_layout_change = on_layout_change
        self.container_width = 0
        self._items: List[_Item] = []
        self._gesture: Optional[Tuple[str, str, List[Tuple[int, int, int, int]]]] = None

    # --- State ---

    def load(self, entries: Iterable[ChartLayoutEntry]) -> None:
        self._items = []
        for entry in entries:
            r = entry.layout
            self._items.append(_Item(entry.chart_id, r.x, r.y, r.w, r.h))
        self._gesture = None

    def load_charts(self, charts: Iterable[Chart]) -> None:
        self.load(ChartLayoutEntry(chart_id=c.id, layout=c.layout) for c in charts if c.id)

    def entries(self) -> List[ChartLayoutEntry]:
        """One entry per chart, in load order."""
        return [ChartLayoutEntry(chart_id=i.id, layout=i.rect()) for i in self._items]

    def rect(self, chart_id: str) -> Optional[LayoutRect]:
        item = self._find(chart_id)
        return item.rect() if item else None

    def chart_ids(self) -> List[str]:
        return [i.id for i in self._items]

    def _find(self, chart_id: str) -> Optional[_Item]:
        for item in self._items:
            if item.id == chart_id:
                return item
        return None

    def _snapshot(self) -> List[Tuple[int, int, int, int]]:
        return [(i.x, i.y, i.w, i.h) for i in self._items]

    # --- Gestures ---

    def _begin(self, kind: str, chart_id: str) -> bool:
        if not self.can_edit:
            return False
        if self._find(chart_id) is None:
            logger.debug(f"{kind} ignored: unknown chart {chart_id}")
            return False
        self._gesture = (kind, chart_id, self._snapshot())
        return True

    def _active(self, kind: str, chart_id: str) -> Optional[_Item]:
        if not self._gesture or self._gesture[0] != kind or self._gesture[1] != chart_id:
            return None
        return self._find(chart_id)

    def _end(self, kind: str, chart_id: str) -> Optional[List[ChartLayoutEntry]]:
        if not self._gesture or self._gesture[0] != kind or self._gesture[1] != chart_id:
            return None
        before = self._gesture[2]
        self._gesture = None
        if self._snapshot() == before:
            return None
        entries = self.entries()
        logger.info(f"Layout changed by {kind} of {chart_id}: {len(entries)} rectangles")
        if self.on_layout_change:
            self.on_layout_change(entries)
        return entries

    def begin_drag(self, chart_id: str) -> bool:
        return self._begin("drag", chart_id)

    def drag_to(self, chart_id: str, x: int, y: int) -> bool:
        item = self._active("drag", chart_id)
        if item is None:
            return False
        x = min(max(int(x), 0), self.settings.cols - item.w)
        y = max(int(y), 0)
        _move_item(self._items, item, x, y, True, self.settings.cols)
        compact_vertical(self._items)
        return True

    def end_drag(self, chart_id: str) -> Optional[List[ChartLayoutEntry]]:
        return self._end("drag", chart_id)

    def begin_resize(self, chart_id: str) -> bool:
        return self._begin("resize", chart_id)

    def resize_to(self, chart_id: str, w: int, h: int) -> bool:
        """Bottom-right handle: the top-left corner stays fixed."""
        item = self._active("resize", chart_id)
        if item is None:
            return False
        item.w = max(min(max(int(w), MIN_W), MAX_W, self.settings.cols - item.x), MIN_W)
        item.x = min(item.x, self.settings.cols - item.w)
        item.h = min(max(int(h), MIN_H), MAX_H)
        compact_vertical(self._items)
        return True

    def end_resize(self, chart_id: str) -> Optional[List[ChartLayoutEntry]]:
        return self._end("resize", chart_id)

    def move(self, chart_id: str, x: int, y: int) -> Optional[List[ChartLayoutEntry]]:
        """Complete drag gesture in one call."""
        if not self.begin_drag(chart_id):
            return None
        self.drag_to(chart_id, x, y)
        return self.end_drag(chart_id)

    def resize(self, chart_id: str, w: int, h: int) -> Optional[List[ChartLayoutEntry]]:
        """Complete resize gesture in one call."""
        if not self.begin_resize(chart_id):
            return None
        self.resize_to(chart_id, w, h)
        return self.end_resize(chart_id)

    # --- Geometry ---

    def set_container_width(self, width: int) -> bool:
        """Returns True when the measured width changed."""
        width = int(width)
        if width <= 0 or width == self.container_width:
            return False
        self.container_width = width
        return True

    def column_width(self) -> float:
        mx = self.settings.margin[0]
        px = self.settings.container_padding[0]
        cols = self.settings.cols
        return max((self.container_width - mx * (cols - 1) - px * 2) / cols, 0.0)

    def to_pixels(self, rect: LayoutRect) -> PixelRect:
        col_w = self.column_width()
        mx, my = self.settings.margin
        px, py = self.settings.container_padding
        rh = self.settings.row_height
        return PixelRect(
            x=round((col_w + mx) * rect.x + px),
            y=round((rh + my) * rect.y + py),
            width=round(col_w * rect.w + max(0, rect.w - 1) * mx),
            height=round(rh * rect.h + max(0, rect.h - 1) * my),
        )

    def grid_position(self, left: float, top: float, w: int) -> Tuple[int, int]:
        """Pixel top-left to the nearest grid cell for an item of width `w`."""
        col_w = self.column_width()
        mx, my = self.settings.margin
        px, py = self.settings.container_padding
        x = round((left - px) / (col_w + mx)) if col_w + mx > 0 else 0
        y = round((top - py) / (self.settings.row_height + my))
        return min(max(x, 0), self.settings.cols - w), max(y, 0)

    def grid_size(self, width: float, height: float, x: int) -> Tuple[int, int]:
        """Pixel size to grid units, clamped to the rectangle limits."""
        col_w = self.column_width()
        mx, my = self.settings.margin
        w = round((width + mx) / (col_w + mx)) if col_w + mx > 0 else MIN_W
        h = round((height + my) / (self.settings.row_height + my))
        return (max(min(max(w, MIN_W), MAX_W, self.settings.cols - x), MIN_W),
                min(max(h, MIN_H), MAX_H))

    def container_height(self) -> int:
        rows = _bottom(self._items)
        if rows == 0:
            return 0
        my = self.settings.margin[1]
        py = self.settings.container_padding[1]
        return rows * (self.settings.row_height + my) - my + py * 2
