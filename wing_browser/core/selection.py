from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from .throttle import GestureThrottle
from .viewport import AxisScales

logger = logging.getLogger(__name__)

Listener = Callable[[frozenset], None]


@dataclass(frozen=True)
class BrushRect:
    """
    Axis-aligned rectangle given by two corners, in either order.

    The rectangle is stored as drawn; normalized() swaps the corners so that
    x0 <= x1 and y0 <= y1.
    """

    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def is_valid(self) -> bool:
        return bool(np.all(np.isfinite([self.x0, self.y0, self.x1, self.y1])))

    def normalized(self) -> BrushRect:
        return BrushRect(
            min(self.x0, self.x1),
            min(self.y0, self.y1),
            max(self.x0, self.x1),
            max(self.y0, self.y1),
        )

    def inverse_projected(self, scales: AxisScales) -> BrushRect:
        """Map screen corners back to data space and normalise the result."""
        return BrushRect(
            float(scales.x.invert(self.x0)),
            float(scales.y.invert(self.y0)),
            float(scales.x.invert(self.x1)),
            float(scales.y.invert(self.y1)),
        ).normalized()

    def contains(self, x, y) -> np.ndarray:
        r = self.normalized()
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        return (x >= r.x0) & (x <= r.x1) & (y >= r.y0) & (y <= r.y1)

    def to_dict(self) -> Dict[str, float]:
        return {"x0": self.x0, "y0": self.y0, "x1": self.x1, "y1": self.y1}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional[BrushRect]:
        if not data:
            return None
        try:
            return cls(float(data["x0"]), float(data["y0"]), float(data["x1"]), float(data["y1"]))
        except (KeyError, TypeError, ValueError):
            return None

    @classmethod
    def from_plotly(
        cls,
        selected_data: Optional[Dict[str, Any]],
        x_key: Optional[str] = None,
        y_key: Optional[str] = None,
    ) -> Optional[BrushRect]:
        """
        Read the box of a plotly `selectedData` payload (already in data space).
        Lasso selections and empty payloads give None. With explicit axis keys
        only a box drawn on that subplot is read.
        """
        if not selected_data:
            return None
        box = selected_data.get("range")
        if not box:
            return None
        # Subplot figures report their axes as x2/y2, x3/y3, ...
        x_key = x_key or next((k for k in box if k.startswith("x")), None)
        y_key = y_key or next((k for k in box if k.startswith("y")), None)
        xs, ys = box.get(x_key), box.get(y_key)
        if not xs or not ys or len(xs) < 2 or len(ys) < 2:
            return None
        try:
            return cls(float(xs[0]), float(ys[0]), float(xs[1]), float(ys[1]))
        except (TypeError, ValueError):
            return None


def _same_selection(a: Iterable[str], b: Iterable[str]) -> bool:
    return sorted(a) == sorted(b)


class SelectionCoordinator:
    """
    Owns the set of highlighted specimen ids shared by every view.

    - set_from_brush: rectangle (screen space) -> ids of visible records inside it
    - toggle: click-to-select, flips a single id
    - apply_filter_change: keeps the selection consistent with the visible set
      without a new brush

    Subscribers are notified only when the selection actually changes.
    The coordinator itself renders nothing.
    """

    def __init__(
        self,
        selection: Iterable[str] = (),
        brush: Optional[BrushRect] = None,
        brush_source: Optional[str] = None,
        revision: int = 0,
        throttle: Optional[GestureThrottle] = None,
    ) -> None:
        self._selection: frozenset = frozenset(str(s) for s in selection)
        self._brush: Optional[BrushRect] = brush
        self._brush_source: Optional[str] = brush_source
        self.revision = revision
        self._listeners: List[Listener] = []
        self._throttle = throttle or GestureThrottle()

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------
    @property
    def current_selection(self) -> frozenset:
        return self._selection

    @property
    def brush(self) -> Optional[BrushRect]:
        """Retained brush rectangle, in data space."""
        return self._brush

    @property
    def brush_source(self) -> Optional[str]:
        """Id of the view the retained brush was drawn on."""
        return self._brush_source

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------
    def set_from_brush(
        self,
        rect: Optional[BrushRect],
        axis_scales: AxisScales,
        visible_records: pd.DataFrame,
        source: Optional[str] = None,
    ) -> bool:
        """
        Select every visible record whose (x, y) lies inside the rectangle.
        A missing or malformed rectangle clears the selection.
        """
        if rect is None or not rect.is_valid:
            self._brush = None
            self._brush_source = None
            return self._publish(frozenset())

        data_rect = rect.inverse_projected(axis_scales)
        self._brush = data_rect
        self._brush_source = source
        return self._publish(self._ids_inside(data_rect, visible_records))

    def brush_move(
        self,
        rect: Optional[BrushRect],
        axis_scales: AxisScales,
        visible_records: pd.DataFrame,
        source: Optional[str] = None,
    ) -> None:
        """Continuous brushing, applied at most once per frame."""
        self._throttle.submit(
            rect, lambda r: self.set_from_brush(r, axis_scales, visible_records, source)
        )

    def brush_end(
        self,
        rect: Optional[BrushRect],
        axis_scales: AxisScales,
        visible_records: pd.DataFrame,
        source: Optional[str] = None,
    ) -> bool:
        """Release: the final rectangle is always applied."""
        self._throttle.cancel()
        return self.set_from_brush(rect, axis_scales, visible_records, source)

    def toggle(self, specimen_id: str) -> bool:
        # An explicit click turns the selection into an id set; the old
        # rectangle no longer describes it.
        self._brush = None
        self._brush_source = None
        return self._publish(self._selection ^ {str(specimen_id)})

    def clear(self) -> bool:
        self._brush = None
        self._brush_source = None
        self._throttle.cancel()
        return self._publish(frozenset())

    def apply_filter_change(self, visible_records: pd.DataFrame) -> bool:
        """
        Re-derive the selection after the visible set changed: from the
        retained brush when there is one, otherwise by dropping ids that are
        no longer visible.
        """
        if self._brush is not None:
            return self._publish(self._ids_inside(self._brush, visible_records))

        visible_ids = set(visible_records["specimen_id"].astype(str)) if not visible_records.empty else set()
        return self._publish(frozenset(s for s in self._selection if s in visible_ids))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    @staticmethod
    def _ids_inside(rect: BrushRect, records: pd.DataFrame) -> frozenset:
        if records is None or records.empty:
            return frozenset()
        inside = rect.contains(records["x"].to_numpy(dtype=float), records["y"].to_numpy(dtype=float))
        return frozenset(records["specimen_id"].astype(str).to_numpy()[inside].tolist())

    def _publish(self, new_selection: frozenset) -> bool:
        if _same_selection(new_selection, self._selection):
            return False

        self._selection = frozenset(new_selection)
        self.revision += 1
        logger.debug(
            "Selection changed",
            extra={"n_selected": len(self._selection), "revision": self.revision},
        )
        for listener in list(self._listeners):
            listener(self._selection)
        return True

    # ------------------------------------------------------------------
    # (De)serialisation for dcc.Store
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            "selection": sorted(self._selection),
            "brush": self._brush.to_dict() if self._brush is not None else None,
            "brush_source": self._brush_source,
            "revision": self.revision,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> SelectionCoordinator:
        if not data:
            return cls()
        return cls(
            selection=data.get("selection") or (),
            brush=BrushRect.from_dict(data.get("brush")),
            brush_source=data.get("brush_source"),
            revision=int(data.get("revision", 0)),
        )


def selection_opacity(
    ids: Iterable[str],
    selection: frozenset,
    selected: float = 1.0,
    dimmed: float = 0.4,
    neutral: float = 0.8,
) -> List[float]:
    """
    Per-element opacity for a consumer view: a shared neutral value when
    nothing is selected, otherwise full for selected ids and dimmed for the rest.
    """
    if not selection:
        return [neutral for _ in ids]
    return [selected if str(i) in selection else dimmed for i in ids]
