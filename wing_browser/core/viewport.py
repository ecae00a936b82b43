"""
Viewport projection and auto-zoom.

Data values go through a pair of base scales (one per axis, built once per
data-extent change, sharing one data-per-pixel ratio) and then through the
current pan/zoom transform:

    screen = scale * base(value) + translate

Manual gestures compose with the transform around their pixel anchor and
switch auto-zoom off; picking a new landmark letter (or resetting) switches
it back on. Auto-zoom frames every visible point carrying the target letter
and animates there once, then stays satisfied until the target changes.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np
import pandas as pd

from .throttle import GestureThrottle

logger = logging.getLogger(__name__)

SCALE_MIN = 0.5
SCALE_MAX = 20.0
DOMAIN_PADDING = 0.05
TRANSITION_SECONDS = 0.5

Extent = Tuple[float, float]


def _safe_extent(extent: Extent) -> Extent:
    lo, hi = float(extent[0]), float(extent[1])
    if not (np.isfinite(lo) and np.isfinite(hi)):
        return 0.0, 1.0
    if lo > hi:
        lo, hi = hi, lo
    return lo, hi


# -----------------------------------------------------------------------------
# Scales
# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class LinearScale:
    """Affine map from a data domain onto a pixel range (either may be decreasing)."""

    domain: Extent = (0.0, 1.0)
    range: Extent = (0.0, 1.0)

    @property
    def domain_span(self) -> float:
        return abs(self.domain[1] - self.domain[0])

    @property
    def range_span(self) -> float:
        return abs(self.range[1] - self.range[0])

    def __call__(self, value):
        d0, d1 = self.domain
        r0, r1 = self.range
        v = np.asarray(value, dtype=float)
        if d1 == d0:
            out = np.full_like(v, (r0 + r1) / 2)
        else:
            out = r0 + (v - d0) / (d1 - d0) * (r1 - r0)
        return out if out.ndim else float(out)

    def invert(self, pixel):
        d0, d1 = self.domain
        r0, r1 = self.range
        p = np.asarray(pixel, dtype=float)
        if r1 == r0:
            out = np.full_like(p, (d0 + d1) / 2)
        else:
            out = d0 + (p - r0) / (r1 - r0) * (d1 - d0)
        return out if out.ndim else float(out)


@dataclass(frozen=True)
class AxisScales:
    x: LinearScale
    y: LinearScale

    @classmethod
    def identity(cls) -> AxisScales:
        return cls(LinearScale(), LinearScale())


@dataclass(frozen=True)
class Margins:
    top: float = 60
    right: float = 20
    bottom: float = 40
    left: float = 60


def uniform_domains(
    x_extent: Extent,
    y_extent: Extent,
    width: float,
    height: float,
    padding: float = DOMAIN_PADDING,
) -> Tuple[Extent, Extent]:
    """
    Pad both extents, then widen the axis with the smaller data-per-pixel
    ratio around its centre so one data unit spans the same number of pixels
    on both axes.
    """
    width = max(float(width), 1.0)
    height = max(float(height), 1.0)

    def pad(extent: Extent) -> Extent:
        lo, hi = _safe_extent(extent)
        span = hi - lo
        if span == 0:
            span = 1.0
            lo, hi = lo - 0.5, hi + 0.5
        return lo - padding * span, hi + padding * span

    x0, x1 = pad(x_extent)
    y0, y1 = pad(y_extent)

    ratio = max((x1 - x0) / width, (y1 - y0) / height)

    def expand(lo: float, hi: float, pixels: float) -> Extent:
        centre = (lo + hi) / 2
        half = ratio * pixels / 2
        return centre - half, centre + half

    return expand(x0, x1, width), expand(y0, y1, height)


# -----------------------------------------------------------------------------
# Transform
# -----------------------------------------------------------------------------
def clamp_scale(k: float) -> float:
    return float(min(SCALE_MAX, max(SCALE_MIN, k)))


@dataclass(frozen=True)
class ViewportTransform:
    translate_x: float = 0.0
    translate_y: float = 0.0
    scale: float = 1.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "scale", clamp_scale(self.scale))

    @property
    def is_identity(self) -> bool:
        return self.translate_x == 0 and self.translate_y == 0 and self.scale == 1

    def apply(self, px, py):
        return self.scale * px + self.translate_x, self.scale * py + self.translate_y

    def invert(self, sx, sy):
        return (sx - self.translate_x) / self.scale, (sy - self.translate_y) / self.scale

    def zoom_about(self, anchor: Tuple[float, float], factor: float) -> ViewportTransform:
        """Multiply the scale by `factor`, keeping the pixel under `anchor` fixed."""
        ax, ay = anchor
        px, py = self.invert(ax, ay)
        k = clamp_scale(self.scale * factor)
        return ViewportTransform(ax - k * px, ay - k * py, k)

    def pan(self, dx: float, dy: float) -> ViewportTransform:
        return replace(self, translate_x=self.translate_x + dx, translate_y=self.translate_y + dy)

    def interpolate(self, other: ViewportTransform, t: float) -> ViewportTransform:
        t = min(1.0, max(0.0, t))
        return ViewportTransform(
            self.translate_x + (other.translate_x - self.translate_x) * t,
            self.translate_y + (other.translate_y - self.translate_y) * t,
            self.scale + (other.scale - self.scale) * t,
        )

    def to_dict(self) -> Dict[str, float]:
        return {"translate_x": self.translate_x, "translate_y": self.translate_y, "scale": self.scale}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> ViewportTransform:
        if not data:
            return IDENTITY
        return cls(
            float(data.get("translate_x", 0.0)),
            float(data.get("translate_y", 0.0)),
            float(data.get("scale", 1.0)),
        )


IDENTITY = ViewportTransform()


def ease_cubic_in_out(t: float) -> float:
    t = min(1.0, max(0.0, t))
    if t < 0.5:
        return 4 * t * t * t
    return 1 - (-2 * t + 2) ** 3 / 2


@dataclass(frozen=True)
class Transition:
    start: ViewportTransform
    end: ViewportTransform
    started_at: float
    duration: float = TRANSITION_SECONDS
    auto_zoom: bool = False

    def at(self, now: float) -> Tuple[ViewportTransform, bool]:
        if self.duration <= 0:
            return self.end, True
        t = (now - self.started_at) / self.duration
        if t >= 1:
            return self.end, True
        return self.start.interpolate(self.end, ease_cubic_in_out(t)), False


class AutoZoom(str, enum.Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


# -----------------------------------------------------------------------------
# Controller
# -----------------------------------------------------------------------------
class ViewportController:
    """
    Owns the pan/zoom transform of the landmark map.

    - base scales are rebuilt only when the data extent or plot size changes
    - manual gestures (wheel / drag / window) disable auto-zoom
    - set_target / reset re-enable it
    - auto_zoom() computes and starts the framing transition once per target
    """

    def __init__(
        self,
        width: float = 1000,
        height: float = 800,
        margins: Margins = Margins(),
        clock: Callable[[], float] = time.monotonic,
        transition_seconds: float = TRANSITION_SECONDS,
    ) -> None:
        self.width = float(width)
        self.height = float(height)
        self.margins = margins
        self.transition_seconds = transition_seconds
        self._clock = clock

        self.transform: ViewportTransform = IDENTITY
        self.target: Optional[str] = None
        self.auto_zoom_state: AutoZoom = AutoZoom.ENABLED
        self.target_satisfied: bool = False

        self._transition: Optional[Transition] = None
        self._extent_key: Optional[Tuple] = None
        self.base_x = LinearScale((0.0, 1.0), (margins.left, self.width - margins.right))
        self.base_y = LinearScale((0.0, 1.0), (self.height - margins.bottom, margins.top))

        self._drag_throttle = GestureThrottle(clock=clock)
        self._pending_drag: Tuple[float, float] = (0.0, 0.0)

    # ------------------------------------------------------------------
    # Base scales / projection
    # ------------------------------------------------------------------
    @property
    def plot_width(self) -> float:
        return self.width - self.margins.left - self.margins.right

    @property
    def plot_height(self) -> float:
        return self.height - self.margins.top - self.margins.bottom

    @property
    def plot_centre(self) -> Tuple[float, float]:
        return (
            self.margins.left + self.plot_width / 2,
            self.margins.top + self.plot_height / 2,
        )

    @property
    def auto_zoom_enabled(self) -> bool:
        return self.auto_zoom_state is AutoZoom.ENABLED

    @property
    def in_transition(self) -> bool:
        return self._transition is not None

    def set_extent(
        self,
        x_extent: Extent,
        y_extent: Extent,
        width: Optional[float] = None,
        height: Optional[float] = None,
        margins: Optional[Margins] = None,
    ) -> bool:
        """Rebuild the base scales if the extent (or plot size) changed."""
        if width is not None:
            self.width = float(width)
        if height is not None:
            self.height = float(height)
        if margins is not None:
            self.margins = margins

        key =(_safe_extent(x_extent), _safe_extent(y_extent), self.width, self.height, self.margins)
        if key == self._extent_key:
            return False

        x_domain, y_domain = uniform_domains(x_extent, y_extent, self.plot_width, self.plot_height)
        self.base_x = LinearScale(x_domain, (self.margins.left, self.width - self.margins.right))
        self.base_y = LinearScale(y_domain, (self.height - self.margins.bottom, self.margins.top))
        self._extent_key = key
        logger.debug("Viewport base scales rebuilt", extra={"x_domain": x_domain, "y_domain": y_domain})
        return True

    def set_extent_from_points(self, points: pd.DataFrame) -> bool:
        if points.empty:
            return False
        return self.set_extent(
            (points["x"].min(), points["x"].max()),
            (points["y"].min(), points["y"].max()),
        )

    def project(self, x, y):
        return self.transform.apply(self.base_x(x), self.base_y(y))

    def axis_scales(self) -> AxisScales:
        """Composite data -> screen scales for the current transform."""
        k = self.transform.scale
        bx, by = self.base_x, self.base_y
        return AxisScales(
            LinearScale(bx.domain, (k * bx.range[0] + self.transform.translate_x,
                                    k * bx.range[1] + self.transform.translate_x)),
            LinearScale(by.domain, (k * by.range[0] + self.transform.translate_y,
                                    k * by.range[1] + self.transform.translate_y)),
        )

    def visible_window(self) -> Tuple[Extent, Extent]:
        """Data-space window currently shown in the plotting area."""
        left, top = self.margins.left, self.margins.top
        right, bottom = self.width - self.margins.right, self.height - self.margins.bottom
        sx0, sy0 = self.transform.invert(left, bottom)
        sx1, sy1 = self.transform.invert(right, top)
        return (
            (float(self.base_x.invert(sx0)), float(self.base_x.invert(sx1))),
            (float(self.base_y.invert(sy0)), float(self.base_y.invert(sy1))),
        )

    # ------------------------------------------------------------------
    # Manual gestures
    # ------------------------------------------------------------------
    def _interrupt_transition(self) -> None:
        # A new gesture or target supersedes any in-flight animation, it does not queue
        if self._transition is not None:
            self.transform, _ = self._transition.at(self._clock())
            self._transition = None

    def _begin_manual_gesture(self) -> None:
        self._interrupt_transition()
        if self.auto_zoom_state is not AutoZoom.DISABLED:
            logger.debug("Manual gesture disabled auto-zoom", extra={"target": self.target})
        self.auto_zoom_state = AutoZoom.DISABLED

    def wheel(self, anchor: Tuple[float, float], factor: float) -> ViewportTransform:
        self._begin_manual_gesture()
        self.transform = self.transform.zoom_about(anchor, factor)
        return self.transform

    def drag(self, dx: float, dy: float) -> ViewportTransform:
        self._begin_manual_gesture()
        self.transform = self.transform.pan(dx, dy)
        return self.transform

    def drag_move(self, dx: float, dy: float) -> None:
        """
        Continuous drag: deltas accumulate and are applied at most once per
        frame. Call drag_end() on release to apply whatever is left.
        """
        acc_x, acc_y = self._pending_drag
        self._pending_drag = (acc_x + dx, acc_y + dy)
        self._drag_throttle.submit(self._pending_drag, self._apply_pending_drag)

    def drag_end(self) -> ViewportTransform:
        self._drag_throttle.flush(self._apply_pending_drag)
        return self.transform

    def _apply_pending_drag(self, delta: Tuple[float, float]) -> None:
        self._pending_drag = (0.0, 0.0)
        self.drag(*delta)

    def apply_window(self, x_range: Extent, y_range: Extent) -> ViewportTransform:
        """
        Adopt a data window chosen by the user (plotly zoom box / pan). The
        scale follows the x span; both axes are centred on the window centre.
        """
        self._begin_manual_gesture()

        x0, x1 = _safe_extent(x_range)
        y0, y1 = _safe_extent(y_range)

        px_span = abs(float(self.base_x(x1)) - float(self.base_x(x0)))
        if px_span > 0:
            k = self.plot_width / px_span
        else:
            py_span = abs(float(self.base_y(y1)) - float(self.base_y(y0)))
            k = self.plot_height / py_span if py_span > 0 else self.transform.scale
        k = clamp_scale(k)

        self.transform = self._centred_transform(((x0 + x1) / 2, (y0 + y1) / 2), k)
        return self.transform

    # ------------------------------------------------------------------
    # Auto-zoom
    # ------------------------------------------------------------------
    def set_target(self, letter: Optional[str]) -> bool:
        """
        Choose the landmark letter to frame. Returns True when auto-zoom is
        (re-)armed and the next auto_zoom() call will animate.
        """
        if not letter:
            return self.reset()

        if letter == self.target and self.auto_zoom_enabled:
            return False

        self._interrupt_transition()
        self.target = letter
        self.auto_zoom_state = AutoZoom.ENABLED
        self.target_satisfied = False
        logger.debug("Auto-zoom target set", extra={"target": letter})
        return True

    def reset(self) -> bool:
        """Clear the target and animate back to identity (if not already there)."""
        self.target = None
        self.target_satisfied = False
        self.auto_zoom_state = AutoZoom.ENABLED
        self._drag_throttle.cancel()
        self._pending_drag = (0.0, 0.0)

        if self.transform.is_identity and self._transition is None:
            return False
        self._start_transition(IDENTITY, auto_zoom=False)
        return True

    def _centred_transform(self, centre: Tuple[float, float], k: float) -> ViewportTransform:
        # translate(viewport centre) . scale(k) . translate(-base(centre))
        vx, vy = self.plot_centre
        bx = float(self.base_x(centre[0]))
        by = float(self.base_y(centre[1]))
        return ViewportTransform(vx - k * bx, vy - k * by, k)

    def framing_transform(self, points: pd.DataFrame, letter: str) -> Optional[ViewportTransform]:
        """Transform that centres and frames every point labelled `letter`."""
        matching = points.loc[points["letter"] == letter]
        if matching.empty:
            return None

        xs = matching["x"].to_numpy(dtype=float)
        ys = matching["y"].to_numpy(dtype=float)
        x0, x1 = float(xs.min()), float(xs.max())
        y0, y1 = float(ys.min()), float(ys.max())

        span_x = (x1 - x0) or 1.0
        span_y = (y1 - y0) or 1.0
        full_x = self.base_x.domain_span or 1.0
        full_y = self.base_y.domain_span or 1.0

        k = 1.0 / max(span_x / full_x, span_y / full_y)
        k = float(min(SCALE_MAX, max(1.0, k)))

        return self._centred_transform(((x0 + x1) / 2, (y0 + y1) / 2), k)

    def auto_zoom(self, points: pd.DataFrame) -> Optional[ViewportTransform]:
        """
        Start the framing animation for the current target if it is armed and
        not yet satisfied. Returns the transform being animated to, or None.
        """
        if self.target is None or not self.auto_zoom_enabled or self.target_satisfied:
            return None
        if self._transition is not None and self._transition.auto_zoom:
            return self._transition.end

        end = self.framing_transform(points, self.target)
        if end is None:
            logger.info("No visible points for auto-zoom target", extra={"target": self.target})
            return None

        self._start_transition(end, auto_zoom=True)
        return end

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------
    def _start_transition(self, end: ViewportTransform, auto_zoom: bool) -> None:
        self._transition = Transition(
            start=self.transform,
            end=end,
            started_at=self._clock(),
            duration=self.transition_seconds,
            auto_zoom=auto_zoom,
        )

    def tick(self, now: Optional[float] = None) -> ViewportTransform:
        if self._transition is None:
            return self.transform
        now = self._clock() if now is None else now
        self.transform, done = self._transition.at(now)
        if done:
            self._finish_transition()
        return self.transform

    def settle(self) -> ViewportTransform:
        """Jump any in-flight transition to its end state."""
        if self._transition is not None:
            self.transform = self._transition.end
            self._finish_transition()
        return self.transform

    def _finish_transition(self) -> None:
        if self._transition is not None and self._transition.auto_zoom:
            self.target_satisfied = True
        self._transition = None

    # ------------------------------------------------------------------
    # (De)serialisation for dcc.Store
    # ------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Serialise controller state. In-flight transitions are settled first."""
        self.settle()
        return {
            "transform": self.transform.to_dict(),
            "target": self.target,
            "auto_zoom": self.auto_zoom_state.value,
            "target_satisfied": self.target_satisfied,
        }

    def load_dict(self, data: Optional[Dict[str, Any]]) -> ViewportController:
        if not data:
            return self
        self.transform = ViewportTransform.from_dict(data.get("transform"))
        self.target = data.get("target") or None
        self.auto_zoom_state = AutoZoom(data.get("auto_zoom", AutoZoom.ENABLED.value))
        self.target_satisfied = bool(data.get("target_satisfied", False))
        self._transition = None
        return self
