from __future__ import annotations

from dataclasses import dataclass, field, asdict, replace
from typing import Any, Dict, FrozenSet, Tuple

from .records import CONDITIONS, SEXES

PERCENTILE = "percentile"
ABSOLUTE = "absolute"
NORMALIZATION_MODES = (PERCENTILE, ABSOLUTE)


def _clamp01(value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if v != v:  # NaN
        return 0.0
    return min(1.0, max(0.0, v))


@dataclass(frozen=True)
class FilterState:
    """
    Represents the current size/condition/sex filter configuration.

    Fields:

    - visible_conditions: conditions whose specimens may be shown
    - sex_filters: sexes whose specimens may be shown
    - normalization_mode: "percentile" (relative to the specimen's own condition group)
      or "absolute" (relative to the global min/max centroid size)
    - below: show specimens whose normalised size is <= below ...
    - above: ... or >= above ...
    - within: ... and only inside the inclusive (lo, hi) window

    Edits never mutate; each returns a new FilterState so callers can compare
    configurations by value.
    """

    visible_conditions: FrozenSet[str] = field(default_factory=lambda: frozenset(CONDITIONS))
    sex_filters: FrozenSet[str] = field(default_factory=lambda: frozenset(SEXES))
    normalization_mode: str = ABSOLUTE
    below: float = 0.1
    above: float = 0.9
    within: Tuple[float, float] = (0.05, 0.95)

    def __post_init__(self) -> None:
        # Normalise whatever the caller handed us (lists from a dcc.Store, etc.)
        object.__setattr__(self, "visible_conditions", frozenset(self.visible_conditions))
        object.__setattr__(self, "sex_filters", frozenset(self.sex_filters))
        if self.normalization_mode not in NORMALIZATION_MODES:
            object.__setattr__(self, "normalization_mode", ABSOLUTE)
        object.__setattr__(self, "below", _clamp01(self.below))
        object.__setattr__(self, "above", _clamp01(self.above))
        lo, hi = (_clamp01(v) for v in self.within)
        if lo > hi:
            lo, hi = hi, lo
        object.__setattr__(self, "within", (lo, hi))

    # ------------------------------------------------------------------
    # Declarative edits
    # ------------------------------------------------------------------
    def toggle_condition(self, condition: str) -> FilterState:
        return replace(self, visible_conditions=self.visible_conditions ^ {condition})

    def toggle_sex(self, sex: str) -> FilterState:
        return replace(self, sex_filters=self.sex_filters ^ {sex})

    def with_conditions(self, conditions) -> FilterState:
        return replace(self, visible_conditions=frozenset(conditions or ()))

    def with_sexes(self, sexes) -> FilterState:
        return replace(self, sex_filters=frozenset(sexes or ()))

    def with_mode(self, mode: str) -> FilterState:
        if mode not in NORMALIZATION_MODES:
            raise ValueError(f"Unknown normalization mode '{mode}'")
        return replace(self, normalization_mode=mode)

    def with_below(self, value: float) -> FilterState:
        return replace(self, below=_clamp01(value))

    def with_above(self, value: float) -> FilterState:
        return replace(self, above=_clamp01(value))

    def with_within_lo(self, value: float) -> FilterState:
        lo = _clamp01(value)
        hi = max(self.within[1], lo)
        return replace(self, within=(lo, hi))

    def with_within_hi(self, value: float) -> FilterState:
        hi = _clamp01(value)
        lo = min(self.within[0], hi)
        return replace(self, within=(lo, hi))

    def with_within(self, lo: float, hi: float, moved: str = "lo") -> FilterState:
        """
        Apply a two-handle range edit. When the handles cross, the handle that
        was not moved is dragged along with the one that was.
        """
        lo, hi = _clamp01(lo), _clamp01(hi)
        if lo > hi:
            if moved == "hi":
                lo = hi
            else:
                hi = lo
        return replace(self, within=(lo, hi))

    # ------------------------------------------------------------------
    # Keys & (de)serialisation
    # ------------------------------------------------------------------
    def cache_key(self) -> Tuple:
        return (
            tuple(sorted(self.visible_conditions)),
            tuple(sorted(self.sex_filters)),
            self.normalization_mode,
            self.below,
            self.above,
            self.within,
        )

    def to_dict(self) -> Dict[str, Any]:
        raw = asdict(self)
        raw["visible_conditions"] = sorted(self.visible_conditions)
        raw["sex_filters"] = sorted(self.sex_filters)
        raw["within"] = list(self.within)
        return raw

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FilterState:
        defaults = cls()
        within = data.get("within") or defaults.within
        return cls(
            visible_conditions=data.get("visible_conditions", defaults.visible_conditions),
            sex_filters=data.get("sex_filters", defaults.sex_filters),
            normalization_mode=data.get("normalization_mode", defaults.normalization_mode),
            below=data.get("below", defaults.below),
            above=data.get("above", defaults.above),
            within=(within[0], within[1]),
        )
