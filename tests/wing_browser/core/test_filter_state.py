from __future__ import annotations

import pytest

from wing_browser.core.filter_state import ABSOLUTE, PERCENTILE, FilterState


def test_defaults_follow_dashboard():
    st = FilterState()

    assert st.visible_conditions == frozenset({"standard", "hypoxia", "cold"})
    assert st.sex_filters == frozenset({"female", "male"})
    assert st.normalization_mode == ABSOLUTE
    assert (st.below, st.above, st.within) == (0.1, 0.9, (0.05, 0.95))


def test_filter_state_to_from_dict_roundtrip():
    st = FilterState(
        visible_conditions={"cold"},
        sex_filters={"male"},
        normalization_mode=PERCENTILE,
        below=0.2,
        above=0.7,
        within=(0.1, 0.6),
    )

    raw = st.to_dict()
    rebuilt = FilterState.from_dict(raw)

    assert rebuilt == st
    assert raw["visible_conditions"] == ["cold"]
    assert raw["within"] == [0.1, 0.6]


def test_from_dict_fills_missing_fields_with_defaults():
    st = FilterState.from_dict({"below": 0.3})
    assert st.below == 0.3
    assert st == FilterState(below=0.3)


def test_thresholds_are_clamped():
    st = FilterState(below=-1, above=3, within=(-0.5, 1.5))
    assert st.below == 0.0
    assert st.above == 1.0
    assert st.within == (0.0, 1.0)


def test_within_lo_above_hi_drags_hi_up():
    st = FilterState(within=(0.2, 0.4)).with_within_lo(0.7)
    assert st.within == (0.7, 0.7)


def test_within_hi_below_lo_drags_lo_down():
    st = FilterState(within=(0.5, 0.8)).with_within_hi(0.3)
    assert st.within == (0.3, 0.3)


def test_with_within_follows_moved_handle():
    st = FilterState()
    assert st.with_within(0.6, 0.4, moved="lo").within == (0.6, 0.6)
    assert st.with_within(0.6, 0.4, moved="hi").within == (0.4, 0.4)


def test_toggles_are_symmetric_difference():
    st = FilterState()
    off = st.toggle_condition("cold")
    assert "cold" not in off.visible_conditions
    assert off.toggle_condition("cold") == st

    assert st.toggle_sex("male").sex_filters == frozenset({"female"})


def test_with_mode_rejects_unknown_mode():
    with pytest.raises(ValueError):
        FilterState().with_mode("log")


def test_unknown_mode_in_constructor_falls_back_to_absolute():
    assert FilterState(normalization_mode="weird").normalization_mode == ABSOLUTE


def test_cache_key_changes_with_any_field():
    st = FilterState()
    keys = {
        st.cache_key(),
        st.with_mode(PERCENTILE).cache_key(),
        st.with_below(0.2).cache_key(),
        st.with_above(0.8).cache_key(),
        st.with_within(0.1, 0.9).cache_key(),
        st.toggle_condition("cold").cache_key(),
        st.toggle_sex("female").cache_key(),
    }
    assert len(keys) == 7
