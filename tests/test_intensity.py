from datetime import timedelta

import pytest

from conftest import NOW, make_event
from disasterwatch.services.intensity import MIN_INTENSITY, compute_intensity, recency_factor


def test_fresh_event_uses_severity_times_weight():
    ev = make_event(type="WF", severity=0.6, date=NOW - timedelta(hours=3))
    assert compute_intensity(ev, now=NOW) == pytest.approx(0.6)


def test_type_weight_is_capped_at_one():
    ev = make_event(type="EQ", severity=0.9, date=NOW)
    assert compute_intensity(ev, now=NOW) == 1.0


def test_alert_level_base_when_no_severity():
    raw = {"type": "WF", "alertLevel": "orange", "date": NOW.isoformat()}
    assert compute_intensity(raw, now=NOW) == pytest.approx(0.75)
    raw = {"type": "WF", "alertLevel": "??", "date": NOW.isoformat()}
    assert compute_intensity(raw, now=NOW) == pytest.approx(0.3)


def test_recency_decay_formula():
    assert recency_factor(NOW - timedelta(hours=23), now=NOW) == 1.0
    assert recency_factor(NOW - timedelta(days=9), now=NOW) == pytest.approx(1 - 0.15)
    assert recency_factor(NOW - timedelta(days=10_000), now=NOW) == pytest.approx(0.4)


def test_future_date_counts_as_fresh():
    assert recency_factor(NOW + timedelta(days=3), now=NOW) == 1.0


def test_monotone_non_increasing_in_age():
    previous = None
    for days in (0, 0.5, 1, 2, 5, 10, 30, 100, 365, 3650):
        ev = make_event(type="FL", severity=0.8, date=NOW - timedelta(days=days))
        value = compute_intensity(ev, now=NOW)
        assert value >= MIN_INTENSITY
        if previous is not None:
            assert value <= previous + 1e-12
        previous = value


def test_floor_for_old_low_severity():
    ev = make_event(type="DR", severity=0.0, date=NOW - timedelta(days=5000))
    assert compute_intensity(ev, now=NOW) == MIN_INTENSITY


def test_missing_date_skips_recency():
    assert compute_intensity({"type": "WF", "severity": 0.5}, now=NOW) == pytest.approx(0.5)
