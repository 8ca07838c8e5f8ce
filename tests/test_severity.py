import pytest

from disasterwatch.services.severity import compute_severity


@pytest.mark.parametrize(
    "alert,magnitude,expected",
    [
        ("Red", 7.8, 0.78),
        ("Orange", 5.0, 0.35),
        ("Green", 10.0, 0.4),
        ("Red", 12.0, 1.0),   # factor capped at 1
    ],
)
def test_earthquake_severity(alert, magnitude, expected):
    assert compute_severity("EQ", alert, {"magnitude": magnitude}) == pytest.approx(expected)


def test_earthquake_without_magnitude_uses_base():
    assert compute_severity("EQ", "Orange", {}) == pytest.approx(0.7)


def test_cyclone_wind_speed():
    assert compute_severity("TC", "Red", {"windSpeed": 150}) == pytest.approx(0.75)
    assert compute_severity("TC", "Red", {"windSpeed": 400}) == pytest.approx(1.0)


def test_flood_blend_needs_population_and_indicator():
    s = compute_severity("FL", "Orange", {"population": 2_000_000, "severityIndicator": 1.5})
    assert s == pytest.approx(0.7 * (0.4 * 1.0 + 0.6 * 0.5))


def test_flood_area_only():
    assert compute_severity("FL", "Red", {"affectedArea": 2500}) == pytest.approx(0.25)


def test_flood_population_without_indicator_falls_back_to_area():
    s = compute_severity("FL", "Red", {"population": 10, "affectedArea": 5000})
    assert s == pytest.approx(0.5)


def test_other_types_use_fixed_multiplier():
    for code in ("VO", "DR", "WF", "Unknown"):
        assert compute_severity(code, "Red", {}) == pytest.approx(0.7)


def test_unknown_alert_level_base():
    assert compute_severity("EQ", None, {}) == pytest.approx(0.3)
    assert compute_severity("EQ", "Purple", {}) == pytest.approx(0.3)


def test_always_within_unit_interval():
    assert compute_severity("EQ", "Red", {"magnitude": -3}) == 0.0
    assert 0.0 <= compute_severity("TC", "Red", {"windSpeed": 1e9}) <= 1.0


def test_pure_function():
    fields = {"magnitude": 6.3}
    assert compute_severity("EQ", "Red", fields) == compute_severity("EQ", "Red", dict(fields))
