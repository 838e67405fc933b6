from datetime import datetime, timedelta

import pytest

from ifungi_client.models import MetricKey, SeriesPoint
from ifungi_client.services import build_chart_data, compute_range, format_time_axis, generate_axis_labels

BASE = datetime(2025, 1, 6, 8, 0, 0)  # a Monday


def _series(*values, step=timedelta(minutes=1)):
    return [SeriesPoint(timestamp=BASE + step * i, value=value) for i, value in enumerate(values)]


def test_empty_series_gives_degenerate_range():
    chart_range = compute_range([])
    assert chart_range.empty is True
    assert (chart_range.min, chart_range.max, chart_range.current) == (0, 0, 0)
    assert (chart_range.actual_min, chart_range.actual_max) == (0, 0)


def test_range_has_ten_percent_margin():
    chart_range = compute_range(_series(20, 30, 25))
    assert chart_range.actual_min == 20
    assert chart_range.actual_max == 30
    assert chart_range.current == 25
    assert chart_range.min == pytest.approx(19)
    assert chart_range.max == pytest.approx(31)


def test_single_sample_is_clamped_to_visible_span():
    chart_range = compute_range(_series(23.5))
    assert chart_range.actual_min == chart_range.actual_max == chart_range.current == 23.5
    assert chart_range.span > 0
    assert chart_range.min == pytest.approx(22.5)
    assert chart_range.max == pytest.approx(24.5)


def test_axis_labels_temperature():
    labels = generate_axis_labels(compute_range(_series(20, 30)), MetricKey.TEMPERATURE, step_count=4)
    assert labels == ["31.0°C", "28.0°C", "25.0°C", "22.0°C", "19.0°C"]


def test_axis_labels_units_per_metric():
    chart_range = compute_range(_series(100, 200))
    assert generate_axis_labels(chart_range, MetricKey.HUMIDITY, 1) == ["210%", "90%"]
    assert generate_axis_labels(chart_range, MetricKey.ILLUMINANCE, 1) == ["210LUX", "90LUX"]
    assert generate_axis_labels(chart_range, MetricKey.CO2, 1) == ["210PPM", "90PPM"]
    assert generate_axis_labels(chart_range, MetricKey.CO, 1) == ["210PPM", "90PPM"]


@pytest.mark.parametrize("count", [0, 1, 7])
def test_axis_label_count_is_step_count_plus_one(count):
    series = _series(*range(count))
    for step_count in (1, 4, 5, 10):
        labels = generate_axis_labels(compute_range(series), MetricKey.CO, step_count)
        assert len(labels) == step_count + 1


def test_empty_series_gives_blank_labels():
    assert generate_axis_labels(compute_range([]), MetricKey.TEMPERATURE) == [""] * 6


def test_invalid_step_count():
    with pytest.raises(ValueError):
        generate_axis_labels(compute_range(_series(1, 2)), MetricKey.CO, 0)


def test_time_axis_short_span_uses_seconds():
    stamps = [BASE, BASE + timedelta(minutes=30, seconds=5)]
    assert format_time_axis(stamps) == ["08:00:00", "08:30:05"]


def test_time_axis_over_twelve_hours_uses_minutes():
    stamps = [BASE, BASE + timedelta(hours=13)]
    assert format_time_axis(stamps) == ["08:00", "21:00"]


def test_time_axis_over_a_day_uses_weekday():
    stamps = [BASE, BASE + timedelta(days=2, hours=1)]
    assert format_time_axis(stamps) == ["Mon 08:00", "Wed 09:00"]


def test_time_axis_over_a_week_uses_date():
    stamps = [BASE, BASE + timedelta(days=8)]
    assert format_time_axis(stamps) == ["06/01", "14/01"]


def test_time_axis_boundaries_use_whole_units():
    # exactly 12h and exactly 1 day fall into the finer format
    assert format_time_axis([BASE, BASE + timedelta(hours=12, minutes=59)]) == ["08:00:00", "20:59:00"]
    assert format_time_axis([BASE, BASE + timedelta(days=1, hours=23)]) == ["08:00", "07:00"]


def test_time_axis_accepts_iso_strings_and_single_value():
    assert format_time_axis(["2025-01-06T08:15:00"]) == ["08:15"]
    assert format_time_axis([]) == []


def test_chart_data_width_grows_with_points():
    data = build_chart_data(_series(*range(10)), MetricKey.CO2, viewport_width=360)
    assert len(data.labels) == len(data.values) == 10
    assert data.total_width == 600
    assert data.color == "#06D6A0"

    small = build_chart_data(_series(1, 2), MetricKey.CO2, viewport_width=360)
    assert small.total_width == 360


def test_chart_data_for_empty_series():
    data = build_chart_data([], MetricKey.TEMPERATURE, viewport_width=320, step_count=4)
    assert data.values == ()
    assert data.labels == ()
    assert data.y_labels == ("",) * 5
    assert data.total_width == 320
