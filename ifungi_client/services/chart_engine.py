"""Chart range and label engine"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Sequence, Tuple

from .. import config
from ..models import MetricKey, SeriesPoint, metric_option
from ..utils.values import parse_timestamp

logger = logging.getLogger(__name__)

_WEEKDAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class ChartRange:
    """Display range of a series.

    `min`/`max` include the visual margin; `actual_min`/`actual_max` are the
    unpadded extremes shown in the summary row.
    """
    min: float = 0.0
    max: float = 0.0
    current: float = 0.0
    actual_min: float = 0.0
    actual_max: float = 0.0
    empty: bool = True

    @property
    def span(self) -> float:
        return self.max - self.min


@dataclass(frozen=True)
class ChartData:
    """Everything a line chart needs for one metric"""
    labels: Tuple[str, ...] = ()
    values: Tuple[float, ...] = ()
    y_labels: Tuple[str, ...] = ()
    range: ChartRange = field(default_factory=ChartRange)
    color: str = ""
    total_width: int = 0


def compute_range(series: Sequence[SeriesPoint]) -> ChartRange:
    """Min/max/current with a 10% margin on the span.

    A constant series has no span, so its display range is clamped to
    value +/- CHART_MIN_VISUAL_HALF_SPAN to keep the axis from collapsing.
    """
    if not series:
        return ChartRange()

    values = [point.value for point in series]
    actual_min = min(values)
    actual_max = max(values)
    current = values[-1]

    span = actual_max - actual_min
    if span == 0:
        half_span = config.CHART_MIN_VISUAL_HALF_SPAN
        low, high = actual_min - half_span, actual_max + half_span
    else:
        margin = span * config.CHART_MARGIN_RATIO
        low, high = actual_min - margin, actual_max + margin

    return ChartRange(
        min=low,
        max=high,
        current=current,
        actual_min=actual_min,
        actual_max=actual_max,
        empty=False,
    )


def generate_axis_labels(chart_range: ChartRange, metric: MetricKey, step_count: int = None) -> List[str]:
    """step_count + 1 evenly spaced labels from max down to min"""
    if step_count is None:
        step_count = config.CHART_AXIS_STEPS
    if step_count < 1:
        raise ValueError(f"step_count must be at least 1, got {step_count}")

    if chart_range.empty:
        return [""] * (step_count + 1)

    option = metric_option(metric)
    labels = []
    for i in range(step_count, -1, -1):
        value = chart_range.min + chart_range.span * i / step_count
        labels.append(option.axis_label(value))
    return labels


def format_time_axis(timestamps: Sequence[Any]) -> List[str]:
    """Time labels whose granularity follows the span of the window.

    More than 7 days -> dd/MM, more than 1 day -> weekday HH:MM,
    more than 12 hours -> HH:MM, otherwise HH:MM:SS. Spans are counted in
    whole days/hours.
    """
    moments = [parse_timestamp(value) for value in timestamps]
    if len(moments) < 2:
        return [_format(moment, "%H:%M") for moment in moments]

    first, last = moments[0], moments[-1]
    if first is None or last is None:
        return [_format(moment, "%H:%M") for moment in moments]

    seconds = (last - first).total_seconds()
    days = int(seconds / 86400)
    hours = int(seconds / 3600)

    if days > 7:
        pattern = "%d/%m"
    elif days > 1:
        pattern = "weekday"
    elif hours > 12:
        pattern = "%H:%M"
    else:
        pattern = "%H:%M:%S"
    return [_format(moment, pattern) for moment in moments]


def _format(moment: datetime, pattern: str) -> str:
    if moment is None:
        return ""
    if pattern == "weekday":
        return f"{_WEEKDAYS[moment.weekday()]} {moment:%H:%M}"
    return moment.strftime(pattern)


def build_chart_data(series: Sequence[SeriesPoint], metric: MetricKey,
                     viewport_width: int = None, step_count: int = None) -> ChartData:
    """Labels, values, axis labels and scroll width for a reduced series"""
    if viewport_width is None:
        viewport_width = config.CHART_VIEWPORT_WIDTH
    option = metric_option(metric)
    chart_range = compute_range(series)
    y_labels = tuple(generate_axis_labels(chart_range, metric, step_count))

    if not series:
        return ChartData(y_labels=y_labels, range=chart_range, color=option.color, total_width=viewport_width)

    total_width = max(viewport_width, len(series) * config.CHART_POINT_WIDTH)
    logger.debug(f"Chart: {len(series)} points for {option.label}")
    return ChartData(
        labels=tuple(format_time_axis([point.timestamp for point in series])),
        values=tuple(point.value for point in series),
        y_labels=y_labels,
        range=chart_range,
        color=option.color,
        total_width=total_width,
    )
