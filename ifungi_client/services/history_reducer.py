"""History reducer - turns the raw history window into a plottable series"""

import logging
from typing import Any, List, Mapping, Optional, Tuple

from ..models import HistoryRecord, MetricKey, SeriesPoint
from ..utils.values import coerce_number, parse_timestamp

logger = logging.getLogger(__name__)

# Field holding the capture timestamp in each history record
TIMESTAMP_FIELD = "dataHora"


def flatten_history(window: Optional[Mapping[str, Any]]) -> List[HistoryRecord]:
    """Flatten a capture-key -> record mapping, oldest first.

    Records without a usable timestamp fall back to their capture key.
    Records that still cannot be placed in time are dropped.
    """
    if not window:
        return []

    dated = []
    for key, raw in window.items():
        if not isinstance(raw, Mapping):
            logger.debug(f"History: skipping non-record entry {key!r}")
            continue
        captured_at = raw.get(TIMESTAMP_FIELD)
        if captured_at is None or parse_timestamp(captured_at) is None:
            captured_at = key
        moment = parse_timestamp(captured_at)
        if moment is None:
            logger.debug(f"History: dropping {key!r}, no parseable timestamp")
            continue
        dated.append((moment, str(key), HistoryRecord(capture_key=str(key), captured_at=captured_at, values=dict(raw))))

    dated.sort(key=lambda item: (item[0], item[1]))
    return [record for _, _, record in dated]


def reduce_history(window: Optional[Mapping[str, Any]], metric: MetricKey) -> Tuple[SeriesPoint, ...]:
    """Ordered (timestamp, value) series for one metric, invalid values removed"""
    metric = MetricKey(metric)
    points = []
    for record in flatten_history(window):
        value = coerce_number(record.raw_value(metric))
        if value is None:
            continue
        points.append(SeriesPoint(
            timestamp=parse_timestamp(record.captured_at),
            value=value,
            capture_key=record.capture_key,
        ))
    return tuple(points)


class HistoryReducer:
    """Memoised reduce_history keyed by (window, metric).

    The window is compared by identity: every store push delivers a new
    mapping, so a new push always recomputes.
    """

    def __init__(self):
        self._window = None
        self._metric = None
        self._series: Tuple[SeriesPoint, ...] = ()
        self.recomputations = 0

    def reduce(self, window: Optional[Mapping[str, Any]], metric: MetricKey) -> Tuple[SeriesPoint, ...]:
        metric = MetricKey(metric)
        if self.recomputations and window is self._window and metric == self._metric:
            return self._series

        self._series = reduce_history(window, metric)
        self._window = window
        self._metric = metric
        self.recomputations += 1
        logger.debug(f"History: {len(self._series)} points for {metric.value}")
        return self._series
