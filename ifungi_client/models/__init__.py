"""Models package"""

from .sensor_data import (
    MetricKey,
    MetricOption,
    METRIC_OPTIONS,
    SELECTABLE_METRICS,
    metric_option,
    SensorSample,
    HistoryRecord,
    SeriesPoint,
)
from .greenhouse import ActuatorState, LightingState, DeviceStatus, GreenhouseSnapshot
from .setpoints import SetpointId, SetpointSpec, SETPOINTS, Setpoints, SetpointChange

__all__ = [
    'MetricKey', 'MetricOption', 'METRIC_OPTIONS', 'SELECTABLE_METRICS', 'metric_option',
    'SensorSample', 'HistoryRecord', 'SeriesPoint',
    'ActuatorState', 'LightingState', 'DeviceStatus', 'GreenhouseSnapshot',
    'SetpointId', 'SetpointSpec', 'SETPOINTS', 'Setpoints', 'SetpointChange',
]
