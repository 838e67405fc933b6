"""Services package"""

from .telemetry_store import TelemetryStore, FirebaseTelemetryStore, InMemoryTelemetryStore, Subscription
from .heartbeat_monitor import HeartbeatMonitor, HeartbeatConfig, HeartbeatStatus
from .history_reducer import HistoryReducer, reduce_history, flatten_history
from .chart_engine import ChartRange, ChartData, compute_range, generate_axis_labels, format_time_axis, build_chart_data
from .actuator_state import StatusBadge, ActuatorBadges, derive_badges
from .setpoint_service import SetpointService
from .debug_mode import DebugModeService, SimulatedField, DevOption, DevValue
from .device_connector import DeviceConnector

__all__ = [
    'TelemetryStore', 'FirebaseTelemetryStore', 'InMemoryTelemetryStore', 'Subscription',
    'HeartbeatMonitor', 'HeartbeatConfig', 'HeartbeatStatus',
    'HistoryReducer', 'reduce_history', 'flatten_history',
    'ChartRange', 'ChartData', 'compute_range', 'generate_axis_labels', 'format_time_axis', 'build_chart_data',
    'StatusBadge', 'ActuatorBadges', 'derive_badges',
    'SetpointService',
    'DebugModeService', 'SimulatedField', 'DevOption', 'DevValue',
    'DeviceConnector',
]
