"""IFungi greenhouse monitor client"""

from .core import MonitoringViewController
from .services import TelemetryStore, FirebaseTelemetryStore, InMemoryTelemetryStore, HeartbeatMonitor

__version__ = "1.0.0"

__all__ = ['MonitoringViewController', 'TelemetryStore', 'FirebaseTelemetryStore', 'InMemoryTelemetryStore', 'HeartbeatMonitor']
