"""Core package - monitoring screen orchestration"""

from .monitoring_controller import MonitoringViewController, MonitoringViewState, ScreenPhase, Recovery

__all__ = ['MonitoringViewController', 'MonitoringViewState', 'ScreenPhase', 'Recovery']
