"""
Monitoring view controller.

Composition root of the monitoring screen: resolves which greenhouse to
watch, owns one subscription to its current state and one to its bounded
history, feeds the heartbeat monitor and the history reducer, and publishes
an immutable MonitoringViewState to whatever renders it.

Each attach() bumps an epoch counter. Callbacks carry the epoch they were
registered under and are dropped when it no longer matches, so a late push
for a previous greenhouse can never overwrite the state of the current one.
"""

import asyncio
import functools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from .. import config
from ..errors import DeviceNotResolved
from ..models import GreenhouseSnapshot, MetricKey, SELECTABLE_METRICS, metric_option
from ..paths import greenhouse_path, history_path
from ..services.actuator_state import ActuatorBadges, derive_badges
from ..services.chart_engine import ChartData, build_chart_data
from ..services.heartbeat_monitor import HeartbeatMonitor, HeartbeatStatus
from ..services.history_reducer import HistoryReducer
from ..services.telemetry_store import Subscription, TelemetryStore
from ..storage import SessionStore

logger = logging.getLogger(__name__)

NO_DEVICE_MESSAGE = "Nenhuma estufa conectada. Por favor, conecte-se a uma estufa."
SESSION_ERROR_MESSAGE = "Erro ao carregar sessão."
NOT_FOUND_MESSAGE = "Estufa não encontrada no banco de dados"
LOAD_ERROR_MESSAGE = "Erro ao carregar dados da estufa"


class ScreenPhase(str, Enum):
    RESOLVING = "resolving"
    SUBSCRIBING = "subscribing"
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not_found"
    ERROR = "error"


class Recovery(str, Enum):
    """Action offered to the operator from an error phase"""
    PAIR = "pair"
    RETRY = "retry"


@dataclass(frozen=True)
class MonitoringViewState:
    phase: ScreenPhase
    device_id: Optional[str] = None
    error: Optional[str] = None
    recovery: Optional[Recovery] = None
    online: bool = False
    heartbeat: Optional[HeartbeatStatus] = None
    snapshot: Optional[GreenhouseSnapshot] = None
    badges: Optional[ActuatorBadges] = None
    selected_metric: MetricKey = MetricKey.TEMPERATURE
    current_value: str = ""
    water_status: str = "Carregando..."
    chart: ChartData = field(default_factory=ChartData)


class MonitoringViewController:
    """Drives one monitoring screen for one greenhouse at a time"""

    def __init__(
        self,
        store: TelemetryStore,
        session_store: SessionStore = None,
        heartbeat: HeartbeatMonitor = None,
        history_limit: int = None,
    ):
        self.store = store
        self.session_store = session_store
        self.heartbeat = heartbeat or HeartbeatMonitor()
        self.history_limit = history_limit or config.HISTORY_WINDOW_SIZE
        self.reducer = HistoryReducer()

        self.device_id: Optional[str] = None
        self.selected_metric = MetricKey.TEMPERATURE
        self.phase = ScreenPhase.RESOLVING
        self.error: Optional[str] = None
        self.recovery: Optional[Recovery] = None

        self._snapshot: Optional[GreenhouseSnapshot] = None
        self._history: Optional[dict] = None
        self._chart = ChartData()
        self._epoch = 0
        self.closed = False
        self._state_subscription: Optional[Subscription] = None
        self._history_subscription: Optional[Subscription] = None
        self._listeners: List[Callable[[MonitoringViewState], None]] = []

        self.heartbeat.add_listener(self._on_online_changed)
        self._recompute_chart()

    # -- observers -------------------------------------------------------

    def add_listener(self, callback: Callable[[MonitoringViewState], None]):
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[MonitoringViewState], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    @property
    def state(self) -> MonitoringViewState:
        snapshot = self._snapshot
        option = metric_option(self.selected_metric)
        if snapshot is None:
            water_status = "Carregando..."
            current_value = ""
        else:
            water_status = "Com água" if snapshot.sensors.water_ok else "Sem água"
            current_value = option.format(snapshot.sensors.value_of(self.selected_metric))
        return MonitoringViewState(
            phase=self.phase,
            device_id=self.device_id,
            error=self.error,
            recovery=self.recovery,
            online=self.heartbeat.is_online,
            heartbeat=self.heartbeat.status(),
            snapshot=snapshot,
            badges=derive_badges(snapshot.actuators) if snapshot else None,
            selected_metric=self.selected_metric,
            current_value=current_value,
            water_status=water_status,
            chart=self._chart,
        )

    def _notify(self):
        state = self.state
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Monitoring listener failed: {e}", exc_info=True)

    # -- lifecycle -------------------------------------------------------

    @property
    def attached(self) -> bool:
        return self._state_subscription is not None

    async def open(self, device_id: str = None) -> Optional[str]:
        """Resolve the greenhouse (argument, then active session) and attach.

        Returns the attached device id, or None when resolution failed and
        the controller is in the ERROR phase. If the screen is closed or
        another greenhouse is attached while the session is being read, the
        resolved id is dropped and None is returned.
        """
        if self.closed:
            return None
        self.phase = ScreenPhase.RESOLVING
        self._notify()
        epoch = self._epoch
        try:
            resolved = await self.resolve_device_id(device_id)
        except DeviceNotResolved as e:
            if self._is_current(epoch, "resolution"):
                logger.info(f"Monitoring: {e}")
                self._fail(NO_DEVICE_MESSAGE, Recovery.PAIR)
            return None
        except Exception as e:
            if self._is_current(epoch, "resolution"):
                logger.error(f"Monitoring: error loading session: {e}", exc_info=True)
                self._fail(SESSION_ERROR_MESSAGE, Recovery.PAIR)
            return None

        if self.closed or not self._is_current(epoch, "resolution"):
            return None
        self.attach(resolved)
        return resolved

    async def resolve_device_id(self, device_id: str = None) -> str:
        if device_id:
            logger.info(f"Monitoring: greenhouse from caller: {device_id}")
            return device_id
        if self.session_store is not None:
            loop = asyncio.get_running_loop()
            session_device = await loop.run_in_executor(None, self.session_store.current_device)
            if session_device:
                logger.info(f"Monitoring: greenhouse from session: {session_device}")
                return session_device
        raise DeviceNotResolved("No greenhouse found in session")

    def attach(self, device_id: str):
        """Watch `device_id`, closing any previous greenhouse first"""
        if self.closed:
            logger.warning(f"Monitoring: attach({device_id}) after close ignored")
            return
        if device_id == self.device_id and self.attached:
            return
        self.detach()

        self._epoch += 1
        epoch = self._epoch
        self.device_id = device_id
        self._snapshot = None
        self._history = None
        self.error = None
        self.recovery = None
        self._recompute_chart()
        self.phase = ScreenPhase.SUBSCRIBING
        self._notify()

        self._state_subscription = self.store.subscribe(
            greenhouse_path(device_id),
            functools.partial(self._on_state, epoch),
            functools.partial(self._on_state_error, epoch),
        )
        self._history_subscription = self.store.subscribe(
            history_path(device_id),
            functools.partial(self._on_history, epoch),
            functools.partial(self._on_history_error, epoch),
            limit_to_last=self.history_limit,
        )
        self.heartbeat.start()

        self.phase = ScreenPhase.LOADING
        logger.info(f"Monitoring: started for greenhouse {device_id}")
        self._notify()

    def detach(self):
        """Release both subscriptions and the heartbeat poll"""
        self._epoch += 1
        for subscription in (self._state_subscription, self._history_subscription):
            if subscription is not None:
                subscription.close()
        self._state_subscription = None
        self._history_subscription = None
        self.heartbeat.stop()

    def close(self):
        """Tear the screen down; the controller cannot be attached again"""
        self.closed = True
        self.detach()
        self.heartbeat.remove_listener(self._on_online_changed)
        self._listeners.clear()
        logger.info(f"Monitoring: closed ({self.device_id})")

    async def retry(self) -> Optional[str]:
        """Re-open after an error"""
        if self.closed:
            return None
        if self.device_id is None:
            return await self.open()
        device_id = self.device_id
        self.detach()
        self.device_id = None
        self.attach(device_id)
        return device_id

    # -- user actions ----------------------------------------------------

    def select_metric(self, metric: MetricKey):
        metric = MetricKey(metric)
        if metric not in SELECTABLE_METRICS:
            raise ValueError(f"Metric not selectable: {metric.value}")
        if metric == self.selected_metric:
            return
        self.selected_metric = metric
        self._recompute_chart()
        self._notify()

    def refresh_status(self) -> bool:
        """Manual heartbeat check"""
        online = self.heartbeat.force_evaluate()
        self._notify()
        return online

    # -- store callbacks -------------------------------------------------

    def _is_current(self, epoch: int, source: str) -> bool:
        if epoch != self._epoch:
            logger.debug(f"Monitoring: discarding stale {source} callback")
            return False
        return True

    def _on_state(self, epoch: int, data: Any):
        if not self._is_current(epoch, "state"):
            return

        if not isinstance(data, dict) or not data:
            logger.warning(f"Monitoring: greenhouse {self.device_id} not found")
            self._snapshot = None
            self.phase = ScreenPhase.NOT_FOUND
            self.error = NOT_FOUND_MESSAGE
            self.recovery = Recovery.PAIR
            self.heartbeat.mark_offline()
            self._notify()
            return

        self._snapshot = GreenhouseSnapshot.from_store(self.device_id, data)
        if not self.heartbeat.running:
            self.heartbeat.start()

        signal = self._snapshot.liveness_signal
        if signal is not None:
            self.heartbeat.record_signal(signal)
        else:
            logger.debug("Monitoring: push without heartbeat or lastUpdate")

        self.phase = ScreenPhase.READY
        self.error = None
        self.recovery = None
        self._notify()

    def _on_state_error(self, epoch: int, error: Exception):
        if not self._is_current(epoch, "state error"):
            return
        logger.error(f"Monitoring: error reading greenhouse data: {error}")
        self.heartbeat.mark_offline()
        self._fail(LOAD_ERROR_MESSAGE, Recovery.RETRY)

    def _on_history(self, epoch: int, data: Any):
        if not self._is_current(epoch, "history"):
            return
        self._history = data if isinstance(data, dict) else {}
        logger.debug(f"Monitoring: {len(self._history)} history records loaded")
        self._recompute_chart()
        self._notify()

    def _on_history_error(self, epoch: int, error: Exception):
        if not self._is_current(epoch, "history error"):
            return
        # The chart keeps its last data; current state and heartbeat are unaffected
        logger.error(f"Monitoring: error loading history: {error}")

    def _on_online_changed(self, online: bool):
        self._notify()

    # -- helpers ---------------------------------------------------------

    def _fail(self, message: str, recovery: Recovery):
        self.phase = ScreenPhase.ERROR
        self.error = message
        self.recovery = recovery
        self._notify()

    def _recompute_chart(self):
        series = self.reducer.reduce(self._history, self.selected_metric)
        self._chart = build_chart_data(series, self.selected_metric)
