"""
Heartbeat liveness monitor.

Decides whether the remote greenhouse is reachable from the timestamps it
publishes. The decision is re-evaluated on a fixed poll cadence and right
after every accepted signal, so the displayed status is never more than one
poll interval stale.

While the grace window is active after start(), the greenhouse is reported
online no matter how old the evidence is; the first heartbeat may simply not
have arrived yet. The grace window ends the first time it is exceeded and is
only re-armed by a new start().
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from .. import config
from ..utils.values import coerce_number

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class HeartbeatConfig:
    """Heartbeat tolerances in milliseconds"""
    offline_threshold_ms: int = 25000
    poll_interval_ms: int = 5000
    grace_window_ms: int = 10000

    @classmethod
    def from_config(cls) -> "HeartbeatConfig":
        return cls(
            offline_threshold_ms=config.HEARTBEAT_OFFLINE_THRESHOLD_MS,
            poll_interval_ms=config.HEARTBEAT_POLL_INTERVAL_MS,
            grace_window_ms=config.HEARTBEAT_GRACE_WINDOW_MS,
        )

    @classmethod
    def simple(cls) -> "HeartbeatConfig":
        """45s threshold, 10s poll and no grace window"""
        return cls(offline_threshold_ms=45000, poll_interval_ms=10000, grace_window_ms=0)


@dataclass(frozen=True)
class HeartbeatStatus:
    """Snapshot of the monitor for display"""
    online: bool
    last_alive_at: int
    elapsed_ms: int
    grace_active: bool
    running: bool


class HeartbeatMonitor:
    """Online/offline state machine fed by liveness timestamps"""

    def __init__(self, heartbeat_config: HeartbeatConfig = None, clock: Callable[[], int] = None):
        self.config = heartbeat_config or HeartbeatConfig.from_config()
        self._clock = clock or now_ms
        self.last_alive_at = 0
        self.is_online = False
        self.grace_active = False
        self._poll_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._listeners: List[Callable[[bool], None]] = []

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def add_listener(self, callback: Callable[[bool], None]):
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[bool], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def start(self, start_ms: int = None):
        """Reset evidence to `start_ms` (default: now), arm grace and poll"""
        self._cancel_poll()
        self._generation += 1
        self.last_alive_at = self._clock() if start_ms is None else int(start_ms)
        self.grace_active = True
        self._publish(True)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("Heartbeat: no running event loop, polling disabled")
            return

        self._poll_task = loop.create_task(self._poll_loop(self._generation))
        logger.info(
            f"Heartbeat: monitoring started (check: {self.config.poll_interval_ms}ms, "
            f"timeout: {self.config.offline_threshold_ms}ms, grace: {self.config.grace_window_ms}ms)"
        )

    def stop(self):
        """Stop polling. Safe to call repeatedly."""
        self._generation += 1
        if self._cancel_poll():
            logger.info("Heartbeat: monitoring stopped")

    def _cancel_poll(self) -> bool:
        task, self._poll_task = self._poll_task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    async def _poll_loop(self, generation: int):
        interval = self.config.poll_interval_ms / 1000
        try:
            while generation == self._generation:
                await asyncio.sleep(interval)
                if generation != self._generation:
                    break
                self.evaluate(self._clock())
        except asyncio.CancelledError:
            pass

    def record_signal(self, timestamp: Any) -> bool:
        """Accept a liveness timestamp if it is newer than the last one.

        Returns True when the signal was accepted. Stale or malformed values
        are ignored.
        """
        value = coerce_number(timestamp)
        if value is None:
            logger.debug(f"Heartbeat: ignoring malformed signal {timestamp!r}")
            return False
        value = int(value)
        if value <= self.last_alive_at:
            return False

        previous = self.last_alive_at
        self.last_alive_at = value
        logger.debug(f"Heartbeat: updated to {value} (diff: {value - previous}ms)")
        self.evaluate(self._clock())
        return True

    def evaluate(self, current_ms: int = None) -> bool:
        """Recompute and publish the online flag; returns it"""
        if current_ms is None:
            current_ms = self._clock()
        elapsed = current_ms - self.last_alive_at

        if self.grace_active:
            if elapsed < self.config.grace_window_ms:
                self._publish(True)
                return True
            self.grace_active = False
            logger.debug("Heartbeat: grace period over")

        online = elapsed < self.config.offline_threshold_ms
        self._publish(online)
        return online

    def force_evaluate(self) -> bool:
        """Manual status check; same as a poll tick"""
        logger.debug("Heartbeat: manual check requested")
        return self.evaluate(self._clock())

    def mark_offline(self):
        """Report offline immediately and stop polling (device missing or store error)"""
        self.stop()
        self.grace_active = False
        self._publish(False)

    def status(self, current_ms: int = None) -> HeartbeatStatus:
        if current_ms is None:
            current_ms = self._clock()
        return HeartbeatStatus(
            online=self.is_online,
            last_alive_at=self.last_alive_at,
            elapsed_ms=max(0, current_ms - self.last_alive_at),
            grace_active=self.grace_active,
            running=self.running,
        )

    def _publish(self, online: bool):
        if online == self.is_online:
            return
        self.is_online = online
        logger.info(f"Heartbeat: status changed to {'ONLINE' if online else 'OFFLINE'}")
        for callback in list(self._listeners):
            try:
                callback(online)
            except Exception as e:
                logger.error(f"Heartbeat listener failed: {e}", exc_info=True)
