"""Setpoint service - reads and writes operator thresholds"""

import logging
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError

from ..errors import InvalidSetpoint, WriteFailure
from ..models import SetpointChange, SetpointId, Setpoints
from ..paths import greenhouse_path
from .telemetry_store import Subscription, TelemetryStore

logger = logging.getLogger(__name__)


def validation_message(error: ValidationError) -> str:
    """First human-readable message of a pydantic ValidationError"""
    message = error.errors()[0]["msg"]
    prefix = "Value error, "
    return message[len(prefix):] if message.startswith(prefix) else message


class SetpointService:
    """Keeps the last confirmed setpoints per greenhouse"""

    def __init__(self, store: TelemetryStore):
        self.store = store
        self.current: Dict[str, Setpoints] = {}

    async def load(self, device_id: str) -> Setpoints:
        """One-shot read; missing fields take their defaults"""
        node = await self.store.read(f"{greenhouse_path(device_id)}/setpoints")
        setpoints = Setpoints.from_store(node if isinstance(node, dict) else None)
        self.current[device_id] = setpoints
        return setpoints

    def watch(self, device_id: str, callback: Callable[[Setpoints], None],
              on_error: Callable[[Exception], None] = None) -> Subscription:
        """Re-emit the setpoints on every push"""
        def on_value(node):
            setpoints = Setpoints.from_store(node if isinstance(node, dict) else None)
            self.current[device_id] = setpoints
            callback(setpoints)

        return self.store.subscribe(f"{greenhouse_path(device_id)}/setpoints", on_value, on_error)

    async def save(self, device_id: str, setpoint_id: SetpointId, raw_value: Any) -> Setpoints:
        """Validate and write one setpoint.

        The cached setpoints only change once the store acknowledges the
        write. Raises InvalidSetpoint or WriteFailure.
        """
        try:
            change = SetpointChange(setpoint=setpoint_id, value=raw_value)
        except ValidationError as e:
            raise InvalidSetpoint(validation_message(e)) from e

        try:
            await self.store.update(greenhouse_path(device_id), {change.spec.path: change.value})
        except WriteFailure:
            logger.error(f"Failed to save {change.spec.label} ({change.spec.path}) for {device_id}")
            raise

        base: Optional[Setpoints] = self.current.get(device_id) or Setpoints.from_store()
        updated = base.with_value(change.setpoint, change.value)
        self.current[device_id] = updated
        logger.info(f"{change.spec.label} = {change.value:g}{change.spec.unit} saved for {device_id}")
        return updated
