"""Greenhouse current-state models"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from ..utils.values import as_mapping, coerce_number, epoch_ms, read_flag
from .sensor_data import SensorSample


def _debug_enabled(value: Any) -> bool:
    # debug_mode is a plain flag, or an object once simulation values are written under it
    if isinstance(value, Mapping):
        return bool(value)
    return bool(read_flag(value))


@dataclass(frozen=True)
class LightingState:
    """LED strip state"""
    on: Optional[bool] = None
    watts: Optional[float] = None


@dataclass(frozen=True)
class ActuatorState:
    """Relay and actuator fields, each read as True/False/None (unknown)"""
    climate_power: Optional[bool] = None  # rele1
    climate_heat: Optional[bool] = None  # rele2
    humidifier_relay: Optional[bool] = None  # rele3
    humidifier: Optional[bool] = None  # umidificador
    exhaust: Optional[bool] = None  # rele4
    lighting: LightingState = field(default_factory=LightingState)

    @classmethod
    def from_store(cls, atuadores: Optional[Mapping[str, Any]]) -> Optional["ActuatorState"]:
        """Build from the 'atuadores' node; None when the node is missing"""
        atuadores = as_mapping(atuadores)
        if atuadores is None:
            return None
        leds = as_mapping(atuadores.get("leds")) or {}
        return cls(
            climate_power=read_flag(atuadores.get("rele1")),
            climate_heat=read_flag(atuadores.get("rele2")),
            humidifier_relay=read_flag(atuadores.get("rele3")),
            humidifier=read_flag(atuadores.get("umidificador")),
            exhaust=read_flag(atuadores.get("rele4")),
            lighting=LightingState(
                on=read_flag(leds.get("ligado")),
                watts=coerce_number(leds.get("watts")),
            ),
        )


@dataclass(frozen=True)
class DeviceStatus:
    """Status node published by the greenhouse"""
    online: Optional[bool] = None
    ip: Optional[str] = None
    last_heartbeat: Optional[int] = None  # epoch ms


@dataclass(frozen=True)
class GreenhouseSnapshot:
    """Current state of one greenhouse as pushed by the store"""
    device_id: str
    sensors: SensorSample
    actuators: Optional[ActuatorState]
    status: DeviceStatus
    last_update: Optional[int] = None  # epoch ms
    debug_mode: bool = False

    @classmethod
    def from_store(cls, device_id: str, data: Mapping[str, Any]) -> "GreenhouseSnapshot":
        status = as_mapping(data.get("status")) or {}
        return cls(
            device_id=device_id,
            sensors=SensorSample.from_store(data.get("sensores"), data.get("niveis")),
            actuators=ActuatorState.from_store(data.get("atuadores")),
            status=DeviceStatus(
                online=read_flag(status.get("online")),
                ip=status.get("ip"),
                last_heartbeat=epoch_ms(status.get("lastHeartbeat")),
            ),
            last_update=epoch_ms(data.get("lastUpdate")),
            debug_mode=_debug_enabled(data.get("debug_mode")),
        )

    @property
    def liveness_signal(self) -> Optional[int]:
        """Heartbeat timestamp, falling back to lastUpdate"""
        if self.status.last_heartbeat is not None:
            return self.status.last_heartbeat
        return self.last_update
