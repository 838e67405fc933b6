"""Actuator state derivation - maps raw relay fields to labelled, coloured states"""

from dataclasses import dataclass
from typing import Optional

from ..models import ActuatorState

NEUTRAL_COLOR = "#ccc"
OFF_COLOR = "#d3d3d3"


@dataclass(frozen=True)
class StatusBadge:
    """A label plus colour token for one actuator"""
    label: str
    color: str
    kind: str  # "off", "on", "heating", "cooling" or "unknown"


UNKNOWN = StatusBadge("--", NEUTRAL_COLOR, "unknown")


@dataclass(frozen=True)
class ActuatorBadges:
    climate: StatusBadge
    humidifier: StatusBadge
    lighting: StatusBadge
    exhaust: StatusBadge


def climate_state(actuators: Optional[ActuatorState]) -> StatusBadge:
    """Climate control from the relay pair.

    rele1 gates power and rele2 picks heating over cooling, so rele2 on with
    rele1 off is simply "off".
    """
    if actuators is None:
        return UNKNOWN
    if not actuators.climate_power:
        return StatusBadge("OFF", OFF_COLOR, "off")
    if actuators.climate_heat:
        return StatusBadge("Aquecendo", "#FFA500", "heating")
    return StatusBadge("Resfriando", "#B2F0F4", "cooling")


def humidifier_state(actuators: Optional[ActuatorState]) -> StatusBadge:
    if actuators is None:
        return UNKNOWN
    # Newer firmware publishes 'umidificador'; older ones only rele3
    state = actuators.humidifier if actuators.humidifier is not None else actuators.humidifier_relay
    if state:
        return StatusBadge("ON", "#00FF00", "on")
    return StatusBadge("OFF", OFF_COLOR, "off")


def lighting_state(actuators: Optional[ActuatorState]) -> StatusBadge:
    if actuators is None:
        return UNKNOWN
    if actuators.lighting.on:
        watts = actuators.lighting.watts or 0
        return StatusBadge(f"{watts:g} W", "#E0B0FF", "on")
    return StatusBadge("OFF", OFF_COLOR, "off")


def exhaust_state(actuators: Optional[ActuatorState]) -> StatusBadge:
    if actuators is None:
        return UNKNOWN
    if actuators.exhaust:
        return StatusBadge("ON", "#00CED1", "on")
    return StatusBadge("OFF", "#FF0000", "off")


def derive_badges(actuators: Optional[ActuatorState]) -> ActuatorBadges:
    return ActuatorBadges(
        climate=climate_state(actuators),
        humidifier=humidifier_state(actuators),
        lighting=lighting_state(actuators),
        exhaust=exhaust_state(actuators),
    )
