"""
Debug mode service.

Switches the greenhouse into debug mode, writes simulated sensor values and
drives the advanced dev-mode pin options. Only these debug fields are ever
written; sensor readings themselves stay owned by the greenhouse.
"""

import logging
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any

from ..errors import InvalidSetpoint
from ..paths import greenhouse_path
from ..utils.values import coerce_number, read_flag
from .telemetry_store import TelemetryStore

logger = logging.getLogger(__name__)


class SimulatedField(str, Enum):
    TEMPERATURE = "tempSim"
    HUMIDITY = "humSim"
    ILLUMINANCE = "luxSim"
    CO2 = "co2Sim"


class DevOption(str, Enum):
    """Mutually exclusive dev-mode operations"""
    ANALOG_READ = "analogRead"
    PWM = "pwm"
    BOOLEAN = "boolean"


class DevValue(str, Enum):
    PIN = "pin"
    PWM_VALUE = "pwmValue"


class DebugModeService:
    """Writes debug_mode and devmode fields of one greenhouse"""

    def __init__(self, store: TelemetryStore):
        self.store = store

    async def enable(self, device_id: str):
        await self.store.update(greenhouse_path(device_id), {"debug_mode": True})
        logger.info(f"Debug mode enabled for {device_id}")

    async def disable(self, device_id: str):
        await self.store.update(greenhouse_path(device_id), {"debug_mode": False})
        logger.info(f"Debug mode disabled for {device_id}")

    @asynccontextmanager
    async def session(self, device_id: str):
        """Debug mode on for the duration of the block, always switched off after"""
        await self.enable(device_id)
        try:
            yield self
        finally:
            try:
                await self.disable(device_id)
            except Exception as e:
                logger.error(f"Failed to disable debug mode for {device_id}: {e}")

    async def set_simulated_value(self, device_id: str, sim_field: SimulatedField, raw_value: Any) -> float:
        value = _parse_number(raw_value)
        sim_field = SimulatedField(sim_field)
        await self.store.update(greenhouse_path(device_id), {f"debug_mode/{sim_field.value}": value})
        logger.info(f"Simulated {sim_field.value} = {value} for {device_id}")
        return value

    async def select_dev_option(self, device_id: str, option: DevOption):
        """Turn on one dev-mode option and the others off, in a single update"""
        option = DevOption(option)
        updates = {f"devmode/{each.value}": each == option for each in DevOption}
        await self.store.update(greenhouse_path(device_id), updates)
        logger.info(f"Dev option {option.value} selected for {device_id}")

    async def selected_dev_option(self, device_id: str):
        node = await self.store.read(f"{greenhouse_path(device_id)}/devmode")
        if not isinstance(node, dict):
            return None
        for option in DevOption:
            if read_flag(node.get(option.value)):
                return option
        return None

    async def set_dev_value(self, device_id: str, key: DevValue, raw_value: Any) -> float:
        key = DevValue(key)
        value = _parse_number(raw_value)
        if key == DevValue.PWM_VALUE and await self.selected_dev_option(device_id) != DevOption.PWM:
            raise InvalidSetpoint("Selecione a opção PWM primeiro para editar seu valor")
        if value < 0:
            raise InvalidSetpoint("Os valores não podem ser negativos")
        await self.store.update(greenhouse_path(device_id), {f"devmode/{key.value}": value})
        return value


def _parse_number(raw_value: Any) -> float:
    if isinstance(raw_value, str):
        raw_value = raw_value.strip().replace(",", ".")
    value = coerce_number(raw_value)
    if value is None:
        raise InvalidSetpoint("Por favor, digite um valor numérico válido")
    return value
