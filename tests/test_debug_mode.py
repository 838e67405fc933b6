import asyncio

import pytest

from ifungi_client.errors import InvalidSetpoint
from ifungi_client.services import DebugModeService, DevOption, DevValue, SimulatedField

DEVICE = "IFUNGI-001"
ROOT = f"greenhouses/{DEVICE}"


def test_enable_and_disable(store):
    async def runner():
        service = DebugModeService(store)
        await service.enable(DEVICE)
        assert store.get(f"{ROOT}/debug_mode") is True
        await service.disable(DEVICE)
        assert store.get(f"{ROOT}/debug_mode") is False

    asyncio.run(runner())


def test_session_always_disables(store):
    async def runner():
        service = DebugModeService(store)
        with pytest.raises(RuntimeError):
            async with service.session(DEVICE):
                assert store.get(f"{ROOT}/debug_mode") is True
                raise RuntimeError("operator closed the panel")
        assert store.get(f"{ROOT}/debug_mode") is False

    asyncio.run(runner())


def test_simulated_values(store):
    async def runner():
        service = DebugModeService(store)
        assert await service.set_simulated_value(DEVICE, SimulatedField.TEMPERATURE, "31,5") == 31.5
        await service.set_simulated_value(DEVICE, "co2Sim", 900)
        assert store.get(f"{ROOT}/debug_mode") == {"tempSim": 31.5, "co2Sim": 900.0}

    asyncio.run(runner())


def test_simulated_value_must_be_numeric(store):
    async def runner():
        service = DebugModeService(store)
        with pytest.raises(InvalidSetpoint):
            await service.set_simulated_value(DEVICE, SimulatedField.HUMIDITY, "wet")
        assert store.writes == []

    asyncio.run(runner())


def test_dev_options_are_mutually_exclusive(store):
    async def runner():
        service = DebugModeService(store)
        await service.select_dev_option(DEVICE, DevOption.PWM)
        assert store.writes[-1] == (ROOT, {
            "devmode/analogRead": False,
            "devmode/pwm": True,
            "devmode/boolean": False,
        })
        assert await service.selected_dev_option(DEVICE) == DevOption.PWM

        await service.select_dev_option(DEVICE, DevOption.BOOLEAN)
        assert await service.selected_dev_option(DEVICE) == DevOption.BOOLEAN

    asyncio.run(runner())


def test_no_option_selected(store):
    async def runner():
        assert await DebugModeService(store).selected_dev_option(DEVICE) is None

    asyncio.run(runner())


def test_pwm_value_requires_pwm_option(store):
    async def runner():
        service = DebugModeService(store)
        with pytest.raises(InvalidSetpoint):
            await service.set_dev_value(DEVICE, DevValue.PWM_VALUE, 128)

        await service.select_dev_option(DEVICE, DevOption.PWM)
        assert await service.set_dev_value(DEVICE, DevValue.PWM_VALUE, "128") == 128
        assert store.get(f"{ROOT}/devmode/pwmValue") == 128

    asyncio.run(runner())


def test_pin_rejects_negative(store):
    async def runner():
        service = DebugModeService(store)
        with pytest.raises(InvalidSetpoint):
            await service.set_dev_value(DEVICE, DevValue.PIN, -4)
        await service.set_dev_value(DEVICE, DevValue.PIN, 13)
        assert store.get(f"{ROOT}/devmode/pin") == 13

    asyncio.run(runner())
