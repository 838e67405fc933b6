import asyncio

import pytest

from conftest import settle
from ifungi_client.core import MonitoringViewController, Recovery, ScreenPhase
from ifungi_client.core.monitoring_controller import NO_DEVICE_MESSAGE, NOT_FOUND_MESSAGE
from ifungi_client.models import MetricKey

DEVICE = "IFUNGI-001"


def _greenhouse(clock, **overrides):
    data = {
        "sensores": {"temperatura": 23.46, "umidade": 88, "luminosidade": 500, "co2": 410, "co": 3},
        "niveis": {"agua": 55},
        "atuadores": {"rele1": True, "rele2": True, "rele3": False, "rele4": False,
                      "leds": {"ligado": True, "watts": 12}},
        "status": {"online": True, "lastHeartbeat": clock.now + 1},
        "lastUpdate": clock.now,
    }
    data.update(overrides)
    return data


def _history(count, start_ms=1736503200000):
    return {
        str(start_ms + i * 60000): {"temperatura": 20 + i % 5, "dataHora": start_ms + i * 60000}
        for i in range(count)
    }


@pytest.fixture
def controller(store, session_store, monitor):
    controller = MonitoringViewController(store, session_store=session_store, heartbeat=monitor)
    yield controller
    controller.close()


def test_open_with_device_reaches_ready(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        phases = []
        controller.add_listener(lambda state: phases.append(state.phase))

        assert await controller.open(DEVICE) == DEVICE
        await settle()

        state = controller.state
        assert state.phase == ScreenPhase.READY
        assert state.online is True
        assert state.current_value == "23.5°C"
        assert state.water_status == "Com água"
        assert state.badges.climate.label == "Aquecendo"
        assert state.badges.lighting.label == "12 W"
        assert list(dict.fromkeys(phases)) == [
            ScreenPhase.RESOLVING, ScreenPhase.SUBSCRIBING, ScreenPhase.LOADING, ScreenPhase.READY,
        ]
        assert controller.heartbeat.last_alive_at == clock.now + 1

    asyncio.run(runner())


def test_open_falls_back_to_session(store, session_store, controller, clock):
    async def runner():
        session_store.save("alice", DEVICE)
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        assert await controller.open() == DEVICE
        await settle()
        assert controller.state.phase == ScreenPhase.READY

    asyncio.run(runner())


def test_open_without_device_offers_pairing(controller):
    async def runner():
        assert await controller.open() is None
        state = controller.state
        assert state.phase == ScreenPhase.ERROR
        assert state.error == NO_DEVICE_MESSAGE
        assert state.recovery == Recovery.PAIR
        assert controller.attached is False

    asyncio.run(runner())


def test_missing_greenhouse_is_not_found(controller):
    async def runner():
        await controller.open("IFUNGI-404")
        await settle()
        state = controller.state
        assert state.phase == ScreenPhase.NOT_FOUND
        assert state.error == NOT_FOUND_MESSAGE
        assert state.recovery == Recovery.PAIR
        assert state.online is False
        assert controller.heartbeat.running is False

    asyncio.run(runner())


def test_greenhouse_appearing_after_not_found(store, controller, clock):
    async def runner():
        await controller.open(DEVICE)
        await settle()
        assert controller.state.phase == ScreenPhase.NOT_FOUND

        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        await settle()
        assert controller.state.phase == ScreenPhase.READY
        assert controller.state.online is True
        assert controller.heartbeat.running is True

    asyncio.run(runner())


def test_subscription_failure_offers_retry(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        store.failing_paths.add(f"greenhouses/{DEVICE}")
        await controller.open(DEVICE)
        await settle()

        state = controller.state
        assert state.phase == ScreenPhase.ERROR
        assert state.recovery == Recovery.RETRY
        assert state.online is False
        assert controller.heartbeat.running is False

        store.failing_paths.clear()
        await controller.retry()
        await settle()
        assert controller.state.phase == ScreenPhase.READY

    asyncio.run(runner())


def test_heartbeat_goes_offline_without_new_signal(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        await controller.open(DEVICE)
        await settle()

        clock.advance(30000)
        assert controller.refresh_status() is False
        assert controller.state.online is False

        store.set(f"greenhouses/{DEVICE}/status/lastHeartbeat", clock.now)
        await settle()
        assert controller.state.online is True

    asyncio.run(runner())


def test_switching_device_discards_stale_callbacks(store, controller, clock):
    async def runner():
        store.set("greenhouses/A", _greenhouse(clock, sensores={"temperatura": 10}))
        store.set("greenhouses/B", _greenhouse(clock, sensores={"temperatura": 30}))

        controller.attach("A")
        stale_epoch = controller._epoch
        controller.attach("B")
        await settle()
        assert controller.state.current_value == "30.0°C"

        controller._on_state(stale_epoch, _greenhouse(clock, sensores={"temperatura": 10}))
        controller._on_history(stale_epoch, _history(3))
        assert controller.device_id == "B"
        assert controller.state.current_value == "30.0°C"
        assert controller.state.chart.values == ()

        store.set("greenhouses/A/sensores/temperatura", 11)
        await settle()
        assert controller.state.current_value == "30.0°C"

    asyncio.run(runner())


def test_attach_same_device_is_a_no_op(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        controller.attach(DEVICE)
        epoch = controller._epoch
        controller.attach(DEVICE)
        assert controller._epoch == epoch

    asyncio.run(runner())


def test_close_releases_subscriptions_and_poll(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        await controller.open(DEVICE)
        await settle()
        assert controller.heartbeat.running is True

        seen = []
        controller.add_listener(seen.append)
        controller.close()
        assert controller.attached is False
        assert controller.heartbeat.running is False

        store.set(f"greenhouses/{DEVICE}/sensores/temperatura", 40)
        await settle()
        assert seen == []

    asyncio.run(runner())


def test_history_window_is_limited_and_charted(store, session_store, monitor, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        store.set(f"historico/{DEVICE}", _history(60))
        controller = MonitoringViewController(store, session_store=session_store, heartbeat=monitor, history_limit=50)
        await controller.open(DEVICE)
        await settle()

        chart = controller.state.chart
        assert len(chart.values) == 50
        assert len(chart.y_labels) == 6
        assert chart.range.actual_min == 20
        assert chart.range.actual_max == 24
        controller.close()

    asyncio.run(runner())


def test_history_error_keeps_current_state(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        store.failing_paths.add(f"historico/{DEVICE}")
        await controller.open(DEVICE)
        await settle()
        assert controller.state.phase == ScreenPhase.READY
        assert controller.state.chart.values == ()

    asyncio.run(runner())


def test_select_metric_recomputes_chart(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        store.set(f"historico/{DEVICE}", {
            "1": {"temperatura": 21, "umidade": 80, "dataHora": "2025-01-10T10:00:00"},
            "2": {"temperatura": 22, "umidade": None, "dataHora": "2025-01-10T10:01:00"},
        })
        await controller.open(DEVICE)
        await settle()
        assert controller.state.chart.values == (21.0, 22.0)

        controller.select_metric(MetricKey.HUMIDITY)
        state = controller.state
        assert state.chart.values == (80.0,)
        assert state.current_value == "88%"
        assert state.chart.color == "#4ECDC4"

        with pytest.raises(ValueError):
            controller.select_metric(MetricKey.TVOCS)

    asyncio.run(runner())


def test_water_level(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock, niveis={"agua": 20}))
        assert controller.state.water_status == "Carregando..."
        await controller.open(DEVICE)
        await settle()
        assert controller.state.water_status == "Sem água"

    asyncio.run(runner())


def test_malformed_nodes_still_reach_ready(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", {
            "sensores": {"temperatura": 22},
            "niveis": 55,
            "atuadores": {"leds": True},
            "status": {"lastHeartbeat": clock.now + 5},
        })
        await controller.open(DEVICE)
        await settle()

        state = controller.state
        assert state.phase == ScreenPhase.READY
        assert state.current_value == "22.0°C"
        assert state.water_status == "Sem água"
        assert state.badges.lighting.label == "OFF"
        assert controller.heartbeat.last_alive_at == clock.now + 5

    asyncio.run(runner())


def test_close_during_session_read_does_not_attach(store, session_store, controller, clock):
    async def runner():
        session_store.save("alice", DEVICE)
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        task = asyncio.create_task(controller.open())
        await asyncio.sleep(0)

        controller.close()
        assert await task is None
        await settle()
        assert controller.attached is False
        assert controller.heartbeat.running is False
        assert controller.device_id is None

    asyncio.run(runner())


def test_attach_during_session_read_wins(store, session_store, controller, clock):
    async def runner():
        session_store.save("alice", "A")
        store.set("greenhouses/A", _greenhouse(clock))
        store.set("greenhouses/B", _greenhouse(clock, sensores={"temperatura": 30}))
        task = asyncio.create_task(controller.open())
        await asyncio.sleep(0)

        controller.attach("B")
        assert await task is None
        await settle()
        state = controller.state
        assert state.device_id == "B"
        assert state.phase == ScreenPhase.READY
        assert state.current_value == "30.0°C"

    asyncio.run(runner())


def test_closed_controller_ignores_attach_and_retry(store, controller, clock):
    async def runner():
        store.set(f"greenhouses/{DEVICE}", _greenhouse(clock))
        controller.close()
        controller.attach(DEVICE)
        assert await controller.retry() is None
        assert await controller.open(DEVICE) is None
        await settle()
        assert controller.attached is False
        assert controller.heartbeat.running is False

    asyncio.run(runner())
