"""
IFungi Monitor - console client for a remote greenhouse

Subscribes to a greenhouse in the Firebase Realtime Database and logs its
sensor readings, actuator states, chart summary and online/offline status
whenever they change.

    python main.py --device IFUNGI-001 --metric umidade
    python main.py --demo
"""

import argparse
import asyncio
import logging
import random
import signal
import time
from datetime import datetime

from ifungi_client import config
from ifungi_client.core import MonitoringViewController, MonitoringViewState
from ifungi_client.models import MetricKey, SELECTABLE_METRICS, metric_option
from ifungi_client.paths import greenhouse_path, history_path
from ifungi_client.services import FirebaseTelemetryStore, InMemoryTelemetryStore
from ifungi_client.storage import SessionStore
from ifungi_client.utils.logger import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

DEMO_DEVICE_ID = "IFUNGI-DEMO"


def render(state: MonitoringViewState):
    """Log one view state"""
    status = "ONLINE" if state.online else "OFFLINE"
    if state.error:
        logger.warning(f"[{state.device_id}] {state.phase.value}: {state.error} (action: {state.recovery.value})")
        return
    if state.snapshot is None:
        logger.info(f"[{state.device_id}] {state.phase.value} - {status}")
        return

    option = metric_option(state.selected_metric)
    chart = state.chart
    summary = "no history"
    if not chart.range.empty:
        summary = (
            f"min {option.format(chart.range.actual_min)} / "
            f"max {option.format(chart.range.actual_max)} over {len(chart.values)} points"
        )
    badges = state.badges
    actuators = ""
    if badges is not None:
        actuators = (
            f" | clima {badges.climate.label}, umidificador {badges.humidifier.label}, "
            f"leds {badges.lighting.label}, exaustor {badges.exhaust.label}"
        )
    logger.info(
        f"[{state.device_id}] {status} | {option.label}: {state.current_value} ({summary}) | "
        f"reservatório: {state.water_status}{actuators}"
    )


async def simulate_greenhouse(store: InMemoryTelemetryStore, device_id: str, interval: float = 5.0):
    """Publish fake readings the way the greenhouse firmware does"""
    while True:
        now_ms = int(time.time() * 1000)
        sensors = {
            "temperatura": round(random.uniform(20, 26), 1),
            "umidade": round(random.uniform(80, 95)),
            "luminosidade": round(random.uniform(150, 250)),
            "co2": round(random.uniform(380, 450)),
            "co": round(random.uniform(0, 10)),
            "tvocs": round(random.uniform(0, 50)),
        }
        store.set(f"{greenhouse_path(device_id)}/sensores", sensors)
        store.set(f"{greenhouse_path(device_id)}/status/lastHeartbeat", now_ms)
        store.set(f"{greenhouse_path(device_id)}/lastUpdate", now_ms)
        store.set(f"{history_path(device_id)}/{now_ms}", {**sensors, "dataHora": datetime.now().isoformat()})
        await asyncio.sleep(interval)


def demo_store(device_id: str) -> InMemoryTelemetryStore:
    return InMemoryTelemetryStore({
        "greenhouses": {
            device_id: {
                "atuadores": {
                    "rele1": True, "rele2": False, "rele3": False, "rele4": True,
                    "leds": {"ligado": True, "watts": 18},
                },
                "niveis": {"agua": 65},
                "status": {"online": True, "ip": "192.168.0.50"},
            }
        }
    })


def parse_args():
    parser = argparse.ArgumentParser(description="Monitor a remote IFungi greenhouse")
    parser.add_argument("--device", default=config.DEVICE_ID, help="greenhouse id (default: active session)")
    parser.add_argument(
        "--metric",
        default=MetricKey.TEMPERATURE.value,
        choices=[metric.value for metric in SELECTABLE_METRICS],
        help="metric to chart",
    )
    parser.add_argument("--demo", action="store_true", help="run against a simulated greenhouse")
    return parser.parse_args()


async def run(args):
    tasks = []
    if args.demo:
        device_id = args.device or DEMO_DEVICE_ID
        store = demo_store(device_id)
        tasks.append(asyncio.create_task(simulate_greenhouse(store, device_id)))
    else:
        device_id = args.device
        store = FirebaseTelemetryStore()
        store.connect()

    controller = MonitoringViewController(store, session_store=SessionStore())
    controller.select_metric(args.metric)
    controller.add_listener(render)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    try:
        await controller.open(device_id)
        await stop_event.wait()
    finally:
        logger.info("Stopping IFungi monitor...")
        controller.close()
        for task in tasks:
            task.cancel()
        if isinstance(store, FirebaseTelemetryStore):
            store.disconnect()


def main():
    args = parse_args()
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
