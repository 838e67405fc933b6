"""Sensor data models and metric definitions"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from .. import config
from ..utils.values import as_mapping, coerce_number


class MetricKey(str, Enum):
    """Sensor fields as published by the greenhouse"""
    TEMPERATURE = "temperatura"
    HUMIDITY = "umidade"
    ILLUMINANCE = "luminosidade"
    CO2 = "co2"
    CO = "co"
    TVOCS = "tvocs"


@dataclass(frozen=True)
class MetricOption:
    """How a metric is labelled, formatted and coloured on the chart"""
    key: MetricKey
    label: str
    unit: str
    decimals: int
    color: str
    spaced_unit: bool = True

    def format(self, value: Optional[float]) -> str:
        """Format a current reading, e.g. '23.5°C' or '500 LUX'"""
        if value is None:
            return f"--{self._suffix()}"
        return f"{value:.{self.decimals}f}{self._suffix()}"

    def axis_label(self, value: float) -> str:
        """Format a value for the Y axis, e.g. '23.5°C' or '500LUX'"""
        return f"{value:.{self.decimals}f}{self.unit}"

    def _suffix(self) -> str:
        return f" {self.unit}" if self.spaced_unit else self.unit


METRIC_OPTIONS: Dict[MetricKey, MetricOption] = {
    MetricKey.TEMPERATURE: MetricOption(MetricKey.TEMPERATURE, "Temperatura", "°C", 1, "#FF6B6B", spaced_unit=False),
    MetricKey.HUMIDITY: MetricOption(MetricKey.HUMIDITY, "Umidade", "%", 0, "#4ECDC4", spaced_unit=False),
    MetricKey.ILLUMINANCE: MetricOption(MetricKey.ILLUMINANCE, "Luminosidade", "LUX", 0, "#FFD166"),
    MetricKey.CO2: MetricOption(MetricKey.CO2, "CO2", "PPM", 0, "#06D6A0"),
    MetricKey.CO: MetricOption(MetricKey.CO, "CO", "PPM", 0, "#118AB2"),
    MetricKey.TVOCS: MetricOption(MetricKey.TVOCS, "TVOCs", "PPB", 0, "#9B5DE5"),
}

# Metrics the operator can pick for the chart
SELECTABLE_METRICS = (
    MetricKey.TEMPERATURE,
    MetricKey.HUMIDITY,
    MetricKey.ILLUMINANCE,
    MetricKey.CO2,
    MetricKey.CO,
)


def metric_option(key) -> MetricOption:
    """Look up a MetricOption by MetricKey or its raw store name"""
    return METRIC_OPTIONS[MetricKey(key)]


@dataclass(frozen=True)
class SensorSample:
    """One telemetry snapshot"""
    temperature: Optional[float]  # Celsius
    humidity: Optional[float]  # Percentage
    illuminance: Optional[float]  # Lux
    co2: Optional[float]  # PPM
    co: Optional[float]  # PPM
    tvocs: Optional[float] = None  # PPB
    water_ok: Optional[bool] = None

    @classmethod
    def from_store(cls, sensors: Optional[Mapping[str, Any]], levels: Optional[Mapping[str, Any]] = None):
        """Build from the 'sensores' and 'niveis' nodes of a greenhouse.

        A node that is not an object is read as missing.
        """
        sensors = as_mapping(sensors) or {}
        levels = as_mapping(levels)
        water_ok = None
        if levels is not None:
            raw_water = coerce_number(levels.get("agua"))
            water_ok = raw_water is not None and raw_water > config.WATER_LEVEL_THRESHOLD
        return cls(
            temperature=coerce_number(sensors.get(MetricKey.TEMPERATURE.value)),
            humidity=coerce_number(sensors.get(MetricKey.HUMIDITY.value)),
            illuminance=coerce_number(sensors.get(MetricKey.ILLUMINANCE.value)),
            co2=coerce_number(sensors.get(MetricKey.CO2.value)),
            co=coerce_number(sensors.get(MetricKey.CO.value)),
            tvocs=coerce_number(sensors.get(MetricKey.TVOCS.value)),
            water_ok=water_ok,
        )

    def value_of(self, metric: MetricKey) -> Optional[float]:
        """Current value of a metric, or None when not reported"""
        return {
            MetricKey.TEMPERATURE: self.temperature,
            MetricKey.HUMIDITY: self.humidity,
            MetricKey.ILLUMINANCE: self.illuminance,
            MetricKey.CO2: self.co2,
            MetricKey.CO: self.co,
            MetricKey.TVOCS: self.tvocs,
        }[MetricKey(metric)]


@dataclass(frozen=True)
class HistoryRecord:
    """A retained sample with its capture key and capture timestamp"""
    capture_key: str
    captured_at: Any  # raw 'dataHora', falls back to the capture key
    values: Mapping[str, Any] = field(default_factory=dict)

    def raw_value(self, metric: MetricKey) -> Any:
        return self.values.get(MetricKey(metric).value)


@dataclass(frozen=True)
class SeriesPoint:
    """One plottable point of the reduced history"""
    timestamp: datetime
    value: float
    capture_key: str = ""
