"""
Setpoint models.

Every setpoint maps to exactly one store path below greenhouses/{id}. The
mapping is a fixed table so no path is ever built from user input.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..utils.values import coerce_number


class SetpointId(str, Enum):
    TEMP_MAX = "tempMax"
    TEMP_MIN = "tempMin"
    HUM_MIN = "humMin"
    HUM_MAX = "humMax"
    LUX = "lux"
    CO = "co"
    CO2 = "co2"
    TVOCS = "tvocs"


@dataclass(frozen=True)
class SetpointSpec:
    """Static description of one setpoint"""
    id: SetpointId
    path: str
    label: str
    unit: str
    default: float
    is_humidity: bool = False

    @property
    def field_name(self) -> str:
        return self.path.split("/")[-1]


SETPOINTS: Dict[SetpointId, SetpointSpec] = {
    SetpointId.TEMP_MAX: SetpointSpec(SetpointId.TEMP_MAX, "setpoints/tMax", "Temperatura Máxima", "°C", 24),
    SetpointId.TEMP_MIN: SetpointSpec(SetpointId.TEMP_MIN, "setpoints/tMin", "Temperatura Mínima", "°C", 18),
    SetpointId.HUM_MIN: SetpointSpec(SetpointId.HUM_MIN, "setpoints/uMin", "Umidade Mínima", "%", 85, is_humidity=True),
    SetpointId.HUM_MAX: SetpointSpec(SetpointId.HUM_MAX, "setpoints/uMax", "Umidade Máxima", "%", 93, is_humidity=True),
    SetpointId.LUX: SetpointSpec(SetpointId.LUX, "setpoints/lux", "Luminosidade Desejada", "LUX", 200),
    SetpointId.CO: SetpointSpec(SetpointId.CO, "setpoints/coSp", "Limite de CO", "PPM", 400),
    SetpointId.CO2: SetpointSpec(SetpointId.CO2, "setpoints/co2Sp", "Limite de CO₂", "PPM", 400),
    SetpointId.TVOCS: SetpointSpec(SetpointId.TVOCS, "setpoints/tvocsSp", "Limite de TVOCs", "PPB", 100),
}


class Setpoints(BaseModel):
    """Operator-configured thresholds consumed by the greenhouse control loop"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    temp_max: float = Field(24, alias="tMax", ge=0)
    temp_min: float = Field(18, alias="tMin", ge=0)
    hum_min: float = Field(85, alias="uMin", ge=0, le=100)
    hum_max: float = Field(93, alias="uMax", ge=0, le=100)
    lux: float = Field(200, alias="lux", ge=0)
    co: float = Field(400, alias="coSp", ge=0)
    co2: float = Field(400, alias="co2Sp", ge=0)
    tvocs: float = Field(100, alias="tvocsSp", ge=0)

    @classmethod
    def from_store(cls, node: Mapping[str, Any] = None) -> "Setpoints":
        """Build from the 'setpoints' node.

        Fields that are missing or not numeric keep their defaults. Values
        already stored by the greenhouse are not range-checked here, they are
        shown as they are.
        """
        values = {}
        for spec in SETPOINTS.values():
            number = coerce_number((node or {}).get(spec.field_name))
            if number is not None:
                values[spec.field_name] = number
        return cls.model_construct(**cls._by_attribute(values))

    @classmethod
    def _by_attribute(cls, values: Mapping[str, float]) -> Dict[str, float]:
        defaults = {name: info.default for name, info in cls.model_fields.items()}
        aliases = {info.alias: name for name, info in cls.model_fields.items()}
        defaults.update({aliases[key]: value for key, value in values.items()})
        return defaults

    def get(self, setpoint_id: SetpointId) -> float:
        return getattr(self, _ATTRIBUTE_BY_ID[SetpointId(setpoint_id)])

    def with_value(self, setpoint_id: SetpointId, value: float) -> "Setpoints":
        return self.model_copy(update={_ATTRIBUTE_BY_ID[SetpointId(setpoint_id)]: value})

    def to_store(self) -> Dict[str, float]:
        return self.model_dump(by_alias=True)


class SetpointChange(BaseModel):
    """A single operator edit, validated before it is written"""

    setpoint: SetpointId
    value: float

    @field_validator("value", mode="before")
    @classmethod
    def _parse_value(cls, raw):
        if isinstance(raw, str):
            raw = raw.strip().replace(",", ".")
        if isinstance(raw, bool):
            raise ValueError("Por favor, digite um valor numérico válido")
        number = coerce_number(raw)
        if number is None:
            raise ValueError("Por favor, digite um valor numérico válido")
        return number

    @model_validator(mode="after")
    def _check_range(self):
        spec = SETPOINTS[self.setpoint]
        if spec.is_humidity and not 0 <= self.value <= 100:
            raise ValueError("A umidade deve estar entre 0% e 100%")
        if self.value < 0:
            raise ValueError("Os valores não podem ser negativos")
        return self

    @property
    def spec(self) -> SetpointSpec:
        return SETPOINTS[self.setpoint]


_ATTRIBUTE_BY_ID = {
    SetpointId.TEMP_MAX: "temp_max",
    SetpointId.TEMP_MIN: "temp_min",
    SetpointId.HUM_MIN: "hum_min",
    SetpointId.HUM_MAX: "hum_max",
    SetpointId.LUX: "lux",
    SetpointId.CO: "co",
    SetpointId.CO2: "co2",
    SetpointId.TVOCS: "tvocs",
}
