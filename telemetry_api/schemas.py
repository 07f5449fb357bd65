from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    Field,
    StrictInt,
    StrictStr,
    TypeAdapter,
    ValidationError,
    confloat,
    field_validator,
    model_validator,
)

from .core.domain.reading import MeasurementType

DEFAULT_DEVICE_ID = "esp32-001"
DEFAULT_LOCATION = "Ward A"

MEASUREMENT_FIELDS = tuple(m.reading_field for m in MeasurementType)

# Strict: un bool no es una medición y un string numérico tampoco.
Number = Union[StrictInt, confloat(strict=True, allow_inf_nan=False)]

_NUMBER = TypeAdapter(Number)
_TEXT_DEFAULTS = {"device_id": DEFAULT_DEVICE_ID, "location": DEFAULT_LOCATION}


def _representable(value: Union[int, float]) -> float:
    # Un entero JSON arbitrariamente grande no cabe en un float.
    try:
        return float(value)
    except OverflowError:
        raise ValueError("number is too large") from None


def _is_measurement(value: Any) -> bool:
    try:
        _representable(_NUMBER.validate_python(value))
    except (ValidationError, ValueError):
        return False
    return True


class ReadingIn(BaseModel):
    """Registro de ingesta tal como lo envía el dispositivo.

    - device_id / location ausentes o vacíos toman el default del despliegue
    - methane / temperature / humidity son números finitos
    - timestamp es opcional (ms desde epoch, no negativo)
    - Con un ``error`` no vacío, las mediciones ausentes o inválidas valen 0
    """

    device_id: Optional[StrictStr] = DEFAULT_DEVICE_ID
    location: Optional[StrictStr] = DEFAULT_LOCATION
    methane: Number
    temperature: Number
    humidity: Number
    timestamp: Optional[Number] = None
    error: Optional[StrictStr] = None

    @model_validator(mode="before")
    @classmethod
    def zero_faulted_measurements(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        error = data.get("error")
        if not isinstance(error, str) or not error.strip():
            return data
        data = dict(data)
        for name in MEASUREMENT_FIELDS:
            if not _is_measurement(data.get(name)):
                # Fallo de sensor: el 0 representa "sin dato".
                data[name] = 0
        return data

    @field_validator("device_id", "location")
    @classmethod
    def default_blank_text(cls, value: Optional[str], info) -> str:
        if value is None or not value.strip():
            return _TEXT_DEFAULTS[info.field_name]
        return value.strip()

    @field_validator("methane", "temperature", "humidity")
    @classmethod
    def as_float(cls, value: Union[int, float]) -> float:
        return _representable(value)

    @field_validator("timestamp")
    @classmethod
    def non_negative_timestamp(cls, value: Optional[Union[int, float]]) -> Optional[int]:
        if value is None:
            return None
        if _representable(value) < 0:
            raise ValueError("timestamp must not be negative")
        return int(value)

    @field_validator("error")
    @classmethod
    def blank_error_is_absent(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return value.strip() or None


class ReadingOut(BaseModel):
    device_id: str
    location: str
    methane: float
    temperature: float
    humidity: float
    timestamp: int
    error: Optional[str] = None


class ReceiveResult(BaseModel):
    success: bool = True
    message: str = "Data received"
    reading: ReadingOut


class ReadingsResult(BaseModel):
    success: bool = True
    count: int
    readings: List[ReadingOut] = Field(default_factory=list)


class ErrorResult(BaseModel):
    success: bool = False
    error: str


class ChannelOut(BaseModel):
    id: str
    location: str
    type: str
    label: str
    unit: str
    safe_range: List[float]
    warning_threshold: float


class ChannelsResult(BaseModel):
    success: bool = True
    count: int
    channels: List[ChannelOut] = Field(default_factory=list)


class AlertOut(BaseModel):
    channel_id: str
    created_at: int
    message: str
    severity: str
    timestamp: int
    acknowledged: bool


class AlertsResult(BaseModel):
    success: bool = True
    count: int
    alerts: List[AlertOut] = Field(default_factory=list)


class AcknowledgeResult(BaseModel):
    success: bool = True
    alert: AlertOut


class ChannelStatusOut(BaseModel):
    channel_id: str
    location: str
    type: str
    label: str
    unit: str
    status: str
    # None cuando el canal está OFFLINE (el dashboard muestra "--").
    value: Optional[float] = None
    timestamp: Optional[int] = None
    error: Optional[str] = None
    severity: Optional[str] = None


class StatusResult(BaseModel):
    success: bool = True
    connected: bool
    active_alerts: int
    channels: List[ChannelStatusOut] = Field(default_factory=list)
    reconciler: Dict[str, Any] = Field(default_factory=dict)


class MeasurementStats(BaseModel):
    avg: float
    min: float
    max: float


class AlertStats(BaseModel):
    total: int
    critical: int
    warning: int
    acknowledged: int
    by_type: Dict[str, int]
    by_location: Dict[str, int]


class AnalyticsResult(BaseModel):
    success: bool = True
    alerts: AlertStats
    readings: Dict[str, MeasurementStats]
    total_readings: int
