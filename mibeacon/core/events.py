"""Decoded MiBeacon event variants.

Every known object id decodes to a frozen dataclass. Object ids that are
well formed but not in :class:`EventType` decode to :class:`Unknown`.

Object definitions:
https://iot.mi.com/new/doc/accesses/direct-access/embedded-development/ble/object-definition
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class EventType(IntEnum):
    MOTION = 0x0003
    MOTION_WITH_LIGHT = 0x000F
    TEMPERATURE = 0x1004
    POWER_AND_TEMPERATURE = 0x1005
    HUMIDITY = 0x1006
    ILLUMINANCE = 0x1007
    MOISTURE = 0x1008
    CONDUCTIVITY = 0x1009
    BATTERY = 0x100A
    TEMPERATURE_AND_HUMIDITY = 0x100D
    FORMALDEHYDE = 0x1010
    POWER = 0x1012
    CONSUMABLE = 0x1013
    MOISTURE_DETECTED = 0x1014
    SMOKE_DETECTED = 0x1015
    TIME_WITHOUT_MOTION = 0x1017
    LIGHT = 0x1018
    OPENING = 0x1019

    @property
    def slug(self) -> str:
        return self.name.lower()

    @classmethod
    def from_slug(cls, slug: str) -> EventType:
        return cls[slug.strip().upper()]


class OpeningState(IntEnum):
    OPEN = 0
    CLOSED = 1
    CLOSING_TIMEOUT = 2
    DEVICE_RESET = 3


@dataclass(frozen=True)
class Motion:
    detected: bool
    illuminance: int | None = None


@dataclass(frozen=True)
class Temperature:
    centidegrees: int

    @property
    def celsius(self) -> float:
        return self.centidegrees / 100


@dataclass(frozen=True)
class PowerAndTemperature:
    power: bool
    degrees: int


@dataclass(frozen=True)
class Humidity:
    centipercent: int

    @property
    def percent(self) -> float:
        return self.centipercent / 100


@dataclass(frozen=True)
class Illuminance:
    lux: int


@dataclass(frozen=True)
class Light:
    detected: bool


@dataclass(frozen=True)
class Moisture:
    percent: int


@dataclass(frozen=True)
class Conductivity:
    microsiemens: int


@dataclass(frozen=True)
class Battery:
    percent: int


@dataclass(frozen=True)
class TemperatureAndHumidity:
    centidegrees: int
    centipercent: int


@dataclass(frozen=True)
class Formaldehyde:
    # hundredths of mg/m³
    centimilligrams: int

    @property
    def milligrams_per_cubic_meter(self) -> float:
        return self.centimilligrams / 100


@dataclass(frozen=True)
class Power:
    on: bool


@dataclass(frozen=True)
class Consumable:
    percent_remaining: int


@dataclass(frozen=True)
class MoistureDetected:
    detected: bool


@dataclass(frozen=True)
class SmokeDetected:
    detected: bool


@dataclass(frozen=True)
class TimeWithoutMotion:
    seconds: int

    @property
    def motion_detected(self) -> bool:
        # Anything up to 30 seconds counts as motion in the vendor app.
        return self.seconds <= 30


@dataclass(frozen=True)
class Opening:
    state: int

    @property
    def is_open(self) -> bool:
        return self.state in (OpeningState.OPEN, OpeningState.CLOSING_TIMEOUT)


@dataclass(frozen=True)
class Weight:
    kilograms: float
    stabilized: bool


@dataclass(frozen=True)
class Impedance:
    ohms: int


@dataclass(frozen=True)
class Unknown:
    event_type: int
    raw: bytes


DecodedEvent = (
    Motion
    | Temperature
    | PowerAndTemperature
    | Humidity
    | Illuminance
    | Light
    | Moisture
    | Conductivity
    | Battery
    | TemperatureAndHumidity
    | Formaldehyde
    | Power
    | Consumable
    | MoistureDetected
    | SmokeDetected
    | TimeWithoutMotion
    | Opening
    | Weight
    | Impedance
    | Unknown
)
