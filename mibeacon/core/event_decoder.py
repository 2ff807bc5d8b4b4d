"""Decoding of MiBeacon event blocks into typed events."""

from __future__ import annotations

import logging
import struct
from collections.abc import Callable, Iterator

from mibeacon.core.errors import BadEventLengthError, TruncatedError
from mibeacon.core.events import (
    Battery,
    Conductivity,
    Consumable,
    DecodedEvent,
    EventType,
    Formaldehyde,
    Humidity,
    Illuminance,
    Light,
    Moisture,
    MoistureDetected,
    Motion,
    Opening,
    Power,
    PowerAndTemperature,
    SmokeDetected,
    Temperature,
    TemperatureAndHumidity,
    TimeWithoutMotion,
    Unknown,
)
from mibeacon.core.model import EventBlock
from mibeacon.core.registry import ProductRegistry, default_registry

BLOCK_HEADER = struct.Struct("<HB")
T_STRUCT = struct.Struct("<h")
H_STRUCT = struct.Struct("<H")
TH_STRUCT = struct.Struct("<hH")
U32_STRUCT = struct.Struct("<I")

QUIRK_TRUNCATED_HUMIDITY = "truncated_humidity"
QUIRK_BINARY_LIGHT = "binary_light"

LOGGER = logging.getLogger(__name__)

_Routine = Callable[[bytes, frozenset[str]], DecodedEvent]


def _u24(payload: bytes) -> int:
    (value,) = U32_STRUCT.unpack(payload + b"\x00")
    return value


def _motion(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Motion(detected=payload[0] != 0)


def _motion_with_light(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Motion(detected=True, illuminance=_u24(payload))


def _temperature(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    (decicelsius,) = T_STRUCT.unpack(payload)
    return Temperature(centidegrees=decicelsius * 10)


def _power_and_temperature(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return PowerAndTemperature(power=payload[0] != 0, degrees=payload[1])


def _humidity(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    (permille,) = H_STRUCT.unpack(payload)
    if QUIRK_TRUNCATED_HUMIDITY in quirks:
        # These sensors report jagged tenths; whole percent is what the display shows.
        return Humidity(centipercent=(permille // 10) * 100)
    return Humidity(centipercent=permille * 10)


def _illuminance(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    lux = _u24(payload)
    if QUIRK_BINARY_LIGHT in quirks:
        # 100 means light, anything else dark.
        return Light(detected=lux == 100)
    return Illuminance(lux=lux)


def _moisture(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Moisture(percent=payload[0])


def _conductivity(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    (value,) = H_STRUCT.unpack(payload)
    return Conductivity(microsiemens=value)


def _battery(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Battery(percent=payload[0])


def _temperature_and_humidity(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    decicelsius, permille = TH_STRUCT.unpack(payload)
    return TemperatureAndHumidity(centidegrees=decicelsius * 10, centipercent=permille * 10)


def _formaldehyde(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    (value,) = H_STRUCT.unpack(payload)
    return Formaldehyde(centimilligrams=value)


def _power(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Power(on=payload[0] != 0)


def _consumable(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Consumable(percent_remaining=payload[0])


def _moisture_detected(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return MoistureDetected(detected=payload[0] > 0)


def _smoke_detected(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return SmokeDetected(detected=payload[0] > 0)


def _time_without_motion(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    (seconds,) = U32_STRUCT.unpack(payload)
    return TimeWithoutMotion(seconds=seconds)


def _light(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Light(detected=bool(payload[0]))


def _opening(payload: bytes, quirks: frozenset[str]) -> DecodedEvent:
    return Opening(state=payload[0])


# event type -> (exact payload size, decode routine)
DECODERS: dict[EventType, tuple[int, _Routine]] = {
    EventType.MOTION: (1, _motion),
    EventType.MOTION_WITH_LIGHT: (3, _motion_with_light),
    EventType.TEMPERATURE: (2, _temperature),
    EventType.POWER_AND_TEMPERATURE: (2, _power_and_temperature),
    EventType.HUMIDITY: (2, _humidity),
    EventType.ILLUMINANCE: (3, _illuminance),
    EventType.MOISTURE: (1, _moisture),
    EventType.CONDUCTIVITY: (2, _conductivity),
    EventType.BATTERY: (1, _battery),
    EventType.TEMPERATURE_AND_HUMIDITY: (4, _temperature_and_humidity),
    EventType.FORMALDEHYDE: (2, _formaldehyde),
    EventType.POWER: (1, _power),
    EventType.CONSUMABLE: (1, _consumable),
    EventType.MOISTURE_DETECTED: (1, _moisture_detected),
    EventType.SMOKE_DETECTED: (1, _smoke_detected),
    EventType.TIME_WITHOUT_MOTION: (4, _time_without_motion),
    EventType.LIGHT: (1, _light),
    EventType.OPENING: (1, _opening),
}


def iter_event_blocks(plaintext: bytes) -> Iterator[EventBlock]:
    offset = 0
    total = len(plaintext)
    while offset < total:
        remaining = total - offset
        if remaining < BLOCK_HEADER.size:
            raise TruncatedError("event block header", needed=BLOCK_HEADER.size, available=remaining)
        event_type, length = BLOCK_HEADER.unpack_from(plaintext, offset)
        offset += BLOCK_HEADER.size
        available = total - offset
        if length > available:
            raise BadEventLengthError(event_type, expected=length, actual=available)
        yield EventBlock(
            event_type=event_type,
            length=length,
            payload=bytes(plaintext[offset : offset + length]),
        )
        offset += length


def decode_block(block: EventBlock, quirks: frozenset[str] = frozenset()) -> DecodedEvent:
    try:
        event_type = EventType(block.event_type)
    except ValueError:
        LOGGER.debug("Unknown MiBeacon event 0x%04x: %s", block.event_type, block.payload.hex())
        return Unknown(event_type=block.event_type, raw=block.payload)

    size, routine = DECODERS[event_type]
    if block.length != size:
        raise BadEventLengthError(block.event_type, expected=size, actual=block.length)
    return routine(block.payload, quirks)


def decode_all(
    plaintext: bytes,
    product_id: int | None = None,
    *,
    registry: ProductRegistry | None = None,
) -> Iterator[DecodedEvent]:
    """Lazily decode every event block in `plaintext`.

    Events are yielded in wire order. A malformed block raises when it is
    reached, so callers iterating by hand keep whatever was yielded before.
    """
    device = None
    if product_id is not None:
        device = (registry if registry is not None else default_registry()).lookup(product_id)
    quirks = device.quirks if device is not None else frozenset()

    for block in iter_event_blocks(plaintext):
        if (
            device is not None
            and device.capabilities
            and block.event_type in DECODERS
            and block.event_type not in device.capabilities
        ):
            LOGGER.debug(
                "Product 0x%04x (%s) sent event 0x%04x outside its known capabilities",
                device.product_id,
                device.model,
                block.event_type,
            )
        yield decode_block(block, quirks)
