"""HHCCJCY10 plant sensor (pink version) service data."""

from __future__ import annotations

import struct

from mibeacon.core.errors import TruncatedError
from mibeacon.core.events import (
    Battery,
    Conductivity,
    DecodedEvent,
    EventType,
    Illuminance,
    Moisture,
    Temperature,
)
from mibeacon.core.model import DeviceInfo

# reserved(4) moisture(1) temperature(2) illuminance(3) battery(1) conductivity(2)
_PACKET = struct.Struct("<4xBH3sBH")

HHCCJCY10_DEVICE = DeviceInfo(
    product_id=0xFD50,
    name="Plant Sensor",
    model="HHCCJCY10",
    manufacturer="HHCC Plant Technology Co. Ltd",
    capabilities=frozenset(
        {
            EventType.MOISTURE,
            EventType.TEMPERATURE,
            EventType.ILLUMINANCE,
            EventType.BATTERY,
            EventType.CONDUCTIVITY,
        }
    ),
    quirks=frozenset(),
)


def decode_hhccjcy10(data: bytes) -> tuple[DecodedEvent, ...]:
    if len(data) < _PACKET.size:
        raise TruncatedError("HHCCJCY10 packet", needed=_PACKET.size, available=len(data))
    moisture, decicelsius, illuminance, battery, conductivity = _PACKET.unpack_from(data)
    return (
        Moisture(percent=moisture),
        Temperature(centidegrees=decicelsius * 10),
        Illuminance(lux=int.from_bytes(illuminance, "little")),
        Battery(percent=battery),
        Conductivity(microsiemens=conductivity),
    )
