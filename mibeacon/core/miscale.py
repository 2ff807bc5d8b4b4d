"""Mi Smart Scale (v1) and Mi Body Composition Scale (v2) service data.

Both scales advertise the raw weight scaled by the display unit: kilograms
x 200, pounds x 100, or catty x 100. Weights are normalized to kilograms.
"""

from __future__ import annotations

import logging
import struct

from mibeacon.core.errors import TruncatedError
from mibeacon.core.events import DecodedEvent, Impedance, Weight
from mibeacon.core.model import DeviceInfo

LOGGER = logging.getLogger(__name__)

# control(1) weight(2) timestamp(7)
_V1_PACKET = struct.Struct("<BH7x")
# control(2) timestamp(7) impedance(2) weight(2)
_V2_PACKET = struct.Struct("<2s7xHH")

_KILOGRAMS_PER_POUND = 0.45359237
_KILOGRAMS_PER_CATTY = 0.5

SCALE_V1_DEVICE = DeviceInfo(
    product_id=0x181D,
    name="Mi Smart Scale",
    model="XMTZC01HM/XMTZC04HM",
    manufacturer="Xiaomi",
    capabilities=frozenset(),
    quirks=frozenset(),
)

SCALE_V2_DEVICE = DeviceInfo(
    product_id=0x181B,
    name="Mi Body Composition Scale",
    model="XMTZC02HM/XMTZC05HM/NUN4049CN",
    manufacturer="Xiaomi",
    capabilities=frozenset(),
    quirks=frozenset(),
)


def _kilograms(raw: int, *, pounds: bool, catty: bool) -> float:
    if pounds:
        return raw / 100 * _KILOGRAMS_PER_POUND
    if catty:
        return raw / 100 * _KILOGRAMS_PER_CATTY
    return raw / 200


def decode_scale_v1(data: bytes) -> tuple[DecodedEvent, ...]:
    if len(data) < _V1_PACKET.size:
        raise TruncatedError("Mi Scale v1 packet", needed=_V1_PACKET.size, available=len(data))
    control, raw_weight = _V1_PACKET.unpack_from(data)
    pounds = bool(control & 0x01)
    catty = bool(control & 0x10)
    stabilized = bool(control & 0x20)
    removed = bool(control & 0x80)
    LOGGER.debug("Mi Scale v1 control=0x%02x weight=%d", control, raw_weight)
    return (
        Weight(
            kilograms=_kilograms(raw_weight, pounds=pounds, catty=catty),
            stabilized=stabilized and not removed,
        ),
    )


def decode_scale_v2(data: bytes) -> tuple[DecodedEvent, ...]:
    """Decode a body composition scale packet.

    Impedance is only reported once both the weight and the impedance
    measurement have settled.
    """
    if len(data) < _V2_PACKET.size:
        raise TruncatedError("Mi Scale v2 packet", needed=_V2_PACKET.size, available=len(data))
    control, impedance, raw_weight = _V2_PACKET.unpack_from(data)
    pounds = bool(control[0] & 0x01)
    removed = bool(control[1] & 0x80)
    catty = bool(control[1] & 0x40)
    stabilized = bool(control[1] & 0x20)
    impedance_stabilized = bool(control[1] & 0x02)
    LOGGER.debug(
        "Mi Scale v2 control=%s weight=%d impedance=%d",
        control.hex(),
        raw_weight,
        impedance,
    )

    weight_stable = stabilized and not removed
    events: list[DecodedEvent] = [
        Weight(
            kilograms=_kilograms(raw_weight, pounds=pounds, catty=catty),
            stabilized=weight_stable,
        )
    ]
    if weight_stable and impedance_stabilized:
        events.append(Impedance(ohms=impedance))
    return tuple(events)
