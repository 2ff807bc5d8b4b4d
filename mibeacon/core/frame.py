"""MiBeacon frame header parsing.

Every optional header field is read only when its frame control bit is set;
the cursor advances field by field and never backtracks.
"""

from __future__ import annotations

import logging

from mibeacon.core.errors import InvalidFlagsError, TruncatedError
from mibeacon.core.model import Capability, FrameControl, FrameHeader, MacAddress

_FRAME_CONTROL_LENGTH = 2
_PRODUCT_ID_LENGTH = 2
_FRAME_COUNTER_LENGTH = 1
_MAC_LENGTH = 6
_CAPABILITY_IO_FLAG = 0x20
_MIN_VERSION = 2
_MIN_ENCRYPTED_VERSION = 4
LOGGER = logging.getLogger(__name__)


def _require(data: bytes, offset: int, size: int, what: str) -> None:
    available = len(data) - offset
    if available < size:
        raise TruncatedError(what, needed=size, available=max(available, 0))


def _validate_flags(flags: FrameControl) -> None:
    if flags.version < _MIN_VERSION:
        raise InvalidFlagsError(
            f"MiBeacon version {flags.version} uses the legacy layout and is not supported"
        )
    if flags.is_encrypted and not (flags.has_event or flags.has_custom_data):
        raise InvalidFlagsError(
            f"Frame control 0x{flags.raw:04x} is encrypted but carries neither event nor custom data"
        )
    if flags.is_encrypted and flags.version < _MIN_ENCRYPTED_VERSION:
        raise InvalidFlagsError(
            f"Encrypted MiBeacon version {flags.version} frames carry no authentication tag"
        )


def parse_frame_control(data: bytes) -> FrameControl:
    _require(data, 0, _FRAME_CONTROL_LENGTH, "frame control")
    flags = FrameControl.from_int(int.from_bytes(data[:_FRAME_CONTROL_LENGTH], "little"))
    _validate_flags(flags)
    return flags


def parse_header(data: bytes) -> FrameHeader:
    """Parse the header of a MiBeacon service data payload.

    Raises `TruncatedError` when the buffer ends before a field its flags
    announce, and `InvalidFlagsError` for rejected frame control values.
    """
    flags = parse_frame_control(data)
    offset = _FRAME_CONTROL_LENGTH

    _require(data, offset, _PRODUCT_ID_LENGTH, "product id")
    product_id = int.from_bytes(data[offset : offset + _PRODUCT_ID_LENGTH], "little")
    offset += _PRODUCT_ID_LENGTH

    _require(data, offset, _FRAME_COUNTER_LENGTH, "frame counter")
    frame_counter = data[offset]
    offset += _FRAME_COUNTER_LENGTH

    mac: MacAddress | None = None
    if flags.has_mac:
        _require(data, offset, _MAC_LENGTH, "MAC address")
        mac = MacAddress(on_air=bytes(data[offset : offset + _MAC_LENGTH]))
        offset += _MAC_LENGTH

    capability: Capability | None = None
    if flags.has_capability:
        _require(data, offset, 1, "capability")
        capability_value = data[offset]
        offset += 1
        io: int | None = None
        if capability_value & _CAPABILITY_IO_FLAG:
            _require(data, offset, 1, "capability IO")
            io = data[offset]
            offset += 1
        capability = Capability(value=capability_value, io=io)

    LOGGER.debug(
        "Parsed MiBeacon v%d header: product=0x%04x counter=%d encrypted=%s mac=%s",
        flags.version,
        product_id,
        frame_counter,
        flags.is_encrypted,
        mac,
    )
    return FrameHeader(
        frame_control=flags,
        product_id=product_id,
        frame_counter=frame_counter,
        mac=mac,
        capability=capability,
        header_length=offset,
    )


def split_header(data: bytes) -> tuple[FrameHeader, bytes]:
    header = parse_header(data)
    return header, bytes(data[header.header_length :])
