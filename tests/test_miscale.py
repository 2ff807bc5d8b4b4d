from __future__ import annotations

import pytest

from mibeacon.core.errors import TruncatedError
from mibeacon.core.events import Impedance, Weight
from mibeacon.core.miscale import decode_scale_v1, decode_scale_v2
from mibeacon.core.model import ServiceType
from mibeacon.core.service import MiBeaconService, service_type_for_uuid


def _weight(events: tuple) -> Weight:
    assert isinstance(events[0], Weight)
    return events[0]


def test_scale_v1_stabilized_kilograms() -> None:
    events = decode_scale_v1(b"\x22\x9e\x43\xe5\x07\x04\x0b\x10\x13\x01")
    weight = _weight(events)
    assert weight.kilograms == pytest.approx(86.55)
    assert weight.stabilized
    assert len(events) == 1


def test_scale_v1_weight_removed() -> None:
    weight = _weight(decode_scale_v1(b"\xa2 D\xb2\x07\x01\x01\n\x1a\x15"))
    assert weight.kilograms == pytest.approx(87.2)
    assert not weight.stabilized


def test_scale_v1_not_stabilized() -> None:
    weight = _weight(decode_scale_v1(b"\x82\x14\x00\xe5\x07\x04\x0b\x10\x17\x08"))
    assert weight.kilograms == pytest.approx(0.1)
    assert not weight.stabilized


@pytest.mark.parametrize(
    "control,expected",
    [
        (0x21, 100 * 0.45359237),
        (0x30, 50.0),
        (0x20, 50.0),
    ],
)
def test_scale_v1_units(control: int, expected: float) -> None:
    data = bytes([control]) + (10000).to_bytes(2, "little") + b"\x00" * 7
    assert _weight(decode_scale_v1(data)).kilograms == pytest.approx(expected)


def test_scale_v2_with_impedance() -> None:
    events = decode_scale_v2(b"\x02&\xb2\x07\x05\x04\x0f\x02\x01\xac\x01\x86B")
    assert _weight(events).kilograms == pytest.approx(85.15)
    assert _weight(events).stabilized
    assert events[1:] == (Impedance(ohms=428),)


def test_scale_v2_not_stabilized() -> None:
    events = decode_scale_v2(b"\x02\x04\xb2\x07\x01\x01\x12\x10\x1a\x00\x00\xa8R")
    assert _weight(events).kilograms == pytest.approx(105.8)
    assert not _weight(events).stabilized
    assert len(events) == 1


@pytest.mark.parametrize("decode,size", [(decode_scale_v1, 10), (decode_scale_v2, 13)])
def test_short_scale_packet(decode, size: int) -> None:
    with pytest.raises(TruncatedError) as excinfo:
        decode(b"\x00" * (size - 1))
    assert excinfo.value.needed == size


def test_scale_service_dispatch() -> None:
    assert service_type_for_uuid("0000181d-0000-1000-8000-00805f9b34fb") is ServiceType.SCALE_V1
    assert service_type_for_uuid("181b") is ServiceType.SCALE_V2

    result = MiBeaconService().parse_service_data("181b", b"\x02&\xb2\x07\x05\x04\x0f\x02\x01\xac\x01\x86B")
    assert result.service is ServiceType.SCALE_V2
    assert result.device is not None
    assert result.device.name == "Mi Body Composition Scale"
    assert result.frame is None
    assert Impedance(ohms=428) in result.events
