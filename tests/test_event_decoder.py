from __future__ import annotations

import pytest

from frame_builder import event_block
from mibeacon.core.errors import BadEventLengthError, TruncatedError
from mibeacon.core.event_decoder import DECODERS, decode_all, iter_event_blocks
from mibeacon.core.events import (
    Battery,
    Conductivity,
    Consumable,
    EventType,
    Formaldehyde,
    Humidity,
    Illuminance,
    Light,
    Moisture,
    MoistureDetected,
    Motion,
    Opening,
    OpeningState,
    Power,
    PowerAndTemperature,
    SmokeDetected,
    Temperature,
    TemperatureAndHumidity,
    TimeWithoutMotion,
    Unknown,
)
from mibeacon.core.model import DeviceInfo
from mibeacon.core.registry import ProductRegistry

EMPTY_REGISTRY = ProductRegistry(entries={})


def _registry(product_id: int, model: str, quirks: frozenset[str]) -> ProductRegistry:
    return ProductRegistry(
        entries={
            product_id: DeviceInfo(
                product_id=product_id,
                name=model,
                model=model,
                manufacturer="Xiaomi",
                capabilities=frozenset(),
                quirks=quirks,
            )
        }
    )


def _decode(plaintext: bytes, product_id: int | None = None, registry: ProductRegistry = EMPTY_REGISTRY) -> list:
    return list(decode_all(plaintext, product_id, registry=registry))


@pytest.mark.parametrize(
    "event_type,payload,expected",
    [
        (0x0003, b"\x01", Motion(detected=True)),
        (0x000F, b"\x64\x00\x00", Motion(detected=True, illuminance=100)),
        (0x1004, b"\xd7\x00", Temperature(centidegrees=2150)),
        (0x1004, b"\x9c\xff", Temperature(centidegrees=-1000)),
        (0x1005, b"\x01\x5a", PowerAndTemperature(power=True, degrees=90)),
        (0x1006, b"\xcc\x01", Humidity(centipercent=4600)),
        (0x1006, b"\xd1\x01", Humidity(centipercent=4650)),
        (0x1007, b"\x10\x27\x00", Illuminance(lux=10000)),
        (0x1008, b"\x2a", Moisture(percent=42)),
        (0x1009, b"\xf4\x01", Conductivity(microsiemens=500)),
        (0x100A, b"\x5d", Battery(percent=93)),
        (0x100D, b"\xd7\x00\xcc\x01", TemperatureAndHumidity(centidegrees=2150, centipercent=4600)),
        (0x1010, b"\x0c\x00", Formaldehyde(centimilligrams=12)),
        (0x1012, b"\x00", Power(on=False)),
        (0x1013, b"\x50", Consumable(percent_remaining=80)),
        (0x1014, b"\x01", MoistureDetected(detected=True)),
        (0x1015, b"\x00", SmokeDetected(detected=False)),
        (0x1017, b"\x78\x00\x00\x00", TimeWithoutMotion(seconds=120)),
        (0x1018, b"\x01", Light(detected=True)),
        (0x1019, b"\x01", Opening(state=OpeningState.CLOSED)),
    ],
)
def test_decode_each_supported_event(event_type: int, payload: bytes, expected: object) -> None:
    assert _decode(event_block(event_type, payload)) == [expected]


def test_decoder_table_covers_every_event_type() -> None:
    # The table and the enum must stay in lockstep.
    assert set(DECODERS) == set(EventType)


def test_derived_properties() -> None:
    assert Temperature(centidegrees=2150).celsius == pytest.approx(21.5)
    assert Humidity(centipercent=4650).percent == pytest.approx(46.5)
    assert Formaldehyde(centimilligrams=12).milligrams_per_cubic_meter == pytest.approx(0.12)
    assert TimeWithoutMotion(seconds=30).motion_detected
    assert not TimeWithoutMotion(seconds=60).motion_detected
    assert Opening(state=OpeningState.OPEN).is_open
    assert not Opening(state=OpeningState.CLOSED).is_open


def test_multiple_events_in_order() -> None:
    plaintext = event_block(0x1004, b"\xd7\x00") + event_block(0x1006, b"\xcc\x01") + event_block(0x100A, b"\x64")
    assert _decode(plaintext) == [
        Temperature(centidegrees=2150),
        Humidity(centipercent=4600),
        Battery(percent=100),
    ]


def test_empty_plaintext_yields_nothing() -> None:
    assert _decode(b"") == []


@pytest.mark.parametrize("event_type", sorted(int(t) for t in EventType) + [0xFFFF])
def test_declared_length_overrun_is_rejected(event_type: int) -> None:
    plaintext = event_block(event_type, b"\x01\x02\x03\x04", length=10)
    with pytest.raises(BadEventLengthError) as excinfo:
        _decode(plaintext)
    assert excinfo.value.event_type == event_type
    assert excinfo.value.expected == 10
    assert excinfo.value.actual == 4


@pytest.mark.parametrize("event_type,size", [(int(t), size) for t, (size, _) in DECODERS.items()])
def test_wrong_size_for_known_type_is_rejected(event_type: int, size: int) -> None:
    plaintext = event_block(event_type, b"\x00" * (size + 1))
    with pytest.raises(BadEventLengthError) as excinfo:
        _decode(plaintext)
    assert excinfo.value.expected == size
    assert excinfo.value.actual == size + 1


def test_unknown_event_does_not_block_later_events() -> None:
    plaintext = event_block(0xFFFF, b"\x01\x02") + event_block(0x1004, b"\xd7\x00")
    assert _decode(plaintext) == [
        Unknown(event_type=0xFFFF, raw=b"\x01\x02"),
        Temperature(centidegrees=2150),
    ]


def test_zero_length_unknown_event() -> None:
    assert _decode(event_block(0x4C02, b"")) == [Unknown(event_type=0x4C02, raw=b"")]


def test_partial_results_survive_a_bad_block() -> None:
    plaintext = event_block(0x1004, b"\xd7\x00") + event_block(0x1006, b"\xcc")
    decoded = []
    with pytest.raises(BadEventLengthError):
        for event in decode_all(plaintext, registry=EMPTY_REGISTRY):
            decoded.append(event)
    assert decoded == [Temperature(centidegrees=2150)]


def test_trailing_partial_block_header_is_truncated() -> None:
    plaintext = event_block(0x1004, b"\xd7\x00") + b"\x06\x10"
    with pytest.raises(TruncatedError):
        _decode(plaintext)


def test_iter_event_blocks_preserves_lengths() -> None:
    blocks = list(iter_event_blocks(event_block(0x1004, b"\xd7\x00") + event_block(0x1234, b"abc")))
    assert [(b.event_type, b.length, b.payload) for b in blocks] == [
        (0x1004, 2, b"\xd7\x00"),
        (0x1234, 3, b"abc"),
    ]
    assert all(len(b.payload) == b.length for b in blocks)


def test_decoding_is_lazy() -> None:
    events = decode_all(event_block(0x1004, b"\xd7\x00") + b"\xff", registry=EMPTY_REGISTRY)
    assert next(events) == Temperature(centidegrees=2150)
    with pytest.raises(TruncatedError):
        next(events)


def test_truncated_humidity_quirk() -> None:
    registry = _registry(0x055B, "LYWSD03MMC", frozenset({"truncated_humidity"}))
    assert _decode(event_block(0x1006, b"\xd1\x01"), 0x055B, registry) == [Humidity(centipercent=4600)]
    assert _decode(event_block(0x1006, b"\xd1\x01"), 0x0001, registry) == [Humidity(centipercent=4650)]


def test_binary_light_quirk() -> None:
    registry = _registry(0x07F6, "MJYD02YL", frozenset({"binary_light"}))
    assert _decode(event_block(0x1007, b"\x64\x00\x00"), 0x07F6, registry) == [Light(detected=True)]
    assert _decode(event_block(0x1007, b"\x01\x00\x00"), 0x07F6, registry) == [Light(detected=False)]
    assert _decode(event_block(0x1007, b"\x64\x00\x00"), None, registry) == [Illuminance(lux=100)]


def test_packaged_registry_quirks_apply() -> None:
    events = list(decode_all(event_block(0x1006, b"\xd1\x01"), 0x055B))
    assert events == [Humidity(centipercent=4600)]
