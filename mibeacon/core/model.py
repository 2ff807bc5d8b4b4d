"""Core data models used across parser, decryptor, registry, and facade."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mibeacon.core.events import DecodedEvent, EventType
from mibeacon.core.errors import ParseError

_MAC_LENGTH = 6


@dataclass(frozen=True)
class FrameControl:
    raw: int
    request_timing: bool
    has_custom_data: bool
    is_encrypted: bool
    has_mac: bool
    has_capability: bool
    has_event: bool
    is_mesh_device: bool
    is_registered: bool
    is_solicited: bool
    auth_mode: int
    version: int

    @classmethod
    def from_int(cls, value: int) -> FrameControl:
        return cls(
            raw=value,
            request_timing=bool(value & 0x0001),
            has_custom_data=bool(value & 0x0002),
            is_encrypted=bool(value & 0x0008),
            has_mac=bool(value & 0x0010),
            has_capability=bool(value & 0x0020),
            has_event=bool(value & 0x0040),
            is_mesh_device=bool(value & 0x0080),
            is_registered=bool(value & 0x0100),
            is_solicited=bool(value & 0x0200),
            auth_mode=(value >> 10) & 0x03,
            version=(value >> 12) & 0x0F,
        )

    @property
    def has_mac_nonce(self) -> bool:
        """True when the nonce MAC is carried in the frame itself."""
        return self.is_encrypted and self.has_mac


@dataclass(frozen=True)
class MacAddress:
    """MAC address kept in on-air (least significant byte first) order."""

    on_air: bytes

    def __post_init__(self) -> None:
        if len(self.on_air) != _MAC_LENGTH:
            raise ParseError(f"MAC address must be {_MAC_LENGTH} bytes, got {len(self.on_air)}")

    @classmethod
    def parse(cls, text: str) -> MacAddress:
        """Build from display order, e.g. ``A4:C1:38:02:83:F4``."""
        normalized = text.strip().replace(":", "").replace("-", "")
        try:
            canonical = bytes.fromhex(normalized)
        except ValueError as exc:
            raise ParseError(f"Invalid MAC address '{text}'") from exc
        return cls(on_air=canonical[::-1])

    @property
    def canonical(self) -> str:
        return ":".join(f"{b:02X}" for b in reversed(self.on_air))

    def __str__(self) -> str:
        return self.canonical


@dataclass(frozen=True)
class Capability:
    value: int
    io: int | None = None

    @property
    def connectable(self) -> bool:
        return bool(self.value & 0x01)

    @property
    def central(self) -> bool:
        return bool(self.value & 0x02)

    @property
    def encryptable(self) -> bool:
        return bool(self.value & 0x04)

    @property
    def bond_ability(self) -> int:
        return (self.value >> 3) & 0x03

    @property
    def has_io(self) -> bool:
        return bool(self.value & 0x20)


@dataclass(frozen=True)
class FrameHeader:
    frame_control: FrameControl
    product_id: int
    frame_counter: int
    mac: MacAddress | None
    capability: Capability | None
    header_length: int


@dataclass(frozen=True)
class EventBlock:
    event_type: int
    length: int
    payload: bytes


@dataclass(frozen=True)
class CipherMaterial:
    nonce: bytes
    ciphertext: bytes
    tag: bytes


@dataclass(frozen=True)
class DeviceInfo:
    product_id: int
    name: str
    model: str
    manufacturer: str
    capabilities: frozenset[EventType]
    quirks: frozenset[str]


@dataclass(frozen=True)
class MiBeaconAdvertisement:
    header: FrameHeader
    device: DeviceInfo | None
    encrypted: bool
    events: tuple[DecodedEvent, ...]
    error: ParseError | None = None
    custom_data: bytes | None = None

    @property
    def product_id(self) -> int:
        return self.header.product_id

    @property
    def complete(self) -> bool:
        """False when an event block failed after earlier events decoded."""
        return self.error is None


class ServiceType(str, Enum):
    """Service data UUIDs (16-bit short form) this package decodes."""

    MIBEACON = "fe95"
    HHCCJCY10 = "fd50"
    SCALE_V1 = "181d"
    SCALE_V2 = "181b"


@dataclass(frozen=True)
class ServiceAdvertisement:
    service: ServiceType
    device: DeviceInfo | None
    events: tuple[DecodedEvent, ...]
    frame: MiBeaconAdvertisement | None = None
