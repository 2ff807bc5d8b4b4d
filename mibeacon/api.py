"""Public decoding API for BLE scanner integrations.

Scanner callbacks hand service data bytes (and the advertiser address) to
`Decoder`; bind keys come from a caller-owned lookup. Names not listed in
`__all__` live under `mibeacon.core` and may change between releases.
"""

from __future__ import annotations

from collections.abc import Callable

from mibeacon.core.errors import (
    AddressMismatchError,
    AuthenticationFailedError,
    BadEventLengthError,
    BindKeyError,
    DecryptError,
    InsufficientLengthError,
    InvalidFlagsError,
    MiBeaconError,
    NonceMaterialError,
    ParseError,
    ProductLoadError,
    ProductValidationError,
    RegistryError,
    TruncatedError,
    UnhandledServiceError,
)
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
    OpeningState,
    Power,
    PowerAndTemperature,
    SmokeDetected,
    Temperature,
    TemperatureAndHumidity,
    TimeWithoutMotion,
    Unknown,
    Weight,
    Impedance,
)
from mibeacon.core.frame import parse_header
from mibeacon.core.model import (
    Capability,
    DeviceInfo,
    FrameControl,
    FrameHeader,
    MacAddress,
    MiBeaconAdvertisement,
    ServiceAdvertisement,
    ServiceType,
)
from mibeacon.core.registry import ProductRegistry, default_registry, load_registry
from mibeacon.core.service import MiBeaconService, decode_advertisement, service_type_for_uuid

__all__ = [
    "MiBeaconError",
    "ParseError",
    "TruncatedError",
    "InvalidFlagsError",
    "BadEventLengthError",
    "AddressMismatchError",
    "DecryptError",
    "InsufficientLengthError",
    "AuthenticationFailedError",
    "BindKeyError",
    "NonceMaterialError",
    "RegistryError",
    "ProductLoadError",
    "ProductValidationError",
    "UnhandledServiceError",
    "Battery",
    "Conductivity",
    "Consumable",
    "DecodedEvent",
    "EventType",
    "Formaldehyde",
    "Humidity",
    "Illuminance",
    "Light",
    "Moisture",
    "MoistureDetected",
    "Motion",
    "Opening",
    "OpeningState",
    "Power",
    "PowerAndTemperature",
    "SmokeDetected",
    "Temperature",
    "TemperatureAndHumidity",
    "TimeWithoutMotion",
    "Unknown",
    "Weight",
    "Impedance",
    "Capability",
    "DeviceInfo",
    "FrameControl",
    "FrameHeader",
    "MacAddress",
    "MiBeaconAdvertisement",
    "ServiceAdvertisement",
    "ServiceType",
    "ProductRegistry",
    "default_registry",
    "load_registry",
    "decode_advertisement",
    "KeyLookup",
    "Decoder",
]

KeyLookup = Callable[[str], bytes | None]


class Decoder:
    """Public decoder for MiBeacon service data.

    A `Decoder` wraps the product registry and, optionally, a key lookup
    callable that maps a canonical MAC address (``"A4:C1:38:02:83:F4"``) to the
    device's bind key. Keys are fetched per call and never retained.
    """

    def __init__(
        self,
        *,
        registry: ProductRegistry | None = None,
        key_lookup: KeyLookup | None = None,
    ) -> None:
        self._service = MiBeaconService(registry=registry)
        self._key_lookup = key_lookup

    @property
    def registry(self) -> ProductRegistry:
        return self._service.registry

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def lookup_product(self, product_id: int) -> DeviceInfo | None:
        return self._service.registry.lookup(product_id)

    def _resolve_key(
        self,
        data: bytes,
        bind_key: bytes | None,
        source_mac: MacAddress | str | None,
    ) -> bytes | None:
        if bind_key is not None or self._key_lookup is None:
            return bind_key
        header = parse_header(data)
        if not header.frame_control.is_encrypted:
            return None
        mac = header.mac
        if mac is None and source_mac is not None:
            mac = source_mac if isinstance(source_mac, MacAddress) else MacAddress.parse(source_mac)
        if mac is None:
            return None
        return self._key_lookup(mac.canonical)

    def decode(
        self,
        data: bytes,
        *,
        bind_key: bytes | None = None,
        source_mac: MacAddress | str | None = None,
    ) -> MiBeaconAdvertisement:
        key = self._resolve_key(data, bind_key, source_mac)
        return self._service.decode(data, bind_key=key, source_mac=source_mac)

    def parse_service_data(
        self,
        service_uuid: str,
        data: bytes,
        *,
        bind_key: bytes | None = None,
        source_mac: MacAddress | str | None = None,
    ) -> ServiceAdvertisement:
        key = bind_key
        if service_type_for_uuid(service_uuid) is ServiceType.MIBEACON:
            key = self._resolve_key(data, bind_key, source_mac)
        return self._service.parse_service_data(
            service_uuid,
            data,
            bind_key=key,
            source_mac=source_mac,
        )
