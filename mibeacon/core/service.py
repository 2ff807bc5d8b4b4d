"""Service layer used by the public API and CLI."""

from __future__ import annotations

import logging
import re

from mibeacon.core.crypto import decrypt_region
from mibeacon.core.errors import AddressMismatchError, ParseError, UnhandledServiceError
from mibeacon.core.event_decoder import decode_all
from mibeacon.core.events import DecodedEvent
from mibeacon.core.frame import split_header
from mibeacon.core.hhccjcy10 import HHCCJCY10_DEVICE, decode_hhccjcy10
from mibeacon.core.miscale import SCALE_V1_DEVICE, SCALE_V2_DEVICE, decode_scale_v1, decode_scale_v2
from mibeacon.core.model import (
    FrameHeader,
    MacAddress,
    MiBeaconAdvertisement,
    ServiceAdvertisement,
    ServiceType,
)
from mibeacon.core.registry import ProductRegistry, default_registry

_UUID_RE = re.compile(r"^[0-9a-f]{4}$|^[0-9a-f]{8}$|^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")
_BASE_UUID_SUFFIX = "-0000-1000-8000-00805f9b34fb"
LOGGER = logging.getLogger(__name__)


def _short_uuid(value: str) -> str:
    normalized = value.strip().lower()
    if not _UUID_RE.match(normalized):
        raise UnhandledServiceError(f"'{value}' is not a 16-bit, 32-bit, or 128-bit UUID string")
    if len(normalized) == 4:
        return normalized
    if len(normalized) == 8:
        return normalized[4:] if normalized.startswith("0000") else normalized
    if normalized.startswith("0000") and normalized.endswith(_BASE_UUID_SUFFIX):
        return normalized[4:8]
    return normalized


def service_type_for_uuid(uuid: str) -> ServiceType:
    short = _short_uuid(uuid)
    for service in ServiceType:
        if service.value == short:
            return service
    raise UnhandledServiceError(f"Unhandled service data UUID '{uuid}'")


def _coerce_mac(source_mac: MacAddress | str | None) -> MacAddress | None:
    if source_mac is None or isinstance(source_mac, MacAddress):
        return source_mac
    return MacAddress.parse(source_mac)


def _nonce_mac(header: FrameHeader, source_mac: MacAddress | None) -> MacAddress | None:
    if header.mac is not None and source_mac is not None and header.mac != source_mac:
        raise AddressMismatchError(
            f"MAC address doesn't match data frame. Expected: {source_mac}, Got: {header.mac}"
        )
    return header.mac or source_mac


class MiBeaconService:
    def __init__(self, *, registry: ProductRegistry | None = None) -> None:
        self.registry = registry if registry is not None else default_registry()

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self.registry.warnings

    def decode(
        self,
        data: bytes,
        *,
        bind_key: bytes | None = None,
        source_mac: MacAddress | str | None = None,
    ) -> MiBeaconAdvertisement:
        """Decode one MiBeacon service data payload.

        Header and decryption failures raise. A malformed event block ends
        event decoding; the events before it are returned together with the
        error in `MiBeaconAdvertisement.error`.
        """
        header, remaining = split_header(data)
        flags = header.frame_control
        device = self.registry.lookup(header.product_id)
        if device is None:
            LOGGER.debug("MiBeacon frame from unknown product 0x%04x", header.product_id)

        nonce_mac = _nonce_mac(header, _coerce_mac(source_mac))

        if flags.is_encrypted:
            plaintext = decrypt_region(
                remaining,
                mac=nonce_mac,
                product_id=header.product_id,
                frame_counter=header.frame_counter,
                bind_key=bind_key,
            )
        else:
            plaintext = remaining

        if not flags.has_event:
            custom_data = plaintext if flags.has_custom_data else None
            return MiBeaconAdvertisement(
                header=header,
                device=device,
                encrypted=flags.is_encrypted,
                events=(),
                custom_data=custom_data,
            )

        events: list[DecodedEvent] = []
        error: ParseError | None = None
        try:
            for event in decode_all(plaintext, header.product_id, registry=self.registry):
                events.append(event)
        except ParseError as exc:
            LOGGER.debug("Event decoding stopped after %d event(s): %s", len(events), exc)
            error = exc

        return MiBeaconAdvertisement(
            header=header,
            device=device,
            encrypted=flags.is_encrypted,
            events=tuple(events),
            error=error,
        )

    def parse_service_data(
        self,
        service_uuid: str,
        data: bytes,
        *,
        bind_key: bytes | None = None,
        source_mac: MacAddress | str | None = None,
    ) -> ServiceAdvertisement:
        service = service_type_for_uuid(service_uuid)
        if service is ServiceType.MIBEACON:
            frame = self.decode(data, bind_key=bind_key, source_mac=source_mac)
            return ServiceAdvertisement(
                service=service,
                device=frame.device,
                events=frame.events,
                frame=frame,
            )
        if service is ServiceType.HHCCJCY10:
            return ServiceAdvertisement(
                service=service,
                device=HHCCJCY10_DEVICE,
                events=decode_hhccjcy10(data),
            )
        if service is ServiceType.SCALE_V1:
            return ServiceAdvertisement(service=service, device=SCALE_V1_DEVICE, events=decode_scale_v1(data))
        if service is ServiceType.SCALE_V2:
            return ServiceAdvertisement(service=service, device=SCALE_V2_DEVICE, events=decode_scale_v2(data))
        raise UnhandledServiceError(f"Unhandled service data UUID '{service_uuid}'")


def decode_advertisement(
    data: bytes,
    *,
    bind_key: bytes | None = None,
    source_mac: MacAddress | str | None = None,
    registry: ProductRegistry | None = None,
) -> MiBeaconAdvertisement:
    return MiBeaconService(registry=registry).decode(data, bind_key=bind_key, source_mac=source_mac)
