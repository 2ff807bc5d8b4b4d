"""Typer CLI entrypoint."""

from __future__ import annotations

import dataclasses
import logging

import typer

from mibeacon.core.errors import MiBeaconError
from mibeacon.core.events import DecodedEvent
from mibeacon.core.model import ServiceType
from mibeacon.core.service import MiBeaconService

app = typer.Typer(help="Decode Xiaomi MiBeacon BLE service data")


def _build_service() -> MiBeaconService:
    service = MiBeaconService()
    for warning in getattr(service, "load_warnings", ()):
        typer.echo(f"Warning: {warning}", err=True)
    return service


def _parse_hex(value: str, *, what: str) -> bytes:
    normalized = value.strip().lower().replace(" ", "").replace(":", "")
    try:
        return bytes.fromhex(normalized)
    except ValueError:
        raise typer.BadParameter(f"{what} must be hex, got '{value}'") from None


def _format_event(event: DecodedEvent) -> str:
    parts: list[str] = []
    for field in dataclasses.fields(event):
        value = getattr(event, field.name)
        if isinstance(value, bytes):
            value = value.hex()
        elif field.name == "event_type":
            value = f"0x{value:04x}"
        parts.append(f"{field.name}={value}")
    return f"{type(event).__name__}({', '.join(parts)})"


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command("decode")
def decode(
    payload: str = typer.Argument(..., help="Service data as hex"),
    key: str | None = typer.Option(None, "--key", envvar="MIBEACON_BIND_KEY", help="16-byte bind key as hex"),
    mac: str | None = typer.Option(None, "--mac", help="Advertiser MAC address (AA:BB:CC:DD:EE:FF)"),
    uuid: str = typer.Option(ServiceType.MIBEACON.value, "--uuid", help="Service data UUID"),
) -> None:
    """Decode one service data payload and print its events."""
    data = _parse_hex(payload, what="PAYLOAD")
    bind_key = _parse_hex(key, what="--key") if key else None
    try:
        service = _build_service()
        result = service.parse_service_data(uuid, data, bind_key=bind_key, source_mac=mac)
        frame = result.frame
        if frame is not None:
            header = frame.header
            flags = header.frame_control
            typer.echo(
                f"MiBeacon v{flags.version} product=0x{header.product_id:04x} "
                f"counter={header.frame_counter} encrypted={'yes' if flags.is_encrypted else 'no'}"
            )
            if header.mac is not None:
                typer.echo(f"mac={header.mac.canonical}")
        if result.device is not None:
            typer.echo(f"device={result.device.model} ({result.device.name}, {result.device.manufacturer})")
        for event in result.events:
            typer.echo(f"  {_format_event(event)}")
        if frame is not None and frame.custom_data is not None:
            typer.echo(f"custom_data={frame.custom_data.hex()}")
        if frame is not None and frame.error is not None:
            typer.echo(f"Error: {frame.error}", err=True)
            raise typer.Exit(code=1)
    except MiBeaconError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


@app.command("products")
def list_products() -> None:
    """List known products and their capabilities."""
    try:
        service = _build_service()
        products = service.registry.products()
        if not products:
            typer.echo("No products loaded")
            raise typer.Exit(code=1)

        for device in products:
            typer.echo(f"0x{device.product_id:04x} {device.model}: {device.name} ({device.manufacturer})")
            if device.capabilities:
                capabilities = ", ".join(sorted(c.slug for c in device.capabilities))
                typer.echo(f"  capabilities: {capabilities}")
    except MiBeaconError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
