"""Product registry loaded from packaged (and optional user) YAML files."""

from __future__ import annotations

import functools
import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from mibeacon.core.errors import ProductLoadError, ProductValidationError, RegistryError
from mibeacon.core.events import EventType
from mibeacon.core.model import DeviceInfo

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProductValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class ProductRegistry:
    """Read-only mapping of product id to device metadata."""

    entries: Mapping[int, DeviceInfo]
    warnings: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    def lookup(self, product_id: int) -> DeviceInfo | None:
        return self.entries.get(product_id)

    def capabilities(self, product_id: int) -> frozenset[EventType] | None:
        device = self.entries.get(product_id)
        return device.capabilities if device is not None else None

    def products(self) -> list[DeviceInfo]:
        return sorted(self.entries.values(), key=lambda d: d.product_id)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)


def _load_schema_validator() -> Any:
    schema_text = resources.files("mibeacon").joinpath("schemas", "product.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _product_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "mibeacon/products", xdg_data / "mibeacon/products"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProductLoadError(f"Could not read product file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProductValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProductValidationError(f"Product file {path} must contain a mapping at root")
    return loaded


def _parse_capabilities(values: list[str], *, context: str) -> frozenset[EventType]:
    capabilities: set[EventType] = set()
    for value in values:
        try:
            capabilities.add(EventType.from_slug(value))
        except KeyError as exc:
            raise ProductValidationError(f"{context}: unknown capability '{value}'") from exc
    return frozenset(capabilities)


def _build_products(doc: dict[str, Any], source: Path | Traversable) -> list[DeviceInfo]:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProductValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    default_manufacturer = doc.get("manufacturer", "Xiaomi")
    devices: list[DeviceInfo] = []
    seen: set[int] = set()
    for entry in doc["products"]:
        product_id = int(entry["id"])
        if product_id in seen:
            raise ProductValidationError(f"Duplicate product id 0x{product_id:04x} in {source}")
        seen.add(product_id)
        context = f"{source} 0x{product_id:04x}"
        devices.append(
            DeviceInfo(
                product_id=product_id,
                name=entry["name"],
                model=entry["model"],
                manufacturer=entry.get("manufacturer", default_manufacturer),
                capabilities=_parse_capabilities(entry.get("capabilities", []), context=context),
                quirks=frozenset(entry.get("quirks", [])),
            )
        )
    return devices


def _iter_packaged_product_paths() -> list[Traversable]:
    product_root = resources.files("mibeacon").joinpath("products")
    return [item for item in product_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_product_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _product_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_registry(*, include_user: bool = True) -> ProductRegistry:
    """Load packaged products, then user files from the XDG product directories.

    A broken packaged file raises. A broken user file is skipped and reported
    in `ProductRegistry.warnings`, so decoding never depends on it.
    """
    entries: dict[int, DeviceInfo] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_product_paths(), key=lambda p: p.name):
        for device in _build_products(_read_yaml(path), path):
            entries[device.product_id] = device

    if include_user:
        for path in _iter_user_product_paths():
            try:
                devices = _build_products(_read_yaml(path), path)
            except RegistryError as exc:
                warning = f"Skipping user product file {path}: {exc}"
                LOGGER.warning(warning)
                warnings.append(warning)
                continue
            for device in devices:
                if device.product_id in entries:
                    warning = f"User product 0x{device.product_id:04x} ({device.model}) overrides packaged entry"
                    LOGGER.warning(warning)
                    warnings.append(warning)
                entries[device.product_id] = device

    return ProductRegistry(entries=entries, warnings=tuple(warnings))


@functools.lru_cache(maxsize=1)
def default_registry() -> ProductRegistry:
    """Process-wide registry, loaded on first use and never mutated."""
    return load_registry()
