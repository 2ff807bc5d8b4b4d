from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from mibeacon.core.registry import default_registry


@pytest.fixture(autouse=True)
def isolated_product_dirs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    # Keep the developer's own product files out of every test.
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    default_registry.cache_clear()
    yield
    default_registry.cache_clear()
