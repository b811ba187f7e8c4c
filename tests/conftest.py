"""Shared fixtures for gtmlayer tests."""

from collections.abc import Iterator

import pytest

from gtmlayer.datalayer import DataLayer
from gtmlayer.extensions import ExtensionRegistry


@pytest.fixture(autouse=True)
def fresh_extensions(monkeypatch: pytest.MonkeyPatch) -> Iterator[ExtensionRegistry]:
    """Give every test its own unfrozen extension registry."""
    registry = ExtensionRegistry()
    monkeypatch.setattr(DataLayer, "extensions", registry)
    yield registry
