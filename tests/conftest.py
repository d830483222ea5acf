"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import json
import typing as typ

import pytest

from restic_exporter.collection import CollectionOrchestrator
from restic_exporter.metrics import MetricsStore
from restic_exporter.repositories import ConfigStore
from tests.helpers.fake_reader import FakeReader

if typ.TYPE_CHECKING:
    from pathlib import Path


class WriteConfigFn(typ.Protocol):
    """Callable fixture writing a configuration file."""

    def __call__(self, entries: list[dict[str, object]], name: str = ...) -> Path:
        """Write ``entries`` as JSON and return the file path."""
        ...


@pytest.fixture
def write_config(tmp_path: Path) -> WriteConfigFn:
    """Return a helper that writes configuration entries to ``tmp_path``."""

    def _write(entries: list[dict[str, object]], name: str = "config.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(entries), encoding="utf-8")
        return path

    return _write


class SecretStub:
    """In-memory secret resolver keyed by path."""

    def __init__(self, secrets: dict[str, dict[str, object]] | None = None) -> None:
        self.secrets = dict(secrets or {})
        self.reads: list[str] = []

    async def read_secret(self, path: str) -> dict[str, object]:
        from restic_exporter.repositories import SecretResolutionError

        self.reads.append(path)
        if path not in self.secrets:
            raise SecretResolutionError(path, "HTTP 404")
        return self.secrets[path]


@pytest.fixture
def secret_stub() -> SecretStub:
    """Return an empty in-memory secret resolver."""
    return SecretStub()


@pytest.fixture
def fake_reader() -> FakeReader:
    """Return a reader with no scripted repositories."""
    return FakeReader()


@pytest.fixture
def config_store() -> ConfigStore:
    """Return an empty configuration store."""
    return ConfigStore()


@pytest.fixture
def metrics_store() -> MetricsStore:
    """Return an empty metrics store."""
    return MetricsStore()


@pytest.fixture
def orchestrator(
    config_store: ConfigStore,
    metrics_store: MetricsStore,
    fake_reader: FakeReader,
) -> CollectionOrchestrator:
    """Return an orchestrator wired to the shared stores and fake reader."""
    return CollectionOrchestrator(config_store, metrics_store, fake_reader)
