"""Unit tests for the restic_exporter.runtime command-line entrypoint."""

from __future__ import annotations

import typing as typ

import pytest

from restic_exporter import __version__
from restic_exporter.runtime import app, check_config, serve

if typ.TYPE_CHECKING:
    from pathlib import Path

    from tests.conftest import WriteConfigFn


@pytest.fixture(autouse=True)
def _no_vault(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Vault disabled regardless of the caller's environment."""
    monkeypatch.delenv("VAULT_ADDR", raising=False)


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    """Leave global femtologging configuration untouched."""
    monkeypatch.setattr(
        "restic_exporter.runtime.configure_logging",
        lambda level, **_: (level, False),
    )


class TestCliStructure:
    """Tests for CLI structure and subcommands."""

    def test_app_has_name(self) -> None:
        """App should have the correct name."""
        # Cyclopts returns name as a tuple
        assert app.name == ("restic-exporter",)

    def test_app_has_version(self) -> None:
        """App should report the package version."""
        assert app.version == __version__

    def test_app_has_check_config_command(self) -> None:
        """App should have a 'check-config' subcommand."""
        command_names = [cmd.name for cmd in app._commands.values()]  # noqa: SLF001 - no public listing
        assert ("check-config",) in command_names


class TestCheckConfig:
    """Tests for the ``check-config`` command."""

    def test_valid_configuration(
        self,
        write_config: WriteConfigFn,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """A valid file prints a summary and exits 0."""
        path = write_config(
            [
                {"repo": "rest:http://a/", "password": "p"},
                {"repo": "rest:http://b/", "disabled": True},
            ]
        )

        assert check_config(config=path) == 0
        out = capsys.readouterr().out
        assert "is valid (2 repositories / 1 enabled)" in out

    def test_invalid_configuration(
        self,
        write_config: WriteConfigFn,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Validation failures are listed and exit 1."""
        path = write_config([{"repo": "rest:http://a/"}])

        assert check_config(config=path) == 1
        out = capsys.readouterr().out
        assert "Configuration check failed" in out
        assert "rest:http://a/" in out

    def test_vault_without_credentials(
        self,
        write_config: WriteConfigFn,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """An incomplete Vault environment fails the check."""
        monkeypatch.setenv("VAULT_ADDR", "https://vault.example:8200")
        for name in ("VAULT_TOKEN", "VAULT_ROLE_ID", "VAULT_SECRET_ID"):
            monkeypatch.delenv(name, raising=False)
        path = write_config([{"repo": "rest:http://a/", "password": "p"}])

        assert check_config(config=path) == 1


class TestServeStartupFailures:
    """Startup errors exit with status 1 before anything is served."""

    def test_invalid_bind(self, tmp_path: Path) -> None:
        """A malformed bind address is rejected."""
        assert serve(bind="nope", config=tmp_path / "config.json") == 1

    def test_missing_configuration(self, tmp_path: Path) -> None:
        """An unreadable configuration file is fatal at start."""
        assert serve(bind="127.0.0.1:9121", config=tmp_path / "absent.json") == 1

    def test_invalid_cron(self, write_config: WriteConfigFn) -> None:
        """A malformed cron expression is fatal at start."""
        path = write_config([])
        assert serve(bind="127.0.0.1:9121", config=path, cron="not a cron") == 1

    def test_invalid_timezone(self, write_config: WriteConfigFn) -> None:
        """An unknown time zone is fatal at start."""
        path = write_config([])
        assert serve(bind="127.0.0.1:9121", config=path, timezone="Nowhere/City") == 1
