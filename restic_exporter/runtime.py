"""Restic exporter entrypoint.

The default command runs the exporter: it loads the repository
configuration, performs one collection, then serves Prometheus metrics
while a cron schedule and process signals drive further collections.

Configuration is driven by command-line options, each of which may also be
supplied through an environment variable:

- ``--bind`` / ``RESTIC_EXPORTER_BIND``: listen address (default ``:9121``)
- ``--config`` / ``RESTIC_EXPORTER_CONFIG``: repository file
  (default ``config.json``)
- ``--cron`` / ``RESTIC_EXPORTER_CRON``: collection schedule
  (default ``0 0 * * *``)
- ``--timezone`` / ``RESTIC_EXPORTER_TIMEZONE``: IANA zone for the schedule
  (default: local zone)
- ``--log-level`` / ``RESTIC_EXPORTER_LOG_LEVEL``: log level
  (default ``INFO``)
- ``--drain-timeout`` / ``RESTIC_EXPORTER_DRAIN_TIMEOUT``: shutdown window in
  seconds (default ``60``)

Vault and restic invocation settings are read from ``VAULT_*`` and
``RESTIC_EXPORTER_RESTIC_*`` variables; see
:meth:`restic_exporter.secrets.VaultConfig.from_env` and
:meth:`restic_exporter.reader.ResticReaderConfig.from_env`.

Run the service with ``restic-exporter`` or ``python -m restic_exporter.runtime``.
"""

from __future__ import annotations

import asyncio
import sys
import typing as typ
from pathlib import Path

from cyclopts import App, Parameter
from prometheus_client.registry import CollectorRegistry

from restic_exporter import __version__
from restic_exporter.api import MetricsServer, create_app
from restic_exporter.collection import CollectionOrchestrator
from restic_exporter.control import (
    DEFAULT_BIND,
    DEFAULT_CONFIG_PATH,
    DEFAULT_CRON,
    DEFAULT_DRAIN_TIMEOUT_S,
    ControlPlane,
    SchedulingError,
    ServiceSettings,
    SettingsError,
)
from restic_exporter.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)
from restic_exporter.metrics import CollectionRunCollector, MetricsStore
from restic_exporter.reader import ResticReader, ResticReaderConfig
from restic_exporter.repositories import ConfigError, ConfigStore, load_repositories
from restic_exporter.secrets import VaultConfig, VaultSecretResolver

if typ.TYPE_CHECKING:
    from restic_exporter.repositories import RepositoryConfig

__all__ = ["app", "check_config", "main", "serve"]

logger = get_logger(__name__)

app = App(
    name="restic-exporter",
    help="Prometheus exporter for restic backup snapshot freshness",
    version=__version__,
)


def _configure_logging(log_level: str) -> None:
    normalized_level, invalid_level = configure_logging(log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            log_level,
            normalized_level,
        )


def _build_resolver() -> VaultSecretResolver | None:
    """Return a Vault resolver when ``VAULT_ADDR`` is configured.

    Raises
    ------
    VaultConfigError
        If Vault is enabled without usable credentials.

    """
    vault_config = VaultConfig.from_env()
    if vault_config is None:
        return None
    return VaultSecretResolver(vault_config)


@app.default
def serve(  # noqa: PLR0913 - one parameter per CLI option
    *,
    bind: typ.Annotated[str, Parameter(env_var="RESTIC_EXPORTER_BIND")] = DEFAULT_BIND,
    config: typ.Annotated[
        Path, Parameter(env_var="RESTIC_EXPORTER_CONFIG")
    ] = Path(DEFAULT_CONFIG_PATH),
    cron: typ.Annotated[str, Parameter(env_var="RESTIC_EXPORTER_CRON")] = DEFAULT_CRON,
    timezone: typ.Annotated[
        str | None, Parameter(env_var="RESTIC_EXPORTER_TIMEZONE")
    ] = None,
    log_level: typ.Annotated[
        str, Parameter(env_var="RESTIC_EXPORTER_LOG_LEVEL")
    ] = "INFO",
    drain_timeout: typ.Annotated[
        float, Parameter(env_var="RESTIC_EXPORTER_DRAIN_TIMEOUT")
    ] = DEFAULT_DRAIN_TIMEOUT_S,
) -> int:
    """Run the exporter until SIGINT or SIGTERM.

    Args:
        bind: Listen address as HOST:PORT; an empty host binds all interfaces.
        config: JSON file listing the repositories to collect.
        cron: Five-field cron expression scheduling collections.
        timezone: IANA time zone for the cron expression.
        log_level: Log level name.
        drain_timeout: Seconds allowed for draining at shutdown.

    Returns:
        Exit code (0 for a clean shutdown, 1 for a startup failure).

    """
    _configure_logging(log_level)
    try:
        settings = ServiceSettings.build(
            bind=bind,
            config=config,
            cron=cron,
            timezone=timezone,
            drain_timeout=drain_timeout,
        )
    except SettingsError as exc:
        log_error(logger, "Invalid settings: %s", exc)
        return 1
    return asyncio.run(run_service(settings))


async def run_service(settings: ServiceSettings) -> int:
    """Assemble the service from ``settings`` and run it to completion.

    Returns
    -------
    int
        Process exit code.

    """
    try:
        reader_config = ResticReaderConfig.from_env()
        resolver = _build_resolver()
    except (ValueError, ConfigError) as exc:
        log_error(logger, "Invalid environment configuration: %s", exc)
        return 1

    try:
        return await _run_with_resolver(settings, reader_config, resolver)
    finally:
        if resolver is not None:
            await resolver.aclose()


async def _run_with_resolver(
    settings: ServiceSettings,
    reader_config: ResticReaderConfig,
    resolver: VaultSecretResolver | None,
) -> int:
    async def load() -> tuple[RepositoryConfig, ...]:
        return await load_repositories(settings.config_path, resolver)

    try:
        repositories = await load()
    except ConfigError as exc:
        log_error(logger, "Error loading configuration: %s", exc)
        return 1
    log_info(
        logger,
        "Loaded %d repositories from %s",
        len(repositories),
        settings.config_path,
    )

    config_store = ConfigStore(repositories)
    metrics_store = MetricsStore()
    registry = CollectorRegistry()
    registry.register(CollectionRunCollector(metrics_store))
    orchestrator = CollectionOrchestrator(
        config_store, metrics_store, ResticReader(reader_config)
    )
    server = MetricsServer(
        create_app(metrics_store, registry),
        host=settings.host,
        port=settings.port,
    )

    try:
        plane = ControlPlane(
            config_store=config_store,
            orchestrator=orchestrator,
            config_loader=load,
            server=server,
            cron=settings.cron,
            timezone=settings.timezone,
            drain_timeout_s=settings.drain_timeout_s,
        )
    except SchedulingError as exc:
        log_error(logger, "Error configuring scheduler: %s", exc)
        return 1

    # Signals raised during the initial collection are queued and handled
    # once the control loop starts.
    plane.install_signal_handlers()
    try:
        try:
            await plane.start()
        except OSError as exc:
            log_error(logger, "Error starting HTTP server: %s", exc)
            await plane.shutdown()
            return 1
        await plane.run()
    finally:
        plane.remove_signal_handlers()
    return 0


@app.command(name="check-config")
def check_config(
    *,
    config: typ.Annotated[
        Path, Parameter(env_var="RESTIC_EXPORTER_CONFIG")
    ] = Path(DEFAULT_CONFIG_PATH),
) -> int:
    """Load and validate the repository configuration.

    Secrets are resolved through Vault when ``VAULT_ADDR`` is set, so this
    also checks that every referenced secret is readable.

    Args:
        config: JSON file listing the repositories to collect.

    Returns:
        Exit code (0 when the configuration is valid, 1 otherwise).

    """
    return asyncio.run(_check_config(config))


async def _check_config(path: Path) -> int:
    try:
        resolver = _build_resolver()
    except ConfigError as exc:
        print(f"Configuration check failed for {path}:")
        print(f"  - {exc}")
        return 1

    try:
        repositories = await load_repositories(path, resolver)
    except ConfigError as exc:
        print(f"Configuration check failed for {path}:")
        print(f"  - {exc}")
        return 1
    finally:
        if resolver is not None:
            await resolver.aclose()

    enabled = sum(1 for repo in repositories if not repo.disabled)
    print(
        f"config {path} is valid "
        f"({len(repositories)} repositories / {enabled} enabled)"
    )
    return 0


def main() -> int:
    """Entry point for the CLI."""
    return app()


if __name__ == "__main__":
    sys.exit(main())
