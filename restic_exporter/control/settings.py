"""Service settings assembled from the command line.

Usage
-----
>>> settings = ServiceSettings.build(bind=":9121", config="config.json")
>>> settings.host, settings.port
('0.0.0.0', 9121)

"""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

from .errors import SettingsError

DEFAULT_BIND = ":9121"
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_CRON = "0 0 * * *"
DEFAULT_DRAIN_TIMEOUT_S = 60.0

# TCP port number range limits
_MIN_PORT = 1
_MAX_PORT = 65535

_ALL_INTERFACES = "0.0.0.0"  # noqa: S104 - an empty host means every interface


def parse_bind(bind: str) -> tuple[str, int]:
    """Split a ``host:port`` listen address.

    An empty host binds every IPv4 interface. IPv6 literals are written in
    brackets, e.g. ``[::1]:9121``.

    Raises
    ------
    SettingsError
        If the port is missing, not an integer, or outside 1-65535.

    """
    host, sep, port_str = bind.strip().rpartition(":")
    if not sep:
        raise SettingsError.invalid_bind(bind, "expected HOST:PORT")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_str)
    except ValueError as exc:
        raise SettingsError.invalid_bind(bind, "port is not an integer") from exc
    if not (_MIN_PORT <= port <= _MAX_PORT):
        reason = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
        raise SettingsError.invalid_bind(bind, reason)
    return host or _ALL_INTERFACES, port


@dc.dataclass(frozen=True, slots=True)
class ServiceSettings:
    """Runtime settings for the exporter service.

    Attributes
    ----------
    host
        Interface the HTTP transport binds to.
    port
        TCP port of the HTTP transport.
    config_path
        Repository configuration file, re-read on reload.
    cron
        Five-field cron expression driving scheduled collections.
    timezone
        IANA zone the cron expression is evaluated in; ``None`` selects the
        host's local zone.
    drain_timeout_s
        Seconds allowed for HTTP and collection drain at shutdown.

    """

    host: str = _ALL_INTERFACES
    port: int = 9121
    config_path: Path = dc.field(default_factory=lambda: Path(DEFAULT_CONFIG_PATH))
    cron: str = DEFAULT_CRON
    timezone: str | None = None
    drain_timeout_s: float = DEFAULT_DRAIN_TIMEOUT_S

    @classmethod
    def build(  # noqa: PLR0913 - mirrors the CLI options one to one
        cls,
        *,
        bind: str = DEFAULT_BIND,
        config: str | Path = DEFAULT_CONFIG_PATH,
        cron: str = DEFAULT_CRON,
        timezone: str | None = None,
        drain_timeout: float = DEFAULT_DRAIN_TIMEOUT_S,
    ) -> ServiceSettings:
        """Validate raw option values and build settings.

        Raises
        ------
        SettingsError
            If ``bind`` is malformed or ``drain_timeout`` is not positive.

        """
        host, port = parse_bind(bind)
        if drain_timeout <= 0:
            raise SettingsError.out_of_range("drain timeout", drain_timeout)
        return cls(
            host=host,
            port=port,
            config_path=Path(config),
            cron=cron.strip(),
            timezone=(timezone.strip() or None) if timezone else None,
            drain_timeout_s=drain_timeout,
        )
