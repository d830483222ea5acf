"""Repository reader driving the ``restic`` command-line binary.

Restic keeps most of its repository logic behind an internal Go package, so
the exporter talks to repositories through the CLI instead. Every command
runs as an ``asyncio`` subprocess with the repository location and secrets
passed through the environment, never on the command line.

Only the ``b2:`` and ``rest:`` backends are wired in. Supporting another
backend means teaching :meth:`ResticReader._environment` about its extra
configuration.

Locking: ``restic snapshots`` takes a non-exclusive repository lock for
the duration of the listing and removes it when it exits or is
interrupted. The releaser returned by :meth:`ResticReader.open` interrupts
and reaps any restic child still running for that repository, so no lock
outlives the release step.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import datetime as dt
import os
import signal
import typing as typ

import msgspec

from restic_exporter.logging import get_logger, log_warning
from restic_exporter.repositories.models import B2Credentials
from restic_exporter.snapshots import SnapshotSummary

from .errors import RepositoryOpenError, RepositoryReadError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from restic_exporter.repositories.models import BackendExtra

logger = get_logger(__name__)

SUPPORTED_SCHEMES = frozenset({"b2", "rest"})

_DEFAULT_EXECUTABLE = "restic"
_DEFAULT_COMMAND_TIMEOUT_S = 900.0
_INTERRUPT_GRACE_S = 10.0

# Inherited variables that would override the per-repository settings.
_SHADOWING_ENV_VARS = (
    "RESTIC_REPOSITORY_FILE",
    "RESTIC_PASSWORD_FILE",
    "RESTIC_PASSWORD_COMMAND",
    "B2_ACCOUNT_ID",
    "B2_ACCOUNT_KEY",
)

_ErrorType: typ.TypeAlias = type[RepositoryOpenError] | type[RepositoryReadError]


@dataclasses.dataclass(frozen=True, slots=True)
class ResticReaderConfig:
    """Settings for invoking the restic binary.

    Attributes
    ----------
    executable
        Name or path of the restic binary.
    command_timeout_s
        Upper bound for a single restic invocation, in seconds.

    """

    executable: str = _DEFAULT_EXECUTABLE
    command_timeout_s: float = _DEFAULT_COMMAND_TIMEOUT_S

    @classmethod
    def from_env(cls) -> ResticReaderConfig:
        """Build configuration from environment variables.

        Reads ``RESTIC_EXPORTER_RESTIC_BINARY`` and
        ``RESTIC_EXPORTER_COMMAND_TIMEOUT``.

        Raises
        ------
        ValueError
            If the timeout is not a positive number.

        """
        executable = (
            os.environ.get("RESTIC_EXPORTER_RESTIC_BINARY", "").strip()
            or _DEFAULT_EXECUTABLE
        )
        raw_timeout = os.environ.get("RESTIC_EXPORTER_COMMAND_TIMEOUT", "").strip()
        if not raw_timeout:
            return cls(executable=executable)

        try:
            timeout = float(raw_timeout)
        except ValueError as exc:
            msg = f"RESTIC_EXPORTER_COMMAND_TIMEOUT must be a number, got: {raw_timeout!r}"
            raise ValueError(msg) from exc
        if timeout <= 0:
            msg = f"RESTIC_EXPORTER_COMMAND_TIMEOUT must be positive, got: {timeout}"
            raise ValueError(msg)
        return cls(executable=executable, command_timeout_s=timeout)


class _ResticSnapshot(msgspec.Struct):
    """Fields of ``restic snapshots --json`` output used by the exporter."""

    time: dt.datetime
    hostname: str = ""
    username: str = ""


_SNAPSHOTS_DECODER = msgspec.json.Decoder(list[_ResticSnapshot] | None)


class _ResticSession:
    """Environment and live child processes for one opened repository."""

    def __init__(self, url: str, env: dict[str, str], config: ResticReaderConfig) -> None:
        self.url = url
        self.released = False
        self._env = env
        self._config = config
        self._processes: set[asyncio.subprocess.Process] = set()

    async def run(self, *args: str, errors: _ErrorType) -> bytes:
        """Run restic with ``args`` and return its stdout."""
        try:
            process = await asyncio.create_subprocess_exec(
                self._config.executable,
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._env,
            )
        except OSError as exc:
            raise errors.executable_missing(self.url, self._config.executable) from exc

        self._processes.add(process)
        try:
            async with asyncio.timeout(self._config.command_timeout_s):
                stdout, stderr = await process.communicate()
        except TimeoutError as exc:
            raise errors.timeout(self.url, self._config.command_timeout_s) from exc
        finally:
            if process.returncode is None:
                await _interrupt(process)
            self._processes.discard(process)

        if process.returncode != 0:
            raise errors.command_failed(
                self.url,
                process.returncode,
                stderr.decode("utf-8", errors="replace"),
            )
        return stdout

    async def close(self) -> None:
        """Interrupt and reap every child still running."""
        self.released = True
        live = list(self._processes)
        self._processes.clear()
        for process in live:
            await _interrupt(process)


async def _interrupt(process: asyncio.subprocess.Process) -> None:
    """Stop ``process`` with SIGINT so restic removes its lock, then reap it."""
    with contextlib.suppress(ProcessLookupError):
        process.send_signal(signal.SIGINT)
    try:
        async with asyncio.timeout(_INTERRUPT_GRACE_S):
            await process.wait()
    except TimeoutError:
        log_warning(logger, "restic pid %s ignored SIGINT; killing it", process.pid)
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()


class ResticRepositoryHandle:
    """Snapshot enumeration for a repository opened by :class:`ResticReader`."""

    def __init__(self, session: _ResticSession) -> None:
        """Bind the handle to its session."""
        self._session = session

    async def iter_snapshots(self) -> cabc.AsyncIterator[SnapshotSummary]:
        """Yield one summary per snapshot from ``restic snapshots --json``."""
        url = self._session.url
        if self._session.released:
            raise RepositoryReadError.released(url)

        stdout = await self._session.run("snapshots", "--json", errors=RepositoryReadError)
        try:
            snapshots = _SNAPSHOTS_DECODER.decode(stdout)
        except msgspec.DecodeError as exc:
            raise RepositoryReadError.malformed_output(url, str(exc)) from exc

        for snapshot in snapshots or ():
            yield SnapshotSummary(
                owner=snapshot.username,
                host=snapshot.hostname,
                timestamp=snapshot.time,
            )


class ResticReleaser:
    """Release step for a repository opened by :class:`ResticReader`."""

    def __init__(self, session: _ResticSession) -> None:
        """Bind the releaser to its session."""
        self._session = session

    async def release(self) -> None:
        """Stop any restic process still holding the repository lock."""
        await self._session.close()


class ResticReader:
    """:class:`~restic_exporter.reader.protocol.RepositoryReader` over the CLI."""

    def __init__(
        self,
        config: ResticReaderConfig | None = None,
        *,
        base_env: cabc.Mapping[str, str] | None = None,
    ) -> None:
        """Initialise with binary settings and the environment to inherit."""
        self._config = config or ResticReaderConfig()
        self._base_env = dict(os.environ if base_env is None else base_env)

    async def open(
        self,
        url: str,
        credential: str,
        extra: BackendExtra,
    ) -> tuple[ResticRepositoryHandle, ResticReleaser]:
        """Verify the repository is reachable and the key decrypts it.

        Runs ``restic cat config``, which fails on unreachable backends,
        missing repositories and wrong passwords alike.

        Raises
        ------
        RepositoryOpenError
            If the backend is unsupported or the verification fails.

        """
        scheme = url.partition(":")[0]
        if scheme not in SUPPORTED_SCHEMES:
            raise RepositoryOpenError.unsupported_backend(url)

        session = _ResticSession(
            url,
            self._environment(url, credential, scheme, extra),
            self._config,
        )
        await session.run("--no-lock", "cat", "config", errors=RepositoryOpenError)
        return ResticRepositoryHandle(session), ResticReleaser(session)

    def _environment(
        self,
        url: str,
        credential: str,
        scheme: str,
        extra: BackendExtra,
    ) -> dict[str, str]:
        env = {
            key: value
            for key, value in self._base_env.items()
            if key not in _SHADOWING_ENV_VARS
        }
        env["RESTIC_REPOSITORY"] = url
        env["RESTIC_PASSWORD"] = credential

        if isinstance(extra, B2Credentials) and scheme == "b2":
            env["B2_ACCOUNT_ID"] = extra.account_id
            env["B2_ACCOUNT_KEY"] = extra.key
        return env
