"""Errors raised by repository readers."""

from __future__ import annotations

import typing as typ

_STDERR_PREVIEW_LIMIT = 500


def _preview(stderr: str) -> str:
    text = stderr.strip()
    if len(text) > _STDERR_PREVIEW_LIMIT:
        return f"{text[:_STDERR_PREVIEW_LIMIT]}..."
    return text


class ReaderError(Exception):
    """Base class for repository reader failures.

    Reader errors never leave a repository task; they become a
    ``read_error_count`` of 1 on that repository's result.
    """

    def __init__(self, url: str, message: str) -> None:
        """Initialise with the repository URL and a description."""
        self.url = url
        super().__init__(message)

    @classmethod
    def executable_missing(cls, url: str, executable: str) -> typ.Self:
        """Return an error when the restic binary cannot be started."""
        return cls(url, f"Cannot execute {executable!r} for {url}")


class RepositoryOpenError(ReaderError):
    """Raised when a repository cannot be opened or authenticated."""

    @classmethod
    def unsupported_backend(cls, url: str) -> RepositoryOpenError:
        """Return an error for URLs whose backend is not wired in."""
        return cls(url, f"Unsupported backend for repository {url}")

    @classmethod
    def command_failed(cls, url: str, returncode: int, stderr: str) -> RepositoryOpenError:
        """Return an error for a failed open command."""
        return cls(
            url,
            f"restic exited with status {returncode} opening {url}: {_preview(stderr)}",
        )

    @classmethod
    def timeout(cls, url: str, seconds: float) -> RepositoryOpenError:
        """Return an error when opening exceeds the command timeout."""
        return cls(url, f"Opening {url} timed out after {seconds:.0f}s")


class RepositoryReadError(ReaderError):
    """Raised when snapshot enumeration fails part way."""

    @classmethod
    def command_failed(cls, url: str, returncode: int, stderr: str) -> RepositoryReadError:
        """Return an error for a failed snapshot listing."""
        return cls(
            url,
            f"restic exited with status {returncode} listing {url}: {_preview(stderr)}",
        )

    @classmethod
    def malformed_output(cls, url: str, detail: str) -> RepositoryReadError:
        """Return an error for unparseable snapshot listings."""
        return cls(url, f"Malformed snapshot listing for {url}: {detail}")

    @classmethod
    def timeout(cls, url: str, seconds: float) -> RepositoryReadError:
        """Return an error when listing exceeds the command timeout."""
        return cls(url, f"Listing snapshots of {url} timed out after {seconds:.0f}s")

    @classmethod
    def released(cls, url: str) -> RepositoryReadError:
        """Return an error for enumeration attempted after release."""
        return cls(url, f"Repository {url} was already released")
