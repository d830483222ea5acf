"""Repository readers yielding snapshot summaries."""

from __future__ import annotations

from .errors import ReaderError, RepositoryOpenError, RepositoryReadError
from .protocol import Releaser, RepositoryHandle, RepositoryReader
from .restic import SUPPORTED_SCHEMES, ResticReader, ResticReaderConfig

__all__ = [
    "SUPPORTED_SCHEMES",
    "ReaderError",
    "Releaser",
    "RepositoryHandle",
    "RepositoryOpenError",
    "RepositoryReadError",
    "RepositoryReader",
    "ResticReader",
    "ResticReaderConfig",
]
