"""Protocol for resolving credential placeholders during config load."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class SecretResolver(typ.Protocol):
    """Look up secret material by path.

    Implementations raise
    :class:`~restic_exporter.repositories.errors.SecretResolutionError` when a
    lookup fails.
    """

    async def read_secret(self, path: str) -> cabc.Mapping[str, object]:
        """Return the key/value data stored at ``path``."""
        ...
