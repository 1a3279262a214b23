"""Per-request values carried through query execution."""

from __future__ import annotations

import string
from dataclasses import dataclass, replace
from typing import Optional

from .auth import OperationPermissions

_TOKEN_CHARS = frozenset(string.ascii_letters + string.digits + "!#$%&'*+-.^_`|~")


def _canonical_header_key(key: str) -> str:
    if not key or any(ch not in _TOKEN_CHARS for ch in key):
        return key
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


@dataclass(frozen=True)
class RequestContext:
    """Immutable request context: permissions and outgoing request headers."""

    permissions: Optional[OperationPermissions] = None
    headers: tuple[tuple[str, str], ...] = ()

    def with_permissions(self, permissions: OperationPermissions) -> RequestContext:
        """A context whose permissions are checked against the query."""
        return replace(self, permissions=permissions)

    def with_outgoing_header(self, key: str, value: str) -> RequestContext:
        """A context that adds the header to every outgoing request."""
        return replace(self, headers=(*self.headers, (_canonical_header_key(key), value)))

    def outgoing_headers(self) -> dict[str, list[str]]:
        """The headers to add to outgoing requests, grouped by name."""
        grouped: dict[str, list[str]] = {}
        for key, value in self.headers:
            grouped.setdefault(key, []).append(value)
        return grouped