"""Request-like inputs exposed to templates as the ``sysvar`` namespace.

The host application hands these collections to the Environment once, at
construction. Templates read them through dot paths:

    {$sysvar.get.page}
    {$sysvar.server.request_method}
    {$sysvar.session.user_id}
    {$sysvar.const.site_name}

The core never refreshes them during a render and never merges user
assignments into them.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Any

SYSVAR = "sysvar"


@dataclass(frozen=True, slots=True)
class RequestContext:
    """Externally sourced values for one Environment.

    Attributes:
        query: Query-string parameters.
        form: Form fields.
        request: Merged request parameters.
        cookies: Cookie values.
        server: Server/environment metadata (keys lower-cased on exposure).
        session: Session-like store, or None when no session is active.
            The ``token`` directive writes to it.
        constants: User-defined constants (keys lower-cased on exposure).
    """

    query: Mapping[str, Any] = field(default_factory=dict)
    form: Mapping[str, Any] = field(default_factory=dict)
    request: Mapping[str, Any] = field(default_factory=dict)
    cookies: Mapping[str, Any] = field(default_factory=dict)
    server: Mapping[str, Any] = field(default_factory=dict)
    session: MutableMapping[str, Any] | None = None
    constants: Mapping[str, Any] = field(default_factory=dict)

    def sysvar(self) -> dict[str, Any]:
        """Build the reserved ``sysvar`` namespace."""
        return {
            "get": dict(self.query),
            "post": dict(self.form),
            "request": dict(self.request),
            "cookie": dict(self.cookies),
            "server": {str(k).lower(): v for k, v in self.server.items()},
            "session": self.session if self.session is not None else {},
            "const": {str(k).lower(): v for k, v in self.constants.items()},
        }
