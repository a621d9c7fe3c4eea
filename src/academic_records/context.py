"""RequestContext — the transport-neutral view of an inbound request.

The auth gate and the audit recorder only need request metadata (headers and
the peer address), never the body. Building this small snapshot keeps both
independent of the HTTP server in use, and lets the recorder hand a copy to a
background worker after the request has completed.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Optional

from academic_records.tokens.claims import TokenClaims


@dataclass
class RequestContext:
    """Request-scoped metadata.

    Parameters
    ----------
    headers:
        Request headers. Keys are lower-cased on construction.
    peer_address:
        Transport-level address of the connecting client.
    identity:
        Claims of the authenticated caller, attached by the auth gate.
    """

    headers: dict[str, str] = field(default_factory=dict)
    peer_address: Optional[str] = None
    identity: Optional[TokenClaims] = None

    def __post_init__(self) -> None:
        self.headers = {str(k).lower(): str(v) for k, v in self.headers.items()}

    @classmethod
    def from_headers(
        cls, headers: Mapping[str, str], peer_address: str | None = None
    ) -> "RequestContext":
        """Snapshot *headers* (any mapping, including ``http.client.HTTPMessage``)."""
        return cls(headers={k: v for k, v in headers.items()}, peer_address=peer_address)

    def header(self, name: str, default: str = "") -> str:
        """Return the header *name* (case-insensitive) or *default*."""
        return self.headers.get(name.lower(), default)
