"""Client IP resolution with an explicit header precedence."""
from __future__ import annotations

from academic_records.context import RequestContext

CONNECTING_IP_HEADER = "cf-connecting-ip"
FORWARDED_FOR_HEADER = "x-forwarded-for"


def resolve_client_ip(context: RequestContext | None) -> str | None:
    """Return the originating client IP of a request.

    Precedence: the trusted connecting-IP header, then the first entry of
    ``X-Forwarded-For``, then the transport peer address. Returns None when
    none of them is available.
    """
    if context is None:
        return None

    connecting = context.header(CONNECTING_IP_HEADER).strip()
    if connecting:
        return connecting

    forwarded = context.header(FORWARDED_FOR_HEADER)
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    return context.peer_address or None
