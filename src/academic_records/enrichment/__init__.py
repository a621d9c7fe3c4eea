"""Identity enrichment — client IP, geolocation and user-agent for a request."""
from __future__ import annotations

from academic_records.enrichment.client_ip import resolve_client_ip
from academic_records.enrichment.geo import UNAVAILABLE, GeoInfo, GeoLocator, is_routable
from academic_records.enrichment.user_agent import UserAgentInfo, parse_user_agent

__all__ = [
    "GeoInfo",
    "GeoLocator",
    "UNAVAILABLE",
    "UserAgentInfo",
    "is_routable",
    "parse_user_agent",
    "resolve_client_ip",
]
