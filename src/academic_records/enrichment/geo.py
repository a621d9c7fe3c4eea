"""GeoLocator — offline IP geolocation against a local MaxMind City database.

Lookups never raise. Loopback, private, and otherwise non-global addresses
are not looked up at all; unknown addresses, invalid input, and a missing
database all yield an "unavailable" result whose fields are null.
"""
from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import geoip2.database
import geoip2.errors

logger = logging.getLogger(__name__)

SOURCE_LOCAL = "local"
SOURCE_UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class GeoInfo:
    """Location attached to an activity record."""

    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    timezone: Optional[str] = None
    coordinates: Optional[tuple[float, float]] = None
    source: str = SOURCE_UNAVAILABLE

    @property
    def found(self) -> bool:
        return self.source == SOURCE_LOCAL

    def to_dict(self) -> dict[str, object]:
        return {
            "city": self.city,
            "region": self.region,
            "country": self.country,
            "timezone": self.timezone,
            "coordinates": list(self.coordinates) if self.coordinates else None,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object] | None) -> "GeoInfo":
        if not data:
            return cls()
        coords = data.get("coordinates")
        return cls(
            city=data.get("city"),  # type: ignore[arg-type]
            region=data.get("region"),  # type: ignore[arg-type]
            country=data.get("country"),  # type: ignore[arg-type]
            timezone=data.get("timezone"),  # type: ignore[arg-type]
            coordinates=(
                (float(coords[0]), float(coords[1]))  # type: ignore[index]
                if isinstance(coords, (list, tuple)) and len(coords) == 2
                else None
            ),
            source=str(data.get("source") or SOURCE_UNAVAILABLE),
        )


UNAVAILABLE = GeoInfo()


def is_routable(ip: str) -> bool:
    """Return True if *ip* is a valid, globally routable address."""
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False
    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped
    return address.is_global


class GeoLocator:
    """IP to location resolver.

    Parameters
    ----------
    database_path:
        Path to a GeoLite2/GeoIP2 City ``.mmdb`` file. None disables lookups.
    reader:
        An already-open reader exposing ``city(ip)``. Takes precedence over
        *database_path*; used to share one reader or to substitute one in tests.
    """

    def __init__(
        self,
        database_path: Path | None = None,
        reader: object | None = None,
    ) -> None:
        self._reader = reader
        if self._reader is None and database_path is not None:
            try:
                self._reader = geoip2.database.Reader(str(database_path))
            except (OSError, ValueError) as exc:
                logger.warning("geo database %s unavailable: %s", database_path, exc)

    @property
    def enabled(self) -> bool:
        return self._reader is not None

    def lookup(self, ip: str | None) -> GeoInfo:
        """Geolocate *ip*. Returns :data:`UNAVAILABLE` on any miss."""
        if not ip or self._reader is None or not is_routable(ip):
            return UNAVAILABLE
        try:
            response = self._reader.city(ip.strip())  # type: ignore[attr-defined]
        except geoip2.errors.AddressNotFoundError:
            return UNAVAILABLE
        except (geoip2.errors.GeoIP2Error, ValueError) as exc:
            logger.debug("geo lookup failed for %s: %s", ip, exc)
            return UNAVAILABLE

        location = response.location
        coordinates = None
        if location.latitude is not None and location.longitude is not None:
            coordinates = (float(location.latitude), float(location.longitude))

        return GeoInfo(
            city=response.city.name,
            region=response.subdivisions.most_specific.iso_code,
            country=response.country.iso_code,
            timezone=location.time_zone,
            coordinates=coordinates,
            source=SOURCE_LOCAL,
        )

    def close(self) -> None:
        close = getattr(self._reader, "close", None)
        if close is not None:
            close()
