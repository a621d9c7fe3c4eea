"""TokenClaims — the identity snapshot embedded in every signed token."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from academic_records.identity.store import IdentityRecord


class TokenKind(str, Enum):
    """The two kinds of token the service issues."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    """Identity attributes carried verbatim inside access and refresh tokens.

    ``role`` and ``status`` are kept as the raw strings found in the token;
    the auth gate parses them against the closed enumerations.
    """

    subject_id: str
    external_id: str
    role: str
    first_name: str
    last_name: str
    email: str
    status: str
    need_to_change: bool = False

    @classmethod
    def from_identity(cls, record: IdentityRecord) -> "TokenClaims":
        """Snapshot the claim fields of an identity record."""
        return cls(
            subject_id=record.identity_id,
            external_id=record.external_id,
            role=record.role.value,
            first_name=record.first_name,
            last_name=record.last_name,
            email=record.email,
            status=record.status.value,
            need_to_change=record.need_to_change,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "subject_id": self.subject_id,
            "external_id": self.external_id,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "status": self.status,
            "need_to_change": self.need_to_change,
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "TokenClaims":
        """Rebuild claims from a decoded token payload.

        Raises
        ------
        KeyError
            If ``subject_id`` is absent.
        """
        return cls(
            subject_id=str(data["subject_id"]),
            external_id=str(data.get("external_id", "")),
            role=str(data.get("role") or ""),
            first_name=str(data.get("first_name", "")),
            last_name=str(data.get("last_name", "")),
            email=str(data.get("email", "")),
            status=str(data.get("status") or ""),
            need_to_change=bool(data.get("need_to_change", False)),
        )
