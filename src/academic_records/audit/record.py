"""AuditEvent and ActivityRecord — the input and output of the audit recorder.

An :class:`AuditEvent` is what a handler knows when it performs a privileged
action: who did it, which action code, a message fragment, and the entity
kind. The recorder enriches it with request metadata into an immutable
:class:`ActivityRecord`, the unit stored in the activity trail.
"""
from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import Optional

from academic_records.audit.actions import ActionCode
from academic_records.enrichment.geo import GeoInfo

UNKNOWN_ROLE = "unknown"


@dataclass(frozen=True)
class AuditEvent:
    """A privileged action reported by a handler.

    Parameters
    ----------
    action:
        The action code (an :class:`ActionCode` or its string value).
    message:
        Message fragment appended to the actor's title and first name, e.g.
        ``"created an assessment with ID 42."``.
    entity:
        Kind of entity acted upon (``"Users"``, ``"Grades"``, ...).
    actor_id:
        Identity id of the actor, or None for anonymous actions.
    actor_role:
        Role of the actor at the time of the action.
    actor_first_name:
        First name used in the rendered description.
    occurred_at:
        UTC datetime of the action. Defaults to now.
    """

    action: ActionCode | str
    message: str
    entity: str
    actor_id: Optional[str] = None
    actor_role: str = UNKNOWN_ROLE
    actor_first_name: str = ""
    occurred_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    @property
    def action_code(self) -> str:
        return self.action.value if isinstance(self.action, ActionCode) else str(self.action)


@dataclass(frozen=True)
class ActivityRecord:
    """One persisted, enriched audit entry. Never updated after creation.

    ``actor_id`` is a weak reference: the identity is joined at query time
    and may no longer exist.
    """

    action_code: str
    translated_action: str
    human_description: str
    entity_kind: str
    actor_id: Optional[str] = None
    actor_role: str = UNKNOWN_ROLE
    client_ip: Optional[str] = None
    geo: GeoInfo = field(default_factory=GeoInfo)
    browser: Optional[str] = None
    os: Optional[str] = None
    device_kind: str = "desktop"
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    record_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def searchable_fields(self) -> tuple[Optional[str], ...]:
        """Record fields matched by free-text search."""
        return (
            self.human_description,
            self.action_code,
            self.device_kind,
            self.browser,
            self.entity_kind,
            self.actor_role,
            self.client_ip,
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize to the wire/JSONL representation."""
        return {
            "_id": self.record_id,
            "userId": self.actor_id,
            "role": self.actor_role,
            "action": self.action_code,
            "translatedAction": self.translated_action,
            "description": self.human_description,
            "entity": self.entity_kind,
            "ip": self.client_ip,
            "geo": self.geo.to_dict(),
            "browser": self.browser,
            "os": self.os,
            "device": self.device_kind,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ActivityRecord":
        """Reconstruct a record from :meth:`to_dict` output.

        Raises
        ------
        KeyError, ValueError
            If required fields are missing or the timestamp is malformed.
        """
        created_at = datetime.datetime.fromisoformat(str(data["createdAt"]))
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=datetime.timezone.utc)
        return cls(
            record_id=str(data["_id"]),
            action_code=str(data["action"]),
            translated_action=str(data.get("translatedAction") or ""),
            human_description=str(data.get("description") or ""),
            entity_kind=str(data.get("entity") or ""),
            actor_id=str(data["userId"]) if data.get("userId") else None,
            actor_role=str(data.get("role") or UNKNOWN_ROLE),
            client_ip=str(data["ip"]) if data.get("ip") else None,
            geo=GeoInfo.from_dict(data.get("geo")),  # type: ignore[arg-type]
            browser=str(data["browser"]) if data.get("browser") else None,
            os=str(data["os"]) if data.get("os") else None,
            device_kind=str(data.get("device") or "desktop"),
            created_at=created_at,
        )
