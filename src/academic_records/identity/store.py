"""IdentityStore — the identity records the auth and audit core read from.

Stores IdentityRecord objects in memory keyed by their opaque identity_id,
with a secondary unique index on the human-facing external_id (document
number). The core never mutates an identity's status; ``update`` exists for
the administrative collaborators and for seeding.
"""
from __future__ import annotations

import datetime
import json
import threading
import uuid
from dataclasses import dataclass, field
from pathlib import Path

import bcrypt

from academic_records.identity.roles import AccountStatus, Role, parse_role, parse_status


@dataclass
class IdentityRecord:
    """The canonical record for a user of the institution.

    Parameters
    ----------
    identity_id:
        Opaque primary key (set at creation, immutable).
    external_id:
        Unique human-facing identifier, usually a document number.
    first_name, last_name, email:
        Display fields.
    role:
        Institutional role.
    status:
        Account status. Blocked accounts cannot log in.
    credential_hash:
        bcrypt hash of the account password.
    need_to_change:
        True while the account still uses its default password.
    created_at:
        UTC datetime of creation.
    """

    identity_id: str
    external_id: str
    first_name: str
    last_name: str
    email: str = ""
    role: Role = Role.STUDENT
    status: AccountStatus = AccountStatus.ACTIVE
    credential_hash: str = ""
    need_to_change: bool = False
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def check_password(self, password: str) -> bool:
        """Return True if *password* matches the stored credential hash."""
        if not self.credential_hash:
            return False
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"), self.credential_hash.encode("ascii")
            )
        except ValueError:
            return False

    def display_fields(self) -> dict[str, object]:
        """Return the projection joined onto activity records at query time."""
        return {
            "_id": self.identity_id,
            "id": self.external_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "role": self.role.value,
        }

    def to_dict(self) -> dict[str, object]:
        """Serialize to a plain dictionary (including the credential hash)."""
        return {
            "identity_id": self.identity_id,
            "external_id": self.external_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "role": self.role.value,
            "status": self.status.value,
            "credential_hash": self.credential_hash,
            "need_to_change": self.need_to_change,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "IdentityRecord":
        """Reconstruct a record from :meth:`to_dict` output."""
        created_raw = data.get("created_at")
        return cls(
            identity_id=str(data["identity_id"]),
            external_id=str(data["external_id"]),
            first_name=str(data.get("first_name", "")),
            last_name=str(data.get("last_name", "")),
            email=str(data.get("email", "")),
            role=parse_role(data.get("role", Role.STUDENT.value)),
            status=parse_status(data.get("status", AccountStatus.ACTIVE.value)),
            credential_hash=str(data.get("credential_hash", "")),
            need_to_change=bool(data.get("need_to_change", False)),
            created_at=(
                datetime.datetime.fromisoformat(str(created_raw))
                if created_raw
                else datetime.datetime.now(datetime.timezone.utc)
            ),
        )


class IdentityAlreadyExistsError(ValueError):
    """Raised when an external_id is already taken."""

    def __init__(self, external_id: str) -> None:
        super().__init__(f"An identity with external id {external_id!r} already exists.")


class IdentityNotFoundError(KeyError):
    """Raised when an identity cannot be resolved."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Identity {key!r} does not exist.")


def hash_password(password: str) -> str:
    """Return a bcrypt hash of *password* as an ASCII string."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


class IdentityStore:
    """Thread-safe in-memory identity store.

    Example
    -------
    ::

        store = IdentityStore()
        record = store.add(external_id="S001", first_name="Ana", last_name="Ruiz")
        assert store.find_by_external_id("S001") is record
    """

    def __init__(self) -> None:
        self._records: dict[str, IdentityRecord] = {}
        self._by_external: dict[str, str] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Create / update
    # ------------------------------------------------------------------

    def add(
        self,
        external_id: str,
        first_name: str,
        last_name: str,
        email: str = "",
        role: Role | str = Role.STUDENT,
        status: AccountStatus | str = AccountStatus.ACTIVE,
        password: str | None = None,
    ) -> IdentityRecord:
        """Create a new identity.

        When *password* is None the account gets the default password (its
        own external id) and is flagged with ``need_to_change``.

        Raises
        ------
        IdentityAlreadyExistsError
            If *external_id* is already registered.
        """
        record = IdentityRecord(
            identity_id=uuid.uuid4().hex,
            external_id=external_id,
            first_name=first_name,
            last_name=last_name,
            email=email,
            role=parse_role(role),
            status=parse_status(status),
            credential_hash=hash_password(password if password is not None else external_id),
            need_to_change=password is None,
        )
        self.insert(record)
        return record

    def insert(self, record: IdentityRecord) -> None:
        """Store an already-built record (used when loading from disk)."""
        with self._lock:
            if record.external_id in self._by_external:
                raise IdentityAlreadyExistsError(record.external_id)
            self._records[record.identity_id] = record
            self._by_external[record.external_id] = record.identity_id

    def update(
        self,
        identity_id: str,
        role: Role | str | None = None,
        status: AccountStatus | str | None = None,
        password: str | None = None,
    ) -> IdentityRecord:
        """Update mutable fields of an identity. Returns the updated record.

        Setting a password clears ``need_to_change``.

        Raises
        ------
        IdentityNotFoundError
            If no identity has this id.
        """
        with self._lock:
            record = self._records.get(identity_id)
            if record is None:
                raise IdentityNotFoundError(identity_id)
            if role is not None:
                record.role = parse_role(role)
            if status is not None:
                record.status = parse_status(status)
            if password is not None:
                record.credential_hash = hash_password(password)
                record.need_to_change = False
            return record

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get(self, identity_id: str) -> IdentityRecord:
        """Return the identity with *identity_id*.

        Raises
        ------
        IdentityNotFoundError
            If no identity has this id.
        """
        with self._lock:
            record = self._records.get(identity_id)
        if record is None:
            raise IdentityNotFoundError(identity_id)
        return record

    def find(self, identity_id: str | None) -> IdentityRecord | None:
        """Return the identity with *identity_id*, or None."""
        if not identity_id:
            return None
        with self._lock:
            return self._records.get(identity_id)

    def find_by_external_id(self, external_id: str) -> IdentityRecord | None:
        """Return the identity with *external_id*, or None."""
        with self._lock:
            identity_id = self._by_external.get(external_id)
            return self._records.get(identity_id) if identity_id else None

    def list_all(self) -> list[IdentityRecord]:
        """Return all identities sorted by external id."""
        with self._lock:
            records = list(self._records.values())
        return sorted(records, key=lambda r: r.external_id)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: Path) -> "IdentityStore":
        """Load a store from a JSON file. A missing file yields an empty store."""
        store = cls()
        if path.exists():
            raw: list[dict[str, object]] = json.loads(path.read_text(encoding="utf-8"))
            for item in raw:
                store.insert(IdentityRecord.from_dict(item))
        return store

    def save(self, path: Path) -> None:
        """Write every identity to *path* as a JSON array."""
        path.parent.mkdir(parents=True, exist_ok=True)
        data = [record.to_dict() for record in self.list_all()]
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def __contains__(self, identity_id: object) -> bool:
        with self._lock:
            return identity_id in self._records
