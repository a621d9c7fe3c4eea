"""AuditQueryEngine — rollup and faceted search over the activity trail.

Search semantics
----------------
The free-text query is split on whitespace. Every token becomes an escaped,
case-insensitive substring pattern. A record matches when **every** token
matches **at least one** of its searchable fields, where the fields are the
record's own (description, action, device, browser, entity, role, IP) plus
the display fields of the identity it references, joined at query time.

Results are sorted newest first and paginated. The page and the total count
come from the same pass over one snapshot of the store, so they always agree.
"""
from __future__ import annotations

import datetime
import math
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, field_validator

from academic_records.audit.actions import ActionCategory, category_of
from academic_records.audit.record import ActivityRecord
from academic_records.audit.store import ActivityStore
from academic_records.identity.store import IdentityStore

DEFAULT_LIMIT = 50
MAX_LIMIT = 100
RECENT_LIMIT = 50


# ---------------------------------------------------------------------------
# Parameters
# ---------------------------------------------------------------------------


def parse_date(value: object) -> Optional[datetime.datetime]:
    """Parse an ISO date or datetime. Returns None for anything unparsable.

    Naive values are interpreted as UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime.datetime):
        parsed = value
    elif isinstance(value, datetime.date):
        parsed = datetime.datetime.combine(value, datetime.time())
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            parsed = datetime.datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


def end_of_day(moment: datetime.datetime) -> datetime.datetime:
    """Return the last representable instant of *moment*'s calendar day."""
    return moment.replace(hour=23, minute=59, second=59, microsecond=999999)


class SearchParams(BaseModel):
    """Search parameters, coerced to safe values rather than rejected.

    Invalid ``page`` becomes 1; invalid or non-positive ``limit`` becomes the
    default and is capped at 100; unparsable dates are ignored; ``to`` is
    widened to the end of its calendar day.
    """

    q: str = ""
    page: int = 1
    limit: int = DEFAULT_LIMIT
    date_from: Optional[datetime.datetime] = None
    date_to: Optional[datetime.datetime] = None

    @field_validator("q", mode="before")
    @classmethod
    def _coerce_q(cls, value: object) -> str:
        return "" if value is None else str(value).strip()

    @field_validator("page", mode="before")
    @classmethod
    def _coerce_page(cls, value: object) -> int:
        number = _to_int(value)
        return number if number is not None and number >= 1 else 1

    @field_validator("limit", mode="before")
    @classmethod
    def _coerce_limit(cls, value: object) -> int:
        number = _to_int(value)
        if number is None or number < 1:
            return DEFAULT_LIMIT
        return min(number, MAX_LIMIT)

    @field_validator("date_from", mode="before")
    @classmethod
    def _coerce_from(cls, value: object) -> Optional[datetime.datetime]:
        return parse_date(value)

    @field_validator("date_to", mode="before")
    @classmethod
    def _coerce_to(cls, value: object) -> Optional[datetime.datetime]:
        parsed = parse_date(value)
        return end_of_day(parsed) if parsed is not None else None

    @classmethod
    def from_query(cls, query: dict[str, object]) -> "SearchParams":
        """Build parameters from raw query-string values (``from``/``to`` keys)."""
        return cls(
            q=query.get("q"),
            page=query.get("page"),
            limit=query.get("limit"),
            date_from=query.get("from"),
            date_to=query.get("to"),
        )

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


def _to_int(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    match = re.match(r"^\s*([+-]?\d+)", str(value))
    return int(match.group(1)) if match else None


def tokenize(query: str) -> list[re.Pattern[str]]:
    """Split *query* on whitespace into escaped case-insensitive patterns."""
    return [re.compile(re.escape(token), re.IGNORECASE) for token in query.split() if token]


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pagination:
    """Page metadata for a search result."""

    current_page: int
    total_pages: int
    has_more: bool
    total: int

    @classmethod
    def compute(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=max(math.ceil(total / limit), 1),
            has_more=page * limit < total,
            total=total,
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
            "total": self.total,
        }


@dataclass
class SearchResult:
    results: list[dict[str, object]]
    pagination: Pagination

    def to_dict(self) -> dict[str, object]:
        return {"results": self.results, "pagination": self.pagination.to_dict()}


@dataclass
class ActivitySummary:
    """Rollup of the whole trail by action category."""

    counts: dict[str, int] = field(
        default_factory=lambda: {category.value: 0 for category in ActionCategory}
    )
    total: int = 0
    recent_records: list[ActivityRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "stats": {**self.counts, "total": self.total},
            "activities": [record.to_dict() for record in self.recent_records],
        }


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AuditQueryEngine:
    """Read side of the activity trail.

    Parameters
    ----------
    store:
        The activity store to query.
    identities:
        Identity store used to join display fields onto records.
    """

    def __init__(self, store: ActivityStore, identities: IdentityStore) -> None:
        self._store = store
        self._identities = identities

    def summarize(self) -> ActivitySummary:
        """Count every record by category and return the 50 most recent."""
        records = self._store.newest_first()
        summary = ActivitySummary(total=len(records), recent_records=records[:RECENT_LIMIT])
        for record in records:
            category = category_of(record.action_code)
            if category is not None:
                summary.counts[category.value] += 1
        return summary

    def search(self, params: SearchParams) -> SearchResult:
        """Run a filtered, tokenized, paginated search."""
        patterns = tokenize(params.q)

        def where(record: ActivityRecord) -> Optional[dict[str, object]]:
            if params.date_from is not None and record.created_at < params.date_from:
                return None
            if params.date_to is not None and record.created_at > params.date_to:
                return None
            user = self._join(record)
            if patterns and not _matches_all(patterns, _search_fields(record, user)):
                return None
            return {**record.to_dict(), "user": user}

        rows, total = self._store.select(where, skip=params.skip, limit=params.limit)
        return SearchResult(
            results=rows,
            pagination=Pagination.compute(params.page, params.limit, total),
        )

    def get_record(self, record_id: str) -> Optional[dict[str, object]]:
        """Return one record joined with its actor, or None."""
        record = self._store.get(record_id)
        if record is None:
            return None
        return {**record.to_dict(), "user": self._join(record)}

    def list_by_actor(self, actor_id: str) -> list[dict[str, object]]:
        """Return every record of one actor, newest first."""
        return [record.to_dict() for record in self._store.list_by_actor(actor_id)]

    def _join(self, record: ActivityRecord) -> Optional[dict[str, object]]:
        identity = self._identities.find(record.actor_id)
        return identity.display_fields() if identity is not None else None


def _search_fields(
    record: ActivityRecord, user: Optional[dict[str, object]]
) -> list[str]:
    values: list[Optional[object]] = list(record.searchable_fields())
    if user is not None:
        values.extend(user.get(key) for key in ("firstName", "lastName", "email", "id", "role"))
    return [str(value) for value in values if value]


def _matches_all(patterns: Iterable[re.Pattern[str]], fields: list[str]) -> bool:
    return all(any(pattern.search(value) for value in fields) for pattern in patterns)
