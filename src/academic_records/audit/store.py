"""ActivityStore — append-only store for activity records.

Records are held in memory and, when a log path is configured, appended as
one JSON line each to that file. On start-up an existing file is replayed so
the trail survives restarts. There is no update or delete: bulk removal of
the trail is an administrative operation on the file itself.

Reads that need a consistent view (the paginated search) go through
:meth:`ActivityStore.select`, which filters, counts and slices under a single
lock acquisition so the total and the page always describe the same snapshot.
"""
from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Optional, TypeVar

from academic_records.audit.record import ActivityRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ActivityStore:
    """Thread-safe append-only activity trail.

    Parameters
    ----------
    log_path:
        Path to the JSONL file. Parent directories are created automatically.
        If None, records live in memory only.
    """

    def __init__(self, log_path: Path | None = None) -> None:
        self._log_path = log_path
        self._records: list[ActivityRecord] = []
        self._by_id: dict[str, ActivityRecord] = {}
        self._lock = threading.Lock()

        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            if log_path.exists():
                self._replay(log_path)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def insert(self, record: ActivityRecord) -> None:
        """Append *record* to the trail.

        Raises
        ------
        OSError
            If the log file cannot be written. The in-memory copy is only
            added after a successful write.
        """
        line = json.dumps(record.to_dict(), separators=(",", ":"))
        with self._lock:
            if self._log_path is not None:
                with self._log_path.open("a", encoding="utf-8") as fh:
                    fh.write(line + "\n")
            self._records.append(record)
            self._by_id[record.record_id] = record

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> Optional[ActivityRecord]:
        """Return the record with *record_id*, or None."""
        with self._lock:
            return self._by_id.get(record_id)

    def newest_first(self) -> list[ActivityRecord]:
        """Return a snapshot of every record sorted by creation time, newest first."""
        with self._lock:
            snapshot = list(self._records)
        return _sort_newest_first(snapshot)

    def list_by_actor(self, actor_id: str) -> list[ActivityRecord]:
        """Return every record of *actor_id*, newest first."""
        with self._lock:
            matching = [r for r in self._records if r.actor_id == actor_id]
        return _sort_newest_first(matching)

    def select(
        self,
        where: Callable[[ActivityRecord], Optional[T]],
        skip: int,
        limit: int,
    ) -> tuple[list[T], int]:
        """Filter, count and paginate in one pass over a single snapshot.

        Parameters
        ----------
        where:
            Called for each record, newest first. Returns the row to emit for
            a matching record, or None to exclude it.
        skip, limit:
            Page window over the matching rows.

        Returns
        -------
        tuple[list[T], int]
            The page of rows and the total number of matching records.
        """
        with self._lock:
            ordered = _sort_newest_first(self._records)
            total = 0
            page: list[T] = []
            for record in ordered:
                row = where(record)
                if row is None:
                    continue
                if skip <= total < skip + limit:
                    page.append(row)
                total += 1
        return page, total

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _replay(self, path: Path) -> None:
        for number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
            stripped = line.strip()
            if not stripped:
                continue
            try:
                record = ActivityRecord.from_dict(json.loads(stripped))
            except (json.JSONDecodeError, KeyError, ValueError) as exc:
                logger.warning("skipping unreadable activity line %d in %s: %s", number, path, exc)
                continue
            self._records.append(record)
            self._by_id[record.record_id] = record


def _sort_newest_first(records: list[ActivityRecord]) -> list[ActivityRecord]:
    return sorted(records, key=lambda r: r.created_at, reverse=True)
