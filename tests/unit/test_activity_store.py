"""Tests for academic_records.audit.store — ActivityStore."""
from __future__ import annotations

import datetime
import json
from pathlib import Path

import pytest

from academic_records.audit import ActivityRecord, ActivityStore


def _record(code: str, minute: int, actor_id: str | None = "u-1") -> ActivityRecord:
    return ActivityRecord(
        action_code=code,
        translated_action="",
        human_description=f"did {code}",
        entity_kind="Grades",
        actor_id=actor_id,
        created_at=datetime.datetime(2024, 5, 1, 10, minute, tzinfo=datetime.timezone.utc),
    )


@pytest.fixture()
def log_path(tmp_path: Path) -> Path:
    return tmp_path / "audit" / "activities.jsonl"


class TestActivityStoreWrite:
    def test_insert_and_get(self) -> None:
        store = ActivityStore()
        record = _record("CREATE_GRADE", 0)
        store.insert(record)
        assert store.get(record.record_id) is record
        assert len(store) == 1

    def test_get_missing(self) -> None:
        assert ActivityStore().get("nope") is None

    def test_appends_json_lines(self, log_path: Path) -> None:
        store = ActivityStore(log_path=log_path)
        store.insert(_record("CREATE_GRADE", 0))
        store.insert(_record("DELETE_GRADE", 1))

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["action"] == "DELETE_GRADE"

    def test_replays_existing_file(self, log_path: Path) -> None:
        first = ActivityStore(log_path=log_path)
        record = _record("CREATE_GRADE", 0)
        first.insert(record)

        second = ActivityStore(log_path=log_path)
        assert len(second) == 1
        replayed = second.get(record.record_id)
        assert replayed is not None
        assert replayed.created_at == record.created_at

    def test_replay_skips_bad_lines(self, log_path: Path) -> None:
        log_path.parent.mkdir(parents=True)
        good = json.dumps(_record("CREATE_GRADE", 0).to_dict())
        log_path.write_text(f"{good}\nnot json\n{{}}\n\n", encoding="utf-8")
        assert len(ActivityStore(log_path=log_path)) == 1


class TestActivityStoreRead:
    def test_newest_first(self) -> None:
        store = ActivityStore()
        for minute, code in enumerate(["A", "B", "C"]):
            store.insert(_record(code, minute))
        assert [r.action_code for r in store.newest_first()] == ["C", "B", "A"]

    def test_list_by_actor(self) -> None:
        store = ActivityStore()
        store.insert(_record("A", 0, actor_id="u-1"))
        store.insert(_record("B", 1, actor_id="u-2"))
        store.insert(_record("C", 2, actor_id="u-1"))
        assert [r.action_code for r in store.list_by_actor("u-1")] == ["C", "A"]

    def test_select_pages_and_counts_together(self) -> None:
        store = ActivityStore()
        for minute in range(7):
            store.insert(_record(f"CODE_{minute}", minute))

        def only_even(record: ActivityRecord) -> str | None:
            index = int(record.action_code.split("_")[1])
            return record.action_code if index % 2 == 0 else None

        page, total = store.select(only_even, skip=1, limit=2)
        assert total == 4
        assert page == ["CODE_4", "CODE_2"]

    def test_select_past_the_end(self) -> None:
        store = ActivityStore()
        store.insert(_record("A", 0))
        page, total = store.select(lambda r: r, skip=10, limit=5)
        assert page == []
        assert total == 1
