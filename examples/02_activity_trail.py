#!/usr/bin/env python3
"""Example: Activity Trail

Demonstrates recording audit events in the background, then summarizing
and searching the trail.

Usage:
    python examples/02_activity_trail.py

Requirements:
    pip install academic-records
"""
from __future__ import annotations

from academic_records import (
    ActionCode,
    ActivityStore,
    AuditEvent,
    AuditQueryEngine,
    AuditRecorder,
    IdentityStore,
    RequestContext,
    SearchParams,
)


def main() -> None:
    # Step 1: Set up the stores and the recorder
    identities = IdentityStore()
    teacher = identities.add(
        external_id="T001", first_name="Luis", last_name="Diaz", role="teacher", password="pw"
    )
    activities = ActivityStore()
    recorder = AuditRecorder(activities)

    # Step 2: Record a few privileged actions
    context = RequestContext(
        headers={
            "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) Chrome/120.0.0.0 Safari/537.36",
            "X-Forwarded-For": "190.70.54.229",
        },
        peer_address="10.0.0.1",
    )
    for action, message in [
        (ActionCode.CREATE_ASSESSMENT, "created an assessment with ID 42."),
        (ActionCode.MODIFY_GRADE, "modified a grade with ID 7."),
        (ActionCode.DELETE_GRADE, "deleted a grade with ID 8."),
    ]:
        recorder.record(
            AuditEvent(
                action=action,
                message=message,
                entity="Grades",
                actor_id=teacher.identity_id,
                actor_role=teacher.role.value,
                actor_first_name=teacher.first_name,
            ),
            context,
        )
    recorder.flush()
    recorder.close()

    # Step 3: Summarize
    engine = AuditQueryEngine(activities, identities)
    summary = engine.summarize()
    print(f"Summary: {summary.to_dict()['stats']}")

    # Step 4: Search
    result = engine.search(SearchParams(q="luis grade", limit=10))
    print(f"\nSearch 'luis grade': {result.pagination.total} match(es)")
    for row in result.results:
        print(f"  {row['createdAt']}  {row['action']:<18} {row['description']}")


if __name__ == "__main__":
    main()
