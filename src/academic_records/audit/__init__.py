"""Activity audit trail — recording, storage and reporting of privileged actions.

Quick start
-----------
::

    from academic_records.audit import ActionCode, ActivityStore, AuditEvent, AuditRecorder

    store = ActivityStore()
    recorder = AuditRecorder(store)
    recorder.record(
        AuditEvent(
            action=ActionCode.CREATE_GRADE,
            message="created a grade with ID 7.",
            entity="Grades",
            actor_id=claims.subject_id,
            actor_role=claims.role,
            actor_first_name=claims.first_name,
        ),
        context,
    )
"""
from __future__ import annotations

from academic_records.audit.actions import (
    ACTION_CATEGORIES,
    ACTION_SENTENCES,
    UNKNOWN_ACTION,
    ActionCategory,
    ActionCode,
    category_of,
    classify,
    describe_actor_action,
    translate_action,
)
from academic_records.audit.query import (
    ActivitySummary,
    AuditQueryEngine,
    Pagination,
    SearchParams,
    SearchResult,
)
from academic_records.audit.record import ActivityRecord, AuditEvent
from academic_records.audit.recorder import AuditRecorder
from academic_records.audit.store import ActivityStore

__all__ = [
    "ACTION_CATEGORIES",
    "ACTION_SENTENCES",
    "ActionCategory",
    "ActionCode",
    "ActivityRecord",
    "ActivityStore",
    "ActivitySummary",
    "AuditEvent",
    "AuditQueryEngine",
    "AuditRecorder",
    "Pagination",
    "SearchParams",
    "SearchResult",
    "UNKNOWN_ACTION",
    "category_of",
    "classify",
    "describe_actor_action",
    "translate_action",
]
