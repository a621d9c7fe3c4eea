"""Action catalogue — every auditable business action and how it is reported.

The registry is built once at import time and exposed read-only. Each action
code maps to a canonical sentence and, where its name contains one of the
category keywords, to a rollup category. Codes without a keyword (logins,
blocking) are recorded but excluded from the rollup.
"""
from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from academic_records.identity.roles import Role, parse_role

UNKNOWN_ACTION = "Unknown action"


class ActionCode(str, Enum):
    """Closed enumeration of audited actions."""

    # User
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILURE = "LOGIN_FAILURE"
    PASSWORD_CHANGE = "PASSWORD_CHANGE"
    CHANGE_ROLE = "CHANGE_ROLE"
    CREATE_USER = "CREATE_USER"
    MODIFY_PROFILE = "MODIFY_PROFILE"
    BLOCK_USER = "BLOCK_USER"
    UNBLOCK_USER = "UNBLOCK_USER"

    # Subject
    CREATE_SUBJECT = "CREATE_SUBJECT"
    DELETE_ONE_SUBJECT = "DELETE_ONE_SUBJECT"
    DELETE_ALL_SUBJECTS = "DELETE_ALL_SUBJECTS"
    MODIFY_SUBJECT = "MODIFY_SUBJECT"
    CANCEL_SUBJECT = "CANCEL_SUBJECT"

    # Group
    CREATE_GROUP = "CREATE_GROUP"
    ADD_USER_TO_GROUP = "ADD_USER_TO_GROUP"
    DELETE_GROUP = "DELETE_GROUP"
    DELETE_ALL_GROUPS = "DELETE_ALL_GROUPS"
    DELETE_USER = "DELETE_USER"
    MODIFY_GROUP = "MODIFY_GROUP"

    # Assessment
    CREATE_ASSESSMENT = "CREATE_ASSESSMENT"
    MODIFY_ASSESSMENT = "MODIFY_ASSESSMENT"
    DELETE_ASSESSMENT = "DELETE_ASSESSMENT"
    DELETE_ALL_ASSESSMENTS = "DELETE_ALL_ASSESSMENTS"

    # Grade
    CREATE_GRADE = "CREATE_GRADE"
    MODIFY_GRADE = "MODIFY_GRADE"
    DELETE_GRADE = "DELETE_GRADE"
    DELETE_ALL_GRADES = "DELETE_ALL_GRADES"


class ActionCategory(str, Enum):
    """Rollup buckets used by the activity summary."""

    CREATE = "Creates"
    UPDATE = "Updates"
    DELETE = "Deletes"


# Order matters: the first keyword set that matches wins.
CATEGORY_KEYWORDS: tuple[tuple[ActionCategory, tuple[str, ...]], ...] = (
    (ActionCategory.CREATE, ("CREATE", "ADD")),
    (ActionCategory.DELETE, ("DELETE", "REMOVE", "CANCEL")),
    (ActionCategory.UPDATE, ("MODIFY", "CHANGE")),
)

_SENTENCES: dict[ActionCode, str] = {
    ActionCode.LOGIN_SUCCESS: "User logged in successfully",
    ActionCode.LOGIN_FAILURE: "User login failed",
    ActionCode.PASSWORD_CHANGE: "User changed their password",
    ActionCode.CHANGE_ROLE: "User role was changed",
    ActionCode.CREATE_USER: "A new user was created",
    ActionCode.MODIFY_PROFILE: "User profile was modified",
    ActionCode.BLOCK_USER: "A user was blocked",
    ActionCode.UNBLOCK_USER: "A user was unblocked",
    ActionCode.CREATE_SUBJECT: "A new subject was created",
    ActionCode.DELETE_ONE_SUBJECT: "A subject was deleted",
    ActionCode.DELETE_ALL_SUBJECTS: "All subjects were deleted",
    ActionCode.MODIFY_SUBJECT: "A subject was modified",
    ActionCode.CANCEL_SUBJECT: "A subject was cancelled",
    ActionCode.CREATE_GROUP: "A new group was created",
    ActionCode.ADD_USER_TO_GROUP: "User(s) were added to a group",
    ActionCode.DELETE_GROUP: "A group was deleted",
    ActionCode.DELETE_ALL_GROUPS: "All groups were deleted",
    ActionCode.DELETE_USER: "User(s) were removed from a group",
    ActionCode.MODIFY_GROUP: "A group was modified",
    ActionCode.CREATE_ASSESSMENT: "A new assessment was created",
    ActionCode.MODIFY_ASSESSMENT: "An assessment was modified",
    ActionCode.DELETE_ASSESSMENT: "An assessment was deleted",
    ActionCode.DELETE_ALL_ASSESSMENTS: "All assessments were deleted",
    ActionCode.CREATE_GRADE: "A new grade was created",
    ActionCode.MODIFY_GRADE: "A grade was modified",
    ActionCode.DELETE_GRADE: "A grade was deleted",
    ActionCode.DELETE_ALL_GRADES: "All grades were deleted",
}


def _code(action: ActionCode | str) -> str:
    return action.value if isinstance(action, ActionCode) else str(action)


def classify(action: ActionCode | str) -> Optional[ActionCategory]:
    """Return the rollup category of an action code string, or None."""
    upper = _code(action).upper()
    for category, keywords in CATEGORY_KEYWORDS:
        if any(word in upper for word in keywords):
            return category
    return None


ACTION_SENTENCES: Mapping[str, str] = MappingProxyType(
    {code.value: sentence for code, sentence in _SENTENCES.items()}
)
ACTION_CATEGORIES: Mapping[str, Optional[ActionCategory]] = MappingProxyType(
    {code.value: classify(code.value) for code in ActionCode}
)


def translate_action(action: ActionCode | str) -> str:
    """Return the canonical sentence for *action*, or ``"Unknown action"``."""
    return ACTION_SENTENCES.get(_code(action), UNKNOWN_ACTION)


def category_of(action: ActionCode | str) -> Optional[ActionCategory]:
    """Return the rollup category of *action*.

    Known codes use the prebuilt registry; anything else is classified by the
    same keyword rule so records written by older releases still count.
    """
    key = _code(action)
    if key in ACTION_CATEGORIES:
        return ACTION_CATEGORIES[key]
    return classify(key)


def describe_actor_action(role: Role | str | None, first_name: str, message: str) -> str:
    """Render ``"<Honorific> <first name> <message>"``.

    Unknown roles render without an honorific.
    """
    try:
        honorific = parse_role(role).honorific
    except ValueError:
        honorific = ""
    return " ".join(part for part in (honorific, first_name.strip(), message.strip()) if part)
