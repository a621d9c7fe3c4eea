"""Closed enumerations for identity roles and account statuses."""
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Institutional role of an identity."""

    STUDENT = "student"
    TEACHER = "teacher"
    ADMIN = "admin"

    @property
    def honorific(self) -> str:
        """Title used when an action is described in prose."""
        return self.value.capitalize()


class AccountStatus(str, Enum):
    """Lifecycle status of an identity's account."""

    ACTIVE = "active"
    BLOCKED = "blocked"
    SUSPENDED = "suspended"


def parse_role(value: object) -> Role:
    """Return the Role for *value* (case-insensitive, trimmed).

    Raises
    ------
    ValueError
        If *value* is not one of the known role names.
    """
    if isinstance(value, Role):
        return value
    return Role(str(value).strip().lower())


def parse_status(value: object) -> AccountStatus:
    """Return the AccountStatus for *value* (case-insensitive, trimmed).

    Raises
    ------
    ValueError
        If *value* is not one of the known statuses.
    """
    if isinstance(value, AccountStatus):
        return value
    return AccountStatus(str(value).strip().lower())
