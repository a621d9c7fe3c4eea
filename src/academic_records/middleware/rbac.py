"""RolePolicy — the set of roles allowed through a guarded endpoint.

Role names are normalized (trimmed, lower-cased) and parsed against the closed
:class:`~academic_records.identity.roles.Role` enumeration when the policy is
built, so a typo in a route definition fails at import time rather than
silently denying every caller.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from academic_records.identity.roles import Role, parse_role


@dataclass(frozen=True)
class RolePolicy:
    """Immutable set of allowed roles.

    Parameters
    ----------
    allowed:
        The roles permitted by this policy. Must not be empty.
    """

    allowed: frozenset[Role]

    def __post_init__(self) -> None:
        if not self.allowed:
            raise ValueError("A role policy must allow at least one role.")

    @classmethod
    def of(cls, *roles: Role | str | Iterable[Role | str]) -> "RolePolicy":
        """Build a policy from role names or Role members.

        Accepts either varargs (``RolePolicy.of("admin", "teacher")``) or a
        single iterable (``RolePolicy.of(["admin"])``).

        Raises
        ------
        ValueError
            If no role is given or a name is not a known role.
        """
        if len(roles) == 1 and not isinstance(roles[0], (str, Role)):
            items: Iterable[Role | str] = roles[0]  # type: ignore[assignment]
        else:
            items = roles  # type: ignore[assignment]
        return cls(allowed=frozenset(parse_role(r) for r in items))

    def permits(self, role: Role) -> bool:
        """Return True if *role* is in the allowed set."""
        return role in self.allowed

    def names(self) -> list[str]:
        """Return sorted role names, for logging and error detail."""
        return sorted(r.value for r in self.allowed)


ADMIN_ONLY = RolePolicy.of(Role.ADMIN)
STAFF = RolePolicy.of(Role.ADMIN, Role.TEACHER)
ANY_ROLE = RolePolicy.of(Role.ADMIN, Role.TEACHER, Role.STUDENT)
