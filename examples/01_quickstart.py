#!/usr/bin/env python3
"""Example: Quickstart

Demonstrates issuing tokens for a seeded identity and running them through
an admin-only AuthGate.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install academic-records
"""
from __future__ import annotations

import academic_records
from academic_records import (
    ADMIN_ONLY,
    AuthError,
    AuthGate,
    IdentityStore,
    TokenClaims,
    TokenService,
)


def main() -> None:
    print(f"academic-records version: {academic_records.__version__}")

    # Step 1: Seed two identities
    store = IdentityStore()
    admin = store.add(external_id="A001", first_name="Laura", last_name="Gomez", role="admin", password="pw")
    student = store.add(external_id="S001", first_name="Ana", last_name="Ruiz")
    print(f"Seeded {len(store)} identities; S001 must change password: {student.need_to_change}")

    # Step 2: Issue tokens
    tokens = TokenService("access-secret", "refresh-secret")
    admin_token = tokens.issue_access(TokenClaims.from_identity(admin))
    student_token = tokens.issue_access(TokenClaims.from_identity(student))
    refresh_token = tokens.issue_refresh(TokenClaims.from_identity(student))

    # Step 3: Gate requests
    gate = AuthGate(tokens, ADMIN_ONLY)
    for label, header in [
        ("admin", f"Bearer {admin_token}"),
        ("student", f"Bearer {student_token}"),
        ("refresh-as-access", f"Bearer {refresh_token}"),
        ("no header", None),
    ]:
        try:
            claims = gate.authenticate(header)
            print(f"  [ALLOWED] {label}: {claims.first_name} ({claims.role})")
        except AuthError as exc:
            print(f"  [DENIED]  {label}: {exc.status_code} {exc.public_message}")

    # Step 4: Refresh
    renewed = tokens.refresh(refresh_token)
    print(f"\nRefreshed access token: {renewed[:32]}...")

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()
