#!/usr/bin/env python3
"""
Create a user (if needed) and print a fresh bearer token for it.

Usage:
  python scripts/add_user.py --email someone@example.com [--name "A. Ali"]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Make the medikeep package importable when run directly
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from medikeep.domain.rules import EMAIL_RE  # noqa: E402
from medikeep.repositories.sql_repository import SQLRepository  # noqa: E402
from medikeep.services.session_service import issue_session  # noqa: E402


def main() -> None:
    ap = argparse.ArgumentParser(description="Provision a MediKeep user and session token")
    ap.add_argument("--email", required=True, help="User email (ex.: someone@example.com)")
    ap.add_argument("--name", default="", help="Display name used to seed the profile")
    args = ap.parse_args()

    email = (args.email or "").strip()
    if not EMAIL_RE.fullmatch(email):
        raise SystemExit("Invalid email")

    repo = SQLRepository()
    user = repo.get_user_by_email(email)
    if user:
        print(f"User '{email}' already exists")
    else:
        user = repo.create_user(email, (args.name or "").strip())
        print("OK: user created")
    token = issue_session(user.id)
    print(f"  ID: {user.id}")
    print(f"  Token: {token}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
