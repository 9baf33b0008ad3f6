#!/usr/bin/env python3
"""
Create an account with a given role, e.g. the first superadmin.

Usage:
  python scripts/add_user.py --username admin --password s3cret [--role superadmin]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from spidermusic.domain.references import find_user  # noqa: E402
from spidermusic.domain.roles import ROLES, USER  # noqa: E402
from spidermusic.repositories.json_storage import bootstrap, create_store  # noqa: E402
from spidermusic.services.user_service import UserService  # noqa: E402


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a user account")
    ap.add_argument("--username", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", default=USER, choices=ROLES)
    args = ap.parse_args()

    with create_store() as store:
        bootstrap(store)
        user = UserService(store).register(args.username, args.password)
        if args.role != USER:
            # no requester exists yet for the first admin, so the role is written directly
            with store.update("users", []) as users:
                find_user(users, user["username"])["role"] = args.role

    print("OK: user created")
    print(f"  username: {user['username']}")
    print(f"  role: {args.role}")


if __name__ == "__main__":
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
