#!/usr/bin/env python3
"""
Rename a user directly on the JSON data dir (server should be stopped).

Usage:
  python scripts/rename_user.py --old alice --new alice2
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from spidermusic.core.logs import configure_logging  # noqa: E402
from spidermusic.repositories.json_storage import create_store  # noqa: E402
from spidermusic.services.rename_service import RenamePropagationError, UsernameRenameService  # noqa: E402


def main() -> None:
    ap = argparse.ArgumentParser(description="Rename a user and every reference to it")
    ap.add_argument("--old", required=True, help="current username")
    ap.add_argument("--new", required=True, help="new username")
    args = ap.parse_args()

    configure_logging()
    with create_store() as store:
        try:
            result = UsernameRenameService(store).rename(args.old, args.new)
        except RenamePropagationError as exc:
            print(f"PARTIAL: written {', '.join(exc.written)}; failed on {exc.failed}")
            raise SystemExit(2)

    print(f"OK: {result.old} -> {result.new}")
    for name, count in result.changes.items():
        print(f"  {name}: {count} record(s)")


if __name__ == "__main__":
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
