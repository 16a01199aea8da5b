#!/usr/bin/env python3
"""
Create (or refresh) an admin account in the relational store.

Usage:
  python scripts/seed_admin.py --email admin@zingalinga.com --password secret [--name "Admin User"]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from zinga_api.db.create_tables import create_all
from zinga_api.repositories.sql_repository import SQLRepository
from zinga_api.services.catalog_service import CatalogService


def main() -> None:
    ap = argparse.ArgumentParser(description="Create or refresh an admin user")
    ap.add_argument("--email", required=True, help="Admin e-mail")
    ap.add_argument("--password", required=True, help="Plain password (stored hashed)")
    ap.add_argument("--name", default="Admin User", help="Display name")
    args = ap.parse_args()

    create_all()
    repo = SQLRepository()
    service = CatalogService(repo)
    payload = {"email": args.email, "password": args.password, "name": args.name, "role": "admin"}

    existing = repo.get_user_by_email(args.email)
    if existing:
        user = service.update_user(existing.id, payload)
        print("OK: admin updated")
    else:
        user = service.create_user(payload)
        print("OK: admin created")
    print(f"  ID: {user['id']}")
    print(f"  Email: {user['email']}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
