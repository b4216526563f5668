#!/usr/bin/env python3
"""
Operational commands for the careers backend.

    python -m backend.manage init-db
    python -m backend.manage create-admin USERNAME PASSWORD
"""

import argparse
import logging
import sys

from backend.careers.database import SessionLocal, init_db
from backend.careers.services import admin as admin_service
from backend.careers.utils.error_handlers import AppError

logger = logging.getLogger("backend.manage")


def cmd_init_db(args: argparse.Namespace) -> int:
    init_db()
    print("✓ Database initialized successfully")
    return 0


def cmd_create_admin(args: argparse.Namespace) -> int:
    init_db()
    db = SessionLocal()
    try:
        admin = admin_service.create_admin(db, args.username, args.password)
    except AppError as e:
        print(f"✗ {e.message}")
        return 1
    finally:
        db.close()

    print(f"✓ Admin '{admin.username}' created (id={admin.id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="manage", description="Careers backend management commands")
    sub = parser.add_subparsers(dest="command", required=True)

    init = sub.add_parser("init-db", help="Create all tables")
    init.set_defaults(func=cmd_init_db)

    create = sub.add_parser("create-admin", help="Create an admin account")
    create.add_argument("username")
    create.add_argument("password")
    create.set_defaults(func=cmd_create_admin)
    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
