# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Admin command line for data maintenance.

Usage:
    student-notifier-admin seed [--password Secret123] [--keep]
    student-notifier-admin import-classes classes.xlsx
    student-notifier-admin import-students students.xlsx [--columns C,D,F,G]
    student-notifier-admin sync-rosters

Every command uses the DATABASE_* settings of the service.
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.domains.auth.password import password_policy_violation
from src.domains.roster import (
    DEFAULT_STUDENT_COLUMNS,
    RosterService,
    StudentColumns,
    read_class_rows,
    read_student_rows,
)
from src.infrastructure.database.connection import (
    close_database,
    create_all,
    get_session,
    init_database,
)
from src.infrastructure.database.seeds import DEFAULT_PASSWORD, seed_demo_database
from src.models.roster import ImportReport, RosterSyncReport
from src.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def print_import_report(label: str, report: ImportReport) -> None:
    print(f"{label}: {report.created} created, {report.updated} updated")
    for issue in report.skipped:
        print(f"  row {issue.row} skipped: {issue.message}")
    for issue in report.errors:
        print(f"  row {issue.row} failed: {issue.message}")


def print_sync_report(report: RosterSyncReport) -> None:
    for name, count in sorted(report.enrolled.items()):
        print(f"{name}: {count} students")
    if report.overflow:
        print(f"Left off full rosters: {', '.join(report.overflow)}")
    if report.orphaned:
        print(f"In inactive classes: {', '.join(report.orphaned)}")


async def seed_command(db: AsyncSession, args: argparse.Namespace) -> int:
    seeded = await seed_demo_database(db, password=args.password, reset=not args.keep)
    for label in ("users", "classes", "students", "notifications"):
        print(f"{label}: {len(seeded[label])}")
    print(f"Demo accounts use the password {args.password}")
    return 0


async def import_classes_command(db: AsyncSession, args: argparse.Namespace) -> int:
    rows, skipped = read_class_rows(args.file)
    report = await RosterService(db).import_classes(rows)
    report.skipped = skipped
    print_import_report("Classes", report)
    return 1 if report.errors else 0


async def import_students_command(db: AsyncSession, args: argparse.Namespace) -> int:
    rows, skipped = read_student_rows(args.file, args.columns)
    report = await RosterService(db).import_students(rows)
    report.skipped = skipped
    print_import_report("Students", report)
    return 1 if report.errors else 0


async def sync_rosters_command(db: AsyncSession, args: argparse.Namespace) -> int:
    report = await RosterService(db).sync_rosters()
    print_sync_report(report)
    return 0


def _columns(value: str) -> StudentColumns:
    try:
        return StudentColumns.from_letters(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def _workbook(value: str) -> Path:
    path = Path(value)
    if not path.is_file():
        raise argparse.ArgumentTypeError(f"No such file: {value}")
    return path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="student-notifier-admin",
        description="Seed demo data, import rosters from Excel and rebuild class rosters.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed", help="Load the demo school")
    seed.add_argument("--password", default=DEFAULT_PASSWORD, help="Password for every demo account")
    seed.add_argument("--keep", action="store_true", help="Keep existing data instead of clearing it")
    seed.set_defaults(handler=seed_command)

    classes = commands.add_parser("import-classes", help="Upsert classes from an .xlsx sheet")
    classes.add_argument("file", type=_workbook)
    classes.set_defaults(handler=import_classes_command)

    students = commands.add_parser("import-students", help="Upsert students from an .xlsx sheet")
    students.add_argument("file", type=_workbook)
    students.add_argument(
        "--columns",
        type=_columns,
        default=DEFAULT_STUDENT_COLUMNS,
        help="Column letters for English name, Arabic name, code and class (default C,D,F,G)",
    )
    students.set_defaults(handler=import_students_command)

    sync = commands.add_parser("sync-rosters", help="Rebuild class rosters from student records")
    sync.set_defaults(handler=sync_rosters_command)

    return parser


async def run(args: argparse.Namespace) -> int:
    """Run one parsed command against the configured database."""
    settings = get_settings()
    setup_logging(settings)

    await init_database(settings)
    try:
        if settings.database.create_tables:
            await create_all()
        async with get_session() as db:
            return await args.handler(db, args)
    finally:
        await close_database()


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "seed":
        violation = password_policy_violation(args.password)
        if violation:
            parser.error(violation)

    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
