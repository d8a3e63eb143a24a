#!/usr/bin/env python3
"""
Add an entry to the interwiki database table.

Usage:
  export DATABASE_URL="postgresql://..."
  add-interwiki [--overwrite] Prefix URL
  add-interwiki --dry-run --conflict-policy ignore-on-duplicate rfc 'https://tools.ietf.org/html/rfc$1'

Set INTERWIKI_CACHE when interwiki data is served from a cache file instead of
the database; the script then leaves the table alone.
"""

from __future__ import annotations

import argparse
from typing import List, Optional

from .console import die, info
from .db import WikiDb
from .errors import StoreError, UsageError
from .interwiki import ConflictPolicy, Outcome, UpsertResult, require_args, upsert_interwiki
from .logged_update import run_logged_update
from .settings import Settings, load_env, load_settings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="add-interwiki", description="Add an entry to the interwiki database table")
    # Positionals are optional to argparse so a missing one exits 1 with our own message.
    parser.add_argument("prefix", nargs="?", default=None, help="Interwiki prefix (case-sensitive)")
    parser.add_argument("url", nargs="?", default=None, help="URL template, usually containing $1")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite existing links")
    parser.add_argument(
        "--conflict-policy",
        choices=[p.value for p in ConflictPolicy],
        default=None,
        help="How an existing prefix is handled (default: INTERWIKI_CONFLICT_POLICY or read-then-decide)",
    )
    parser.add_argument("--schema", default=None, help="Postgres schema name (default: DB_SCHEMA or public)")
    parser.add_argument("--ensure-schema", action="store_true", help="Create the interwiki/updatelog tables if missing")
    parser.add_argument("--dry-run", action="store_true", help="Run the read/write, then roll back")
    parser.add_argument("--update-key", default=None, help="Record this key in updatelog and skip later runs with it")
    parser.add_argument("--force", action="store_true", help="Run even if --update-key was already applied")
    return parser


def run_add_interwiki(db: WikiDb, settings: Settings, args: argparse.Namespace) -> Optional[UpsertResult]:
    policy = ConflictPolicy.parse(settings.conflict_policy)

    if settings.cache_override_active:
        # The store is not authoritative: no schema, updatelog or interwiki writes.
        result = upsert_interwiki(None, args.prefix, args.url, cache_override_active=True)
        print(result.status_line)
        return result

    if args.ensure_schema:
        db.ensure_schema(commit=not args.dry_run)

    def update() -> UpsertResult:
        result = upsert_interwiki(
            db,
            args.prefix,
            args.url,
            overwrite=bool(args.overwrite),
            policy=policy,
        )
        print(result.status_line)
        return result

    if args.update_key:
        return run_logged_update(db, args.update_key, update, force=bool(args.force))
    return update()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        require_args(args.prefix, args.url)
        if args.force and not args.update_key:
            raise UsageError("--force only applies together with --update-key")
        load_env()
        settings = load_settings(schema=args.schema, conflict_policy=args.conflict_policy)
        ConflictPolicy.parse(settings.conflict_policy)
    except UsageError as e:
        die(str(e))

    try:
        with WikiDb(settings.database_url, schema=settings.schema) as db:
            result = run_add_interwiki(db, settings, args)

            changed = (
                result is not None
                and result.outcome is not Outcome.SKIPPED_CACHE_OVERRIDE
                and (result.outcome.wrote or bool(args.update_key))
            )
            if args.dry_run:
                db.rollback()
                info("Dry run: no changes committed.")
            elif changed:
                db.commit()
                info("Commit OK.")
    except (StoreError, RuntimeError) as e:
        die(str(e))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
