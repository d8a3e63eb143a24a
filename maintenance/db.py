from __future__ import annotations

import re
from typing import Any, Optional, Sequence

import psycopg2

from .console import warn
from .errors import StoreError
from .interwiki import InterwikiEntry


IDENT_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

INTERWIKI_COLUMNS = ["iw_prefix", "iw_url", "iw_api", "iw_wikiid", "iw_local"]


def q_ident(ident: str) -> str:
    if not IDENT_RE.match(ident):
        raise ValueError(f"Unsafe identifier: {ident!r}")
    return f'"{ident}"'


def table_ref(schema: str, table: str) -> str:
    return f"{q_ident(schema)}.{q_ident(table)}"


class WikiDb:
    """psycopg2-backed store for the interwiki and updatelog tables.

    The connection is opened on first use, so a run that never touches the
    database never needs DATABASE_URL.
    """

    def __init__(self, database_url, *, schema: str = "public"):
        # database_url may be a callable so the DSN is only resolved on connect
        self._database_url = database_url
        self.schema = schema
        self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self._conn is None:
            return
        try:
            if exc:
                self._conn.rollback()
        except psycopg2.Error:
            # broken connection; keep the original error
            pass
        finally:
            self._conn.close()
            self._conn = None

    @property
    def conn(self):
        if self._conn is None:
            dsn = self._database_url() if callable(self._database_url) else self._database_url
            try:
                self._conn = psycopg2.connect(dsn)
            except psycopg2.Error as e:
                raise StoreError(f"Could not connect to database: {e}") from e
            self._conn.autocommit = False
        return self._conn

    def _execute(self, sql: str, params: Sequence[Any] = (), *, fetch: bool = False):
        try:
            with self.conn.cursor() as cur:
                cur.execute(sql, params)
                return cur.fetchone() if fetch else None
        except psycopg2.Error as e:
            raise StoreError(f"Database error: {e}") from e

    def commit(self) -> None:
        try:
            self.conn.commit()
        except psycopg2.Error as e:
            raise StoreError(f"Commit failed: {e}") from e

    def rollback(self) -> None:
        if self._conn is not None:
            self._conn.rollback()

    def ensure_schema(self, *, commit: bool = True) -> bool:
        """
        Best-effort schema guard for a fresh database.

        Creates `interwiki` and `updatelog` when missing. If that is not
        possible (permissions, read replica) warn and carry on; the later
        read/write reports the real problem. With commit=False the DDL stays
        in the open transaction (dry runs roll it back).
        """
        try:
            self._execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table_ref(self.schema, "interwiki")} (
                  iw_prefix TEXT PRIMARY KEY,
                  iw_url TEXT NOT NULL,
                  iw_api TEXT NOT NULL DEFAULT '',
                  iw_wikiid TEXT NOT NULL DEFAULT '',
                  iw_local SMALLINT NOT NULL,
                  iw_trans SMALLINT NOT NULL DEFAULT 0
                );
                """
            )
            self._execute(
                f"""
                CREATE TABLE IF NOT EXISTS {table_ref(self.schema, "updatelog")} (
                  ul_key TEXT PRIMARY KEY,
                  ul_value TEXT
                );
                """
            )
            if commit:
                self.commit()
            return True
        except StoreError as e:
            self.rollback()
            warn(f"Could not ensure interwiki/updatelog tables; continuing anyway. ({e})")
            return False

    def fetch_interwiki_url(self, prefix: str) -> Optional[str]:
        row = self._execute(
            f"SELECT iw_url FROM {table_ref(self.schema, 'interwiki')} WHERE iw_prefix = %s LIMIT 1;",
            (prefix,),
            fetch=True,
        )
        return row[0] if row else None

    def replace_interwiki(self, entry: InterwikiEntry, *, ignore_duplicate: bool) -> str:
        """Write every column of `entry` in one statement.

        Returns "inserted", "updated" or "ignored" (duplicate prefix left as is).
        """
        col_list = ", ".join(INTERWIKI_COLUMNS)
        placeholders = ", ".join(["%s"] * len(INTERWIKI_COLUMNS))
        if ignore_duplicate:
            conflict = "DO NOTHING"
        else:
            set_list = ", ".join(f"{c} = EXCLUDED.{c}" for c in INTERWIKI_COLUMNS if c != "iw_prefix")
            conflict = f"DO UPDATE SET {set_list}"

        # xmax is 0 only for a freshly inserted tuple
        sql = f"""
          INSERT INTO {table_ref(self.schema, "interwiki")} ({col_list})
          VALUES ({placeholders})
          ON CONFLICT (iw_prefix) {conflict}
          RETURNING (xmax = 0) AS inserted;
        """
        values = (entry.prefix, entry.url, entry.api, entry.wiki_id, int(entry.is_local))
        row = self._execute(sql, values, fetch=True)
        if row is None:
            return "ignored"
        return "inserted" if row[0] else "updated"

    def has_update_key(self, key: str) -> bool:
        row = self._execute(
            f"SELECT 1 FROM {table_ref(self.schema, 'updatelog')} WHERE ul_key = %s LIMIT 1;",
            (key,),
            fetch=True,
        )
        return row is not None

    def record_update_key(self, key: str, value: Optional[str] = None) -> None:
        self._execute(
            f"INSERT INTO {table_ref(self.schema, 'updatelog')} (ul_key, ul_value) VALUES (%s, %s) ON CONFLICT (ul_key) DO NOTHING;",
            (key, value),
        )
