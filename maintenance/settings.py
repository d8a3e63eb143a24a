"""
Environment configuration for the maintenance scripts.

Values come from the process environment, optionally seeded from a `.env`
file in the working directory (python-dotenv).
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from dotenv import load_dotenv

from .errors import UsageError


SCHEMA_NAME_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
FALSY_VALUES = {"", "0", "false", "no", "off", "none"}

DEFAULT_CONFLICT_POLICY = "read-then-decide"


def load_env() -> None:
    dotenv_path = os.path.join(os.getcwd(), ".env")
    if os.path.exists(dotenv_path):
        load_dotenv(dotenv_path=dotenv_path)
    else:
        load_dotenv()


def _require_env(name: str) -> str:
    value = (os.getenv(name) or "").strip()
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def strip_schema_query_param(db_url: str) -> str:
    """
    Prisma allows DATABASE_URL like: postgresql://.../db?schema=public
    psycopg2 rejects `schema=` as a DSN option. Strip it for Python connections.
    """
    p = urlparse(db_url)
    if not p.query:
        return db_url
    q = [(k, v) for (k, v) in parse_qsl(p.query, keep_blank_values=True) if k.lower() != "schema"]
    return urlunparse(p._replace(query=urlencode(q)))


def safe_schema_name(raw: Optional[str]) -> str:
    s = (raw or "public").strip()
    if not s:
        return "public"
    if not SCHEMA_NAME_RE.match(s):
        raise UsageError(f"Invalid schema name: {raw!r}")
    return s


def cache_override_active(value: Optional[str]) -> bool:
    return (value or "").strip().lower() not in FALSY_VALUES


@dataclass(frozen=True)
class Settings:
    schema: str
    interwiki_cache: Optional[str]
    conflict_policy: str

    @property
    def cache_override_active(self) -> bool:
        return cache_override_active(self.interwiki_cache)

    def database_url(self) -> str:
        # Only resolved when the store is actually opened.
        return strip_schema_query_param(_require_env("DATABASE_URL"))


def load_settings(*, schema: Optional[str] = None, conflict_policy: Optional[str] = None) -> Settings:
    """Read settings from the environment; explicit arguments (CLI flags) win."""
    return Settings(
        schema=safe_schema_name(schema or os.getenv("DB_SCHEMA")),
        interwiki_cache=os.getenv("INTERWIKI_CACHE"),
        conflict_policy=(conflict_policy or os.getenv("INTERWIKI_CONFLICT_POLICY") or DEFAULT_CONFLICT_POLICY).strip().lower(),
    )
