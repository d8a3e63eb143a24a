from typing import Dict, List, Optional, Tuple

import pytest

from maintenance.interwiki import InterwikiEntry


class FakeStore:
    """In-memory stand-in for WikiDb keyed by prefix."""

    def __init__(self, rows: Optional[Dict[str, InterwikiEntry]] = None):
        self.rows: Dict[str, InterwikiEntry] = dict(rows or {})
        self.reads: List[str] = []
        self.writes: List[Tuple[InterwikiEntry, bool]] = []
        self.update_keys: Dict[str, Optional[str]] = {}
        self.commits = 0
        self.rollbacks = 0
        self.schema_ensured = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return None

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def ensure_schema(self, *, commit: bool = True) -> bool:
        self.schema_ensured = True
        if commit:
            self.commits += 1
        return True

    def fetch_interwiki_url(self, prefix: str) -> Optional[str]:
        self.reads.append(prefix)
        row = self.rows.get(prefix)
        return row.url if row else None

    def replace_interwiki(self, entry: InterwikiEntry, *, ignore_duplicate: bool) -> str:
        self.writes.append((entry, ignore_duplicate))
        if entry.prefix in self.rows:
            if ignore_duplicate:
                return "ignored"
            self.rows[entry.prefix] = entry
            return "updated"
        self.rows[entry.prefix] = entry
        return "inserted"

    def has_update_key(self, key: str) -> bool:
        return key in self.update_keys

    def record_update_key(self, key: str, value: Optional[str] = None) -> None:
        self.update_keys.setdefault(key, value)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def seeded_store():
    return FakeStore({"rfc": InterwikiEntry(prefix="rfc", url="https://old.example/rfc$1")})


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ("DATABASE_URL", "DB_SCHEMA", "INTERWIKI_CACHE", "INTERWIKI_CONFLICT_POLICY"):
        monkeypatch.delenv(name, raising=False)
    # keep load_env() away from any developer .env
    monkeypatch.chdir(tmp_path)
