"""
Insert or replace one row of the `interwiki` table (prefix -> URL template).

Two conflict policies exist for an already-present prefix:

- IGNORE_ON_DUPLICATE: no pre-read. Without --overwrite the insert silently
  does nothing on conflict; with --overwrite the row is replaced.
- READ_THEN_DECIDE: read the current URL first. An existing row is left alone
  unless --overwrite is given, and the URL that was kept is reported.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import UsageError


class ConflictPolicy(enum.Enum):
    IGNORE_ON_DUPLICATE = "ignore-on-duplicate"
    READ_THEN_DECIDE = "read-then-decide"

    @classmethod
    def parse(cls, raw: str) -> "ConflictPolicy":
        value = (raw or "").strip().lower().replace("_", "-")
        for policy in cls:
            if policy.value == value:
                return policy
        choices = ", ".join(p.value for p in cls)
        raise UsageError(f"Unknown conflict policy {raw!r} (expected one of: {choices})")


class Outcome(enum.Enum):
    SKIPPED_CACHE_OVERRIDE = "skipped-cache-override"
    SKIPPED_EXISTING = "skipped-existing"
    CREATED = "created"
    OVERWRITTEN = "overwritten"

    @property
    def wrote(self) -> bool:
        return self in (Outcome.CREATED, Outcome.OVERWRITTEN)


@dataclass(frozen=True)
class InterwikiEntry:
    prefix: str
    url: str
    api: str = ""
    wiki_id: str = ""
    is_local: bool = False


class InterwikiStore(Protocol):
    def fetch_interwiki_url(self, prefix: str) -> Optional[str]: ...

    def replace_interwiki(self, entry: InterwikiEntry, *, ignore_duplicate: bool) -> str: ...


@dataclass(frozen=True)
class UpsertResult:
    outcome: Outcome
    entry: InterwikiEntry
    existing_url: Optional[str] = None

    @property
    def status_line(self) -> str:
        prefix, url = self.entry.prefix, self.entry.url
        if self.outcome is Outcome.SKIPPED_CACHE_OVERRIDE:
            return "InterWiki cache is in use; interwiki table left unchanged"
        if self.outcome is Outcome.SKIPPED_EXISTING:
            if self.existing_url is None:
                return f"InterWiki prefix {prefix} already exists; left unchanged"
            return f"InterWiki prefix {prefix} exists with URL {self.existing_url}"
        if self.outcome is Outcome.OVERWRITTEN:
            if self.existing_url is None:
                return f"Overwriting InterWiki link {prefix} --> {url}"
            return f"Overwriting InterWiki link {prefix} --> {url} (was {self.existing_url})"
        return f"Adding InterWiki link {prefix} --> {url}"


def require_args(prefix: Optional[str], url: Optional[str]) -> None:
    if not (prefix or "").strip():
        raise UsageError("Need to specify Prefix and URL")
    if not (url or "").strip():
        raise UsageError("Need to specify URL")


_WRITE_OUTCOMES = {"inserted": Outcome.CREATED, "updated": Outcome.OVERWRITTEN, "ignored": Outcome.SKIPPED_EXISTING}


def upsert_interwiki(
    store: Optional[InterwikiStore],
    prefix: str,
    url: str,
    *,
    overwrite: bool = False,
    cache_override_active: bool = False,
    policy: ConflictPolicy = ConflictPolicy.READ_THEN_DECIDE,
) -> UpsertResult:
    """Create or replace the row for `prefix`.

    Issues at most one read and one write against `store`. With the cache
    override active the store is never touched and may be None.
    Surrounding whitespace is dropped from prefix and url. Store failures propagate as StoreError.
    """
    require_args(prefix, url)
    entry = InterwikiEntry(prefix=prefix.strip(), url=url.strip())

    if cache_override_active:
        return UpsertResult(Outcome.SKIPPED_CACHE_OVERRIDE, entry)
    if store is None:
        raise ValueError("store is required unless the interwiki cache override is active")

    if policy is ConflictPolicy.IGNORE_ON_DUPLICATE:
        status = store.replace_interwiki(entry, ignore_duplicate=not overwrite)
        return UpsertResult(_WRITE_OUTCOMES[status], entry)

    existing_url = store.fetch_interwiki_url(entry.prefix)
    if existing_url is not None and not overwrite:
        return UpsertResult(Outcome.SKIPPED_EXISTING, entry, existing_url=existing_url)

    status = store.replace_interwiki(entry, ignore_duplicate=False)
    return UpsertResult(_WRITE_OUTCOMES[status], entry, existing_url=existing_url)
