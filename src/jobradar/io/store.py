# src/jobradar/io/store.py
"""
Persistence sinks for normalized records.

A sink takes a list of Job/Session dicts and reports success or error for the
whole call. Records with a `source_url` are upserted on it, so importing the
same page twice updates the stored record instead of duplicating it.

`submit` never raises; `records()` and `known_urls()` raise PersistenceError
(or ConfigError) when the backing store cannot be read.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Protocol, Set

from jobradar.errors import PersistenceError

log = logging.getLogger(__name__)

FILENAMES = {"job": "jobs.json", "session": "sessions.json"}


@dataclass(frozen=True)
class SinkResult:
    status: Literal["success", "error"]
    message: str = ""
    inserted: int = 0
    updated: int = 0

    @property
    def ok(self) -> bool:
        return self.status == "success"


class Sink(Protocol):
    def submit(self, entities: List[Dict[str, Any]]) -> SinkResult: ...

    def known_urls(self) -> Set[str]: ...

    def records(self) -> List[Dict[str, Any]]: ...


def new_record_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4()}"


def _upsert(rows: Dict[str, Dict[str, Any]], entities: Iterable[Dict[str, Any]], kind: str) -> tuple[int, int]:
    """Merge entities into rows (keyed by source URL or id). Returns (inserted, updated)."""
    by_url = {r["source_url"]: key for key, r in rows.items() if r.get("source_url")}
    inserted = updated = 0
    for entity in entities:
        url = entity.get("source_url")
        if url and url in by_url:
            key = by_url[url]
            rows[key] = {**entity, "id": rows[key]["id"]}
            updated += 1
        else:
            record = {**entity, "id": new_record_id(kind)}
            rows[record["id"]] = record
            if url:
                by_url[url] = record["id"]
            inserted += 1
    return inserted, updated


class MemoryStore:
    """In-process sink. Handy for tests and dry runs."""

    def __init__(self, kind: str = "job", fail_with: Optional[str] = None):
        self.kind = kind
        self.fail_with = fail_with
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.calls = 0

    def submit(self, entities: List[Dict[str, Any]]) -> SinkResult:
        self.calls += 1
        if self.fail_with:
            return SinkResult(status="error", message=self.fail_with)
        if not entities:
            return SinkResult(status="error", message="No records to store")
        inserted, updated = _upsert(self.rows, entities, self.kind)
        return SinkResult(status="success", inserted=inserted, updated=updated)

    def known_urls(self) -> Set[str]:
        return {r["source_url"] for r in self.rows.values() if r.get("source_url")}

    def records(self) -> List[Dict[str, Any]]:
        return list(self.rows.values())


class JsonFileStore:
    """
    One JSON file per kind under `directory` (jobs.json / sessions.json).
    The file holds a list of records; it is rewritten on every submit.
    """

    def __init__(self, directory: Path, kind: str = "job"):
        if kind not in FILENAMES:
            raise ValueError(f"Unknown import kind: {kind!r}")
        self.kind = kind
        self.path = Path(directory) / FILENAMES[kind]

    def _load(self) -> Dict[str, Dict[str, Any]]:
        """
        Stored records keyed by id. Records edited in by hand without an id get
        a fresh one (persisted on the next submit). Raises PersistenceError.
        """
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Could not read {self.path}: {e}") from e
        if not isinstance(data, list):
            raise PersistenceError(f"Could not read {self.path}: expected a JSON list of records")

        rows: Dict[str, Dict[str, Any]] = {}
        for n, r in enumerate(data, 1):
            if not isinstance(r, dict):
                raise PersistenceError(f"Could not read {self.path}: entry {n} is not a JSON object")
            if not r.get("id"):
                r = {**r, "id": new_record_id(self.kind)}
                log.warning("Record without id in %s; assigned %s", self.path, r["id"])
            rows[str(r["id"])] = r
        return rows

    def submit(self, entities: List[Dict[str, Any]]) -> SinkResult:
        if not entities:
            return SinkResult(status="error", message="No records to store")
        try:
            rows = self._load()
        except PersistenceError as e:
            log.error("%s", e)
            return SinkResult(status="error", message=str(e))
        try:
            inserted, updated = _upsert(rows, entities, self.kind)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            with tmp.open("w", encoding="utf-8") as f:
                json.dump(list(rows.values()), f, ensure_ascii=False, indent=2)
            tmp.replace(self.path)
        except (OSError, ValueError) as e:
            log.error("Could not write %s: %s", self.path, e)
            return SinkResult(status="error", message=f"Could not write {self.path}: {e}")
        log.info("Stored %d new / %d updated %s record(s) in %s", inserted, updated, self.kind, self.path)
        return SinkResult(status="success", inserted=inserted, updated=updated)

    def known_urls(self) -> Set[str]:
        return {r["source_url"] for r in self._load().values() if r.get("source_url")}

    def records(self) -> List[Dict[str, Any]]:
        return list(self._load().values())
