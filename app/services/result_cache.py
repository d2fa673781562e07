"""Key-value store for finished research results.

Every backend offers the same four operations (get, set, scan_prefix,
available). Entries are always replaced whole, never merged, so concurrent
writers to the same key resolve as last-write-wins.
"""
from __future__ import annotations

import asyncio
import json
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from pathlib import Path
from typing import Any

from app.config import settings
from app.services import database
from app.services.errors import CacheUnavailableError

CACHE_VERSION = 1


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    value: Any
    stored_at: datetime


class ResultCache(ABC):
    def __init__(self, *, default_ttl: int | None = None):
        self.default_ttl = settings.cache_ttl_seconds if default_ttl is None else default_ttl

    def _expires_at(self, ttl: int | None) -> datetime | None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            return None
        return _utc_now() + timedelta(seconds=ttl)

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or None when absent or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store value under key, replacing any previous entry."""

    @abstractmethod
    async def scan_prefix(self, prefix: str) -> list[CacheEntry]:
        """Return live entries whose key starts with prefix, in a stable order."""

    @abstractmethod
    async def available(self) -> bool:
        """Whether the backend can currently serve requests."""

    async def close(self) -> None:
        return None


class MemoryResultCache(ResultCache):
    """Process-local cache. Scan order is insertion order of the first write."""

    def __init__(self, *, default_ttl: int | None = None):
        super().__init__(default_ttl=default_ttl)
        self._entries: dict[str, tuple[CacheEntry, datetime | None]] = {}

    def _live(self, key: str) -> CacheEntry | None:
        item = self._entries.get(key)
        if item is None:
            return None
        entry, expires_at = item
        if expires_at is not None and _utc_now() > expires_at:
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> Any | None:
        entry = self._live(key)
        return entry.value if entry else None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        entry = CacheEntry(key=key, value=value, stored_at=_utc_now())
        self._entries[key] = (entry, self._expires_at(ttl))

    async def scan_prefix(self, prefix: str) -> list[CacheEntry]:
        matches = []
        for key in list(self._entries):
            if not key.startswith(prefix):
                continue
            entry = self._live(key)
            if entry is not None:
                matches.append(entry)
        return matches

    async def available(self) -> bool:
        return True


class FileResultCache(ResultCache):
    """One JSON document per key under a directory. Scan order is by key."""

    def __init__(self, base_dir: str | None = None, *, default_ttl: int | None = None):
        super().__init__(default_ttl=default_ttl)
        self.base_dir = Path(base_dir or settings.cache_dir)

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{sha256(key.encode('utf-8')).hexdigest()}.json"

    @staticmethod
    def _read(path: Path) -> CacheEntry | None:
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return None
        if not isinstance(payload, dict) or payload.get("version") != CACHE_VERSION:
            return None

        expires_raw = payload.get("expires_at")
        if isinstance(expires_raw, str):
            try:
                expires_at = datetime.fromisoformat(expires_raw)
            except ValueError:
                return None
            if _utc_now() > expires_at:
                return None

        try:
            stored_at = datetime.fromisoformat(payload["stored_at"])
        except (KeyError, TypeError, ValueError):
            return None
        key = payload.get("key")
        if not isinstance(key, str):
            return None
        return CacheEntry(key=key, value=payload.get("value"), stored_at=stored_at)

    def _write(self, key: str, value: Any, expires_at: datetime | None) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        payload = {
            "version": CACHE_VERSION,
            "key": key,
            "stored_at": _utc_now().isoformat(),
            "expires_at": expires_at.isoformat() if expires_at else None,
            "value": value,
        }
        # Write-then-rename so readers never observe a half-written document.
        fd, tmp_name = tempfile.mkstemp(dir=self.base_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=True)
            os.replace(tmp_name, self._path(key))
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _scan(self, prefix: str) -> list[CacheEntry]:
        if not self.base_dir.exists():
            return []
        entries = [
            entry
            for entry in (self._read(path) for path in self.base_dir.glob("*.json"))
            if entry is not None and entry.key.startswith(prefix)
        ]
        return sorted(entries, key=lambda entry: entry.key)

    async def get(self, key: str) -> Any | None:
        path = self._path(key)
        entry = await asyncio.to_thread(self._read, path)
        if entry is None or entry.key != key:
            return None
        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await asyncio.to_thread(self._write, key, value, self._expires_at(ttl))
        except OSError as e:
            raise CacheUnavailableError(f"File cache write failed: {e}") from e

    async def scan_prefix(self, prefix: str) -> list[CacheEntry]:
        try:
            return await asyncio.to_thread(self._scan, prefix)
        except OSError as e:
            raise CacheUnavailableError(f"File cache scan failed: {e}") from e

    async def available(self) -> bool:
        try:
            self.base_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        return os.access(self.base_dir, os.W_OK)


class PostgresResultCache(ResultCache):
    """Cache rows in the research_cache table via the shared asyncpg pool."""

    async def get(self, key: str) -> Any | None:
        try:
            row = await database.get_cached_result(key)
        except Exception as e:
            raise CacheUnavailableError(f"Postgres cache read failed: {e}") from e
        return row["value"] if row else None

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        try:
            await database.upsert_cached_result(key, value, self._expires_at(ttl))
        except Exception as e:
            raise CacheUnavailableError(f"Postgres cache write failed: {e}") from e

    async def scan_prefix(self, prefix: str) -> list[CacheEntry]:
        try:
            rows = await database.scan_cached_results(prefix)
        except Exception as e:
            raise CacheUnavailableError(f"Postgres cache scan failed: {e}") from e
        return [
            CacheEntry(key=row["key"], value=row["value"], stored_at=row["stored_at"])
            for row in rows
        ]

    async def available(self) -> bool:
        return await database.ping()

    async def close(self) -> None:
        await database.close_pool()


class NullResultCache(ResultCache):
    """Stand-in when caching is switched off: every operation is unavailable."""

    async def get(self, key: str) -> Any | None:
        raise CacheUnavailableError("Result cache is disabled")

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        raise CacheUnavailableError("Result cache is disabled")

    async def scan_prefix(self, prefix: str) -> list[CacheEntry]:
        raise CacheUnavailableError("Result cache is disabled")

    async def available(self) -> bool:
        return False


def build_cache(backend: str | None = None) -> ResultCache:
    name = (backend or settings.cache_backend).lower().strip()
    if name == "memory":
        return MemoryResultCache()
    if name == "file":
        return FileResultCache()
    if name == "postgres":
        return PostgresResultCache()
    if name == "none":
        return NullResultCache()
    raise ValueError(f"Unsupported CACHE_BACKEND: {name}")


# Singleton
_cache: ResultCache | None = None


def get_cache() -> ResultCache:
    """Get or create the process-wide result cache."""
    global _cache
    if _cache is None:
        _cache = build_cache()
    return _cache


async def close_cache() -> None:
    global _cache
    if _cache is not None:
        await _cache.close()
        _cache = None
