"""Validation-token response cache.

Maps a cacheable request identity ``(method, url)`` to the last payload the
server returned for it together with that response's ETag.

Entries live for the lifetime of the cache and are never evicted: an entry
is only ever overwritten by a newer response for the same identity. Callers
that need bounded memory should create a new client (or call
:meth:`ResponseCache.clear`) rather than relying on expiry.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class CacheEntry:
    """Last known payload for one request identity."""

    etag: str
    payload: Any


class ResponseCache:
    """In-memory ETag cache; last writer wins."""

    def __init__(self) -> None:
        self._data: Dict[str, CacheEntry] = {}

    @staticmethod
    def key(method: str, url: str) -> str:
        return f"{method.upper()}:{url}"

    def get(self, method: str, url: str) -> Optional[CacheEntry]:
        return self._data.get(self.key(method, url))

    def store(self, method: str, url: str, etag: str, payload: Any) -> CacheEntry:
        entry = CacheEntry(etag=etag, payload=payload)
        self._data[self.key(method, url)] = entry
        return entry

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data
