"""Two-tier, TTL-bound cache of computed comparisons.

Entries are addressed by a key derived from the normalised request
parameters. A process-local :class:`MemoryStore` answers first; a
session-scoped :class:`SessionStore` survives page reloads and refills the
memory tier on a hit. Expiry is evaluated lazily on read and
:meth:`CompareCache.sweep_expired` clears stale entries on demand.

Both tiers hold JSON text, so a corrupt durable value is detected on decode
and discarded rather than surfaced to the caller.
"""

from __future__ import annotations

import base64
import json
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Protocol,
    Tuple,
)

from quote.models import Quote

ENTRY_PREFIX = "compare:entry:"
LAST_KEY = "compare:last-key"
FORM_KEY = "compare:form"
DEFAULT_TTL_SECONDS = 30 * 60

logger = logging.getLogger(__name__)


def normalize_params(value: Any) -> Any:
    """Return ``value`` with every mapping's keys sorted, recursively.

    Sequences keep their element order.
    """

    if isinstance(value, Mapping):
        return {str(k): normalize_params(value[k]) for k in sorted(value, key=str)}
    if isinstance(value, (list, tuple)):
        return [normalize_params(item) for item in value]
    return value


def make_key(params: Mapping[str, Any]) -> str:
    """Return a URL-safe cache key for ``params``.

    Mappings that differ only in key order share a key; reordered list
    elements (such as box groups) do not.
    """

    text = json.dumps(normalize_params(params), separators=(",", ":"), ensure_ascii=False)
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class CacheEntry:
    """A cached comparison with its original parameters."""

    key: str
    params: Mapping[str, Any]
    visible: Tuple[Quote, ...]
    hidden: Tuple[Quote, ...]
    created_at_ms: int
    form_snapshot: Optional[Mapping[str, Any]] = None
    extras: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def to_json(self) -> str:
        return json.dumps(
            {
                "key": self.key,
                "params": self.params,
                "visible": [q.to_dict() for q in self.visible],
                "hidden": [q.to_dict() for q in self.hidden],
                "createdAt": self.created_at_ms,
                "formSnapshot": self.form_snapshot,
                "extras": dict(self.extras),
            },
            separators=(",", ":"),
        )

    @classmethod
    def from_json(cls, raw: str) -> "CacheEntry":
        """Decode an entry.

        Raises:
            ValueError: If ``raw`` is not a well-formed entry.
        """

        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("cache entry is not an object")
        try:
            return cls(
                key=str(data["key"]),
                params=dict(data["params"]),
                visible=tuple(Quote.from_dict(item) for item in data["visible"]),
                hidden=tuple(Quote.from_dict(item) for item in data["hidden"]),
                created_at_ms=int(data["createdAt"]),
                form_snapshot=data.get("formSnapshot"),
                extras=dict(data.get("extras") or {}),
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"malformed cache entry: {exc}") from exc


class KeyValueStore(Protocol):
    """Plain text key/value storage used by both cache tiers."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self) -> Iterable[str]: ...


class MemoryStore:
    """Thread-safe in-process store shared by every request of a worker."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


class SessionStore:
    """Adapter over a mapping scoped to one browser session.

    Typically wraps :data:`flask.session`; non-string values already present
    in the mapping are ignored.
    """

    def __init__(self, mapping: MutableMapping[str, Any]):
        self._mapping = mapping

    def get(self, key: str) -> Optional[str]:
        value = self._mapping.get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._mapping[key] = value

    def delete(self, key: str) -> None:
        self._mapping.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._mapping.keys())


class CompareCache:
    """Facade over the fast and durable tiers.

    Args:
        fast: Process-local tier consulted first.
        durable: Session-scoped tier; also holds the last-key pointer and the
            form snapshot.
        ttl_seconds: Entry lifetime measured from write time.
        clock: Returns the current time in seconds; injectable for tests.
    """

    def __init__(
        self,
        fast: KeyValueStore,
        durable: KeyValueStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.fast = fast
        self.durable = durable
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def now_ms(self) -> int:
        return int(self.clock() * 1000)

    def is_expired(self, entry: CacheEntry) -> bool:
        return self.now_ms() - entry.created_at_ms > self.ttl_seconds * 1000

    def write(self, key: str, entry: CacheEntry) -> None:
        """Store ``entry`` in both tiers and point the last key at it.

        Stale entries in the worker-wide fast tier are swept first.
        """

        self._sweep(self.fast)
        raw = entry.to_json()
        self.fast.set(ENTRY_PREFIX + key, raw)
        self.durable.set(ENTRY_PREFIX + key, raw)
        self.durable.set(LAST_KEY, key)

    def _decode(self, store: KeyValueStore, key: str) -> Optional[CacheEntry]:
        raw = store.get(ENTRY_PREFIX + key)
        if raw is None:
            return None
        try:
            entry = CacheEntry.from_json(raw)
        except ValueError as exc:
            logger.debug("Discarding corrupt cache entry %s: %s", key, exc)
            store.delete(ENTRY_PREFIX + key)
            return None
        if self.is_expired(entry):
            logger.debug("Cache entry %s expired.", key)
            store.delete(ENTRY_PREFIX + key)
            return None
        return entry

    def read_by_key(self, key: str) -> Optional[CacheEntry]:
        """Return the live entry for ``key`` or ``None`` on a miss."""

        entry = self._decode(self.fast, key)
        if entry is not None:
            return entry
        entry = self._decode(self.durable, key)
        if entry is not None:
            self.fast.set(ENTRY_PREFIX + key, entry.to_json())
        return entry

    def read_last_key(self) -> Optional[str]:
        return self.durable.get(LAST_KEY)

    def read_last(self) -> Optional[CacheEntry]:
        key = self.read_last_key()
        return self.read_by_key(key) if key else None

    def save_form_snapshot(self, patch: Mapping[str, Any]) -> Dict[str, Any]:
        """Merge ``patch`` into the stored form snapshot, field by field."""

        snapshot = self.load_form_snapshot() or {}
        snapshot.update(patch)
        self.durable.set(FORM_KEY, json.dumps(snapshot, separators=(",", ":")))
        return snapshot

    def load_form_snapshot(self) -> Optional[Dict[str, Any]]:
        raw = self.durable.get(FORM_KEY)
        if raw is None:
            return None
        try:
            snapshot = json.loads(raw)
        except ValueError:
            snapshot = None
        if not isinstance(snapshot, dict):
            logger.debug("Discarding corrupt form snapshot.")
            self.durable.delete(FORM_KEY)
            return None
        return snapshot

    def sweep_expired(self) -> int:
        """Delete expired or corrupt entries from both tiers.

        Returns:
            int: Number of entries removed.
        """

        return self._sweep(self.fast) + self._sweep(self.durable)

    def _sweep(self, store: KeyValueStore) -> int:
        removed = 0
        for name in list(store.keys()):
            if not name.startswith(ENTRY_PREFIX):
                continue
            if self._decode(store, name[len(ENTRY_PREFIX):]) is None:
                removed += 1
        return removed
