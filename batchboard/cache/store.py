"""
One TTL cache for every leaderboard view.

Entries are JSON values stored under ``<prefix><key>`` with the write time
under the parallel key ``<prefix><key>:ts``. The storage backend decides
whether entries live in process memory or on disk; freshness is always a
pure function of ``now - stored_at < ttl`` with the TTL supplied per call.
"""
import json, os, tempfile, time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type
from urllib.parse import quote, unquote
import structlog
from batchboard.config.constants import CACHE_PREFIX
from batchboard.errors import MalformedDataError, TransportError

log = structlog.get_logger(__name__)

TS_SUFFIX = ":ts"


class MemoryBackend:
    """Process-local key/value store."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


class FileBackend:
    """Persistent key/value store: one file per key under `root`."""

    def __init__(self, root: str) -> None:
        self.root = root
        os.makedirs(root, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.root, quote(key, safe="") + ".json")

    def get(self, key: str) -> Optional[str]:
        try:
            with open(self._path(key), "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        # write-then-rename so readers never see half a file
        fd, tmp = tempfile.mkstemp(dir=self.root, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def delete(self, key: str) -> None:
        try:
            os.unlink(self._path(key))
        except FileNotFoundError:
            pass

    def keys(self) -> List[str]:
        return [unquote(name[:-len(".json")]) for name in os.listdir(self.root) if name.endswith(".json")]


@dataclass
class CacheEntry:
    value: Any
    stored_at: float

    def age(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.stored_at


class Cache:
    def __init__(self, backend=None, prefix: str = CACHE_PREFIX,
                 clock: Callable[[], float] = time.time,
                 fallback_on: Tuple[Type[BaseException], ...] = (TransportError, MalformedDataError)):
        self.backend = backend if backend is not None else MemoryBackend()
        self.prefix = prefix
        self.clock = clock
        self.fallback_on = fallback_on

    def _key(self, key: str) -> str:
        return self.prefix + key

    def write(self, key: str, value: Any, now: Optional[float] = None) -> None:
        k = self._key(key)
        self.backend.set(k, json.dumps(value))
        self.backend.set(k + TS_SUFFIX, repr(self.clock() if now is None else now))

    def read(self, key: str) -> Optional[CacheEntry]:
        k = self._key(key)
        raw = self.backend.get(k)
        if raw is None:
            return None
        try:
            value = json.loads(raw)
        except ValueError:
            log.warning("cache_entry_corrupt", key=key)
            self.invalidate(key)
            return None
        # no usable timestamp: never fresh, still usable as a stale fallback
        try:
            stored_at = float(self.backend.get(k + TS_SUFFIX) or "-inf")
        except ValueError:
            stored_at = float("-inf")
        return CacheEntry(value=value, stored_at=stored_at)

    def is_fresh(self, entry: Optional[CacheEntry], ttl: float, now: Optional[float] = None) -> bool:
        if entry is None:
            return False
        now = self.clock() if now is None else now
        return now - entry.stored_at < ttl

    async def get_or_fetch(self, key: str, ttl: float,
                           fetch: Callable[[], Awaitable[Any]], force: bool = False) -> Any:
        """Cached value while fresh, else fetch and store.

        A failed fetch falls back to the cached value whatever its age;
        with nothing cached the error propagates. No refresh happens in the
        background and concurrent callers may fetch the same key twice.
        """
        entry = self.read(key)
        if not force and self.is_fresh(entry, ttl):
            log.debug("cache_hit", key=key, age=round(entry.age(self.clock()), 3))
            return entry.value

        log.debug("cache_miss", key=key, force=force, cached=entry is not None)
        try:
            value = await fetch()
        except self.fallback_on as e:
            if entry is None:
                raise
            log.warning("cache_stale_fallback", key=key, age=round(entry.age(self.clock()), 3), err=str(e))
            return entry.value
        self.write(key, value)
        return value

    def invalidate(self, key: str) -> None:
        k = self._key(key)
        self.backend.delete(k)
        self.backend.delete(k + TS_SUFFIX)

    def invalidate_prefix(self, prefix: str) -> int:
        full = self._key(prefix)
        dropped = 0
        for k in self.backend.keys():
            if k.startswith(full):
                self.backend.delete(k)
                if not k.endswith(TS_SUFFIX):
                    dropped += 1
        return dropped

    def clear_all(self) -> int:
        n = self.invalidate_prefix("")
        log.info("cache_cleared", prefix=self.prefix, entries=n)
        return n
