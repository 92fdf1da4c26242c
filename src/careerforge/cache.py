"""Stabilization cache: one immutable result per (user, task, fingerprint)."""

import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog
from pydantic import ValidationError as PydanticValidationError

from careerforge.exceptions import StorageError
from careerforge.fingerprint import hash_text
from careerforge.schemas.records import CachedResult

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_DIR = "./outputs/.cache"
DEFAULT_REDIS_PREFIX = "careerforge:results:"


# ============================================================================
# Abstract Result Store Interface
# ============================================================================

class ResultStore(ABC):
    """
    Abstract base class for result stores.

    Stores never overwrite a record: ``put_if_absent`` keeps whichever
    record reached the key first and hands it back, so concurrent writers
    converge on the same result.
    """

    @abstractmethod
    def get(self, user_id: str, task: str, fingerprint: str) -> CachedResult | None:
        """
        Retrieve a stored record.

        Returns:
            The record if present, None otherwise
        """
        pass

    @abstractmethod
    def put_if_absent(self, record: CachedResult) -> CachedResult:
        """
        Store a record unless its key is already taken.

        Returns:
            The stored record: ``record`` itself, or the earlier winner
        """
        pass

    @abstractmethod
    def latest(self, user_id: str, task: str) -> CachedResult | None:
        """Most recently generated record for (user, task), if any."""
        pass


# ============================================================================
# No-Op Store (Disables Caching)
# ============================================================================

class NoOpResultStore(ResultStore):
    """
    Store that keeps nothing.

    Every lookup misses and every write is accepted and forgotten. Used for
    the ``--no-cache`` flag.
    """

    def __init__(self):
        self.logger = logger.bind(backend="NoOpStore")

    def get(self, user_id: str, task: str, fingerprint: str) -> CachedResult | None:
        return None

    def put_if_absent(self, record: CachedResult) -> CachedResult:
        return record

    def latest(self, user_id: str, task: str) -> CachedResult | None:
        return None


# ============================================================================
# In-Memory Store
# ============================================================================

class MemoryResultStore(ResultStore):
    """Process-local store; the default for tests and embedded use."""

    def __init__(self):
        self._records: dict[tuple[str, str, str], CachedResult] = {}
        self._latest: dict[tuple[str, str], CachedResult] = {}
        self._lock = threading.Lock()
        self.logger = logger.bind(backend="MemoryStore")

    def get(self, user_id: str, task: str, fingerprint: str) -> CachedResult | None:
        with self._lock:
            return self._records.get((user_id, task, fingerprint))

    def put_if_absent(self, record: CachedResult) -> CachedResult:
        with self._lock:
            existing = self._records.get(record.key)
            if existing is not None:
                self.logger.debug("record_exists", task=record.task, fingerprint=record.fingerprint[:16])
                return existing
            self._records[record.key] = record
            current = self._latest.get((record.user_id, record.task))
            if current is None or record.generated_at >= current.generated_at:
                self._latest[(record.user_id, record.task)] = record
            return record

    def latest(self, user_id: str, task: str) -> CachedResult | None:
        with self._lock:
            return self._latest.get((user_id, task))


# ============================================================================
# File-Based Store
# ============================================================================

class FileResultStore(ResultStore):
    """
    Local file-based store.

    Layout::

        {cache_dir}/user-{sha16(user_id)}/{task}/{fingerprint}.json
        {cache_dir}/user-{sha16(user_id)}/{task}/latest.json

    Records are written to a temp file and hard-linked into place, which
    fails if the target exists; the link is the uniqueness check. An
    existing file that cannot be read back is replaced by the new record.
    """

    LATEST_FILENAME = "latest.json"

    def __init__(self, cache_dir: Path | str = DEFAULT_CACHE_DIR):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._latest_lock = threading.Lock()
        self.logger = logger.bind(backend="FileStore")

    def _task_dir(self, user_id: str, task: str) -> Path:
        return self.cache_dir / f"user-{hash_text(user_id)[:16]}" / task

    def _record_path(self, user_id: str, task: str, fingerprint: str) -> Path:
        return self._task_dir(user_id, task) / f"{fingerprint}.json"

    def _read(self, path: Path) -> CachedResult:
        try:
            return CachedResult.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            raise StorageError(f"Unreadable result record {path}: {e}") from e

    def get(self, user_id: str, task: str, fingerprint: str) -> CachedResult | None:
        path = self._record_path(user_id, task, fingerprint)
        if not path.exists():
            return None

        try:
            record = self._read(path)
        except StorageError as e:
            self.logger.warning("record_unreadable", task=task, path=str(path), error=str(e))
            return None

        # Sanity check against hand-edited or misplaced files
        if record.fingerprint != fingerprint or record.user_id != user_id:
            self.logger.warning("record_key_mismatch", task=task, path=str(path))
            return None

        self.logger.debug("record_loaded", task=task, fingerprint=fingerprint[:16])
        return record

    def put_if_absent(self, record: CachedResult) -> CachedResult:
        task_dir = self._task_dir(record.user_id, record.task)
        task_dir.mkdir(parents=True, exist_ok=True)
        path = self._record_path(*record.key)

        fd, tmp_name = tempfile.mkstemp(dir=task_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(record.model_dump_json(indent=2))
            try:
                os.link(tmp_name, path)
            except FileExistsError:
                existing = self._load_existing(path, record)
                if existing is not None:
                    return existing
                # Unusable record on disk; the fresh one takes its place
                os.replace(tmp_name, path)
                tmp_name = None
        finally:
            if tmp_name is not None:
                os.unlink(tmp_name)

        self._update_latest(record)
        self.logger.debug("record_saved", task=record.task, fingerprint=record.fingerprint[:16])
        return record

    def _load_existing(self, path: Path, record: CachedResult) -> CachedResult | None:
        """Record already stored under record's key, or None if it is unusable."""
        try:
            existing = self._read(path)
        except StorageError as e:
            self.logger.warning("record_replaced", task=record.task, path=str(path), error=str(e))
            return None
        if existing.key != record.key:
            self.logger.warning("record_replaced", task=record.task, path=str(path), error="key mismatch")
            return None
        self.logger.debug("record_exists", task=record.task, fingerprint=record.fingerprint[:16])
        return existing

    def _update_latest(self, record: CachedResult) -> None:
        """Point latest.json at record unless a newer record already holds it."""
        latest_path = self._task_dir(record.user_id, record.task) / self.LATEST_FILENAME
        with self._latest_lock:
            current = self._read_pointer(latest_path)
            if current is not None and current["generated_at"] > record.generated_at.isoformat():
                return

            pointer = {"fingerprint": record.fingerprint, "generated_at": record.generated_at.isoformat()}
            fd, tmp_name = tempfile.mkstemp(dir=latest_path.parent, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(pointer, f)
            os.replace(tmp_name, latest_path)

    def _read_pointer(self, latest_path: Path) -> dict | None:
        if not latest_path.exists():
            return None
        try:
            with open(latest_path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.warning("latest_pointer_unreadable", path=str(latest_path), error=str(e))
            return None

    def latest(self, user_id: str, task: str) -> CachedResult | None:
        pointer = self._read_pointer(self._task_dir(user_id, task) / self.LATEST_FILENAME)
        if pointer is None:
            return None
        return self.get(user_id, task, pointer["fingerprint"])


# ============================================================================
# Redis Store
# ============================================================================

class RedisResultStore(ResultStore):
    """
    Redis-based store for multi-process deployments.

    Records use ``SET NX`` for uniqueness; a per-(user, task) sorted set
    scored by generation time serves the latest lookup.

    Note: Requires 'redis' package (install the ``redis`` extra).
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: str | None = None,
        key_prefix: str = DEFAULT_REDIS_PREFIX,
        client=None,
    ):
        """
        Initialize Redis store.

        Args:
            host: Redis host
            port: Redis port
            db: Redis database number
            password: Optional Redis password
            key_prefix: Prefix for all keys
            client: Pre-built client (skips connection setup)
        """
        self.key_prefix = key_prefix
        self.logger = logger.bind(backend="RedisStore")

        if client is not None:
            self.client = client
            return

        try:
            import redis
        except ImportError:
            raise ImportError(
                "Redis backend requires 'redis' package. "
                "Install with: pip install 'careerforge[redis]'"
            )

        self.client = redis.Redis(host=host, port=port, db=db, password=password)

        try:
            self.client.ping()
            self.logger.info("redis_connected", host=host, port=port)
        except Exception as e:
            raise StorageError(f"Failed to connect to Redis: {e}") from e

    def _record_key(self, user_id: str, task: str, fingerprint: str) -> str:
        return f"{self.key_prefix}{hash_text(user_id)[:16]}:{task}:{fingerprint}"

    def _history_key(self, user_id: str, task: str) -> str:
        return f"{self.key_prefix}{hash_text(user_id)[:16]}:{task}:history"

    def _load(self, raw) -> CachedResult:
        try:
            return CachedResult.model_validate_json(raw)
        except PydanticValidationError as e:
            raise StorageError(f"Corrupt result record in Redis: {e}") from e

    def get(self, user_id: str, task: str, fingerprint: str) -> CachedResult | None:
        raw = self.client.get(self._record_key(user_id, task, fingerprint))
        if raw is None:
            return None
        return self._load(raw)

    def put_if_absent(self, record: CachedResult) -> CachedResult:
        key = self._record_key(*record.key)
        created = self.client.set(key, record.model_dump_json(), nx=True)
        if not created:
            self.logger.debug("record_exists", task=record.task, fingerprint=record.fingerprint[:16])
            return self._load(self.client.get(key))

        self.client.zadd(
            self._history_key(record.user_id, record.task),
            {record.fingerprint: record.generated_at.timestamp()},
        )
        return record

    def latest(self, user_id: str, task: str) -> CachedResult | None:
        newest = self.client.zrevrange(self._history_key(user_id, task), 0, 0)
        if not newest:
            return None
        fingerprint = newest[0].decode() if isinstance(newest[0], bytes) else newest[0]
        return self.get(user_id, task, fingerprint)


# ============================================================================
# Per-Key Locks
# ============================================================================

class KeyedLocks:
    """One lock per key, dropped when nobody holds or waits on it."""

    def __init__(self):
        self._guard = threading.Lock()
        self._entries: dict[tuple, list] = {}

    @contextmanager
    def hold(self, key: tuple) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]


# ============================================================================
# Factory Function
# ============================================================================

def create_result_store(cache_config: dict | None = None, disable_cache: bool = False) -> ResultStore:
    """
    Build the result store described by configuration.

    - disable_cache: NoOpResultStore
    - cache.backend = "memory": MemoryResultStore
    - cache.backend = "redis": RedisResultStore (cache.redis.*)
    - otherwise: FileResultStore (cache.file_dir)
    """
    if disable_cache:
        return NoOpResultStore()

    cache_config = cache_config or {}
    backend_type = cache_config.get("backend", "file")

    if backend_type == "memory":
        return MemoryResultStore()
    if backend_type == "redis":
        redis_config = cache_config.get("redis", {})
        return RedisResultStore(
            host=redis_config.get("host", "localhost"),
            port=redis_config.get("port", 6379),
            db=redis_config.get("db", 0),
            password=redis_config.get("password"),
            key_prefix=redis_config.get("key_prefix", DEFAULT_REDIS_PREFIX),
        )
    return FileResultStore(cache_config.get("file_dir", DEFAULT_CACHE_DIR))
