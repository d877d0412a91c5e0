"""In-memory cache coordinator shared across generate calls."""

import json
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional

from .image_utils import describe_transform
from .models import GenerateOptions, OutputRecord, SkipAction


@dataclass(frozen=True)
class CacheKey:
    """Identifies one materialized output."""

    identity: str
    width: int
    format: str
    action: SkipAction
    options: str


def options_fingerprint(options: GenerateOptions, format_id: str) -> str:
    """Serialize the options that change a record for ``format_id``."""
    return json.dumps(
        {
            "encoding": options.encoding_options.get(format_id, {}),
            "transform": describe_transform(options.transform),
            "filename_format": describe_transform(options.filename_format),
            "hash_length": options.hash_length,
            "output_dir": options.output_dir,
            "url_path": options.url_path,
            "dry_run": options.dry_run,
            "stats_only": options.stats_only,
        },
        sort_keys=True,
        default=str,
    )


class CacheCoordinator:
    """
    Thread-safe record cache with at most one in-flight materialization per key.

    Callers hold ``key_lock(key)`` around lookup, work and store so concurrent
    identical requests converge on a single result.
    """

    def __init__(self) -> None:
        self._records: Dict[CacheKey, OutputRecord] = {}
        self._locks: Dict[CacheKey, threading.Lock] = {}
        self._guard = threading.Lock()
        self.hits = 0
        self.misses = 0

    def lookup(self, key: CacheKey) -> Optional[OutputRecord]:
        with self._guard:
            record = self._records.get(key)
            if record is None:
                self.misses += 1
            else:
                self.hits += 1
            return record

    def store(self, key: CacheKey, record: OutputRecord) -> None:
        with self._guard:
            self._records[key] = record

    @contextmanager
    def key_lock(self, key: CacheKey) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def clear(self) -> None:
        with self._guard:
            self._records.clear()
            self._locks.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._guard:
            return len(self._records)


_default_cache = CacheCoordinator()


def get_default_cache() -> CacheCoordinator:
    """Process-wide cache used when callers do not supply their own."""
    return _default_cache
