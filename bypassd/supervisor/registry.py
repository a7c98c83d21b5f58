"""
Concurrency-safe keyed stores owned by the bypass driver.
"""

# bypassd - bypass4netns helper supervisor
# Copyright (C) 2026 bypassd Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Generic, TypeVar

from pydantic import BaseModel

V = TypeVar("V", bound=BaseModel)


# ── Reader-Writer Lock ─────────────────────────────────────────────

class ReadWriteLock:
    """Multiple readers OR one exclusive writer.

    Writer-preference: when a writer is waiting, new readers queue
    behind it rather than jumping ahead.  Not re-entrant.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writing = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writing or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writing or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writing = True

    def release_write(self) -> None:
        with self._cond:
            self._writing = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


# ── Registry ───────────────────────────────────────────────────────

class LockedView(Generic[V]):
    """Access to a registry's entries while its write lock is held.

    Only valid inside :meth:`Registry.exclusive`.
    """

    def __init__(self, entries: dict[str, V]):
        self._entries = entries

    def get(self, key: str) -> V | None:
        value = self._entries.get(key)
        return value.model_copy(deep=True) if value is not None else None

    def insert(self, key: str, value: V) -> V | None:
        previous = self._entries.get(key)
        self._entries[key] = value.model_copy(deep=True)
        return previous

    def remove(self, key: str) -> V | None:
        return self._entries.pop(key, None)


class Registry(Generic[V]):
    """
    Mapping from container ID to a pydantic model, safe for any number of
    concurrent callers.

    Values are deep-copied on the way in and on the way out, so callers
    never share state with the store.  Every instance has its own lock.
    """

    def __init__(self) -> None:
        self._entries: dict[str, V] = {}
        self._lock = ReadWriteLock()

    def list(self) -> list[V]:
        """Snapshot of all values, order unspecified."""
        with self._lock.read_locked():
            return [v.model_copy(deep=True) for v in self._entries.values()]

    def snapshot(self) -> dict[str, V]:
        """Snapshot of the whole mapping."""
        with self._lock.read_locked():
            return {k: v.model_copy(deep=True) for k, v in self._entries.items()}

    def get(self, key: str) -> V | None:
        with self._lock.read_locked():
            value = self._entries.get(key)
            return value.model_copy(deep=True) if value is not None else None

    def insert(self, key: str, value: V) -> V | None:
        """Add or silently replace the entry for *key*.

        Returns:
            The displaced value, or None if there was none.
        """
        with self._lock.write_locked():
            return LockedView(self._entries).insert(key, value)

    def remove(self, key: str) -> V | None:
        """Delete the entry for *key*; absent keys are a no-op."""
        with self._lock.write_locked():
            return self._entries.pop(key, None)

    @contextmanager
    def exclusive(self) -> Iterator[LockedView[V]]:
        """Hold the write lock across a multi-step operation."""
        with self._lock.write_locked():
            yield LockedView(self._entries)
