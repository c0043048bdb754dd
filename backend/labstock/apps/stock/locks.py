from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class ComponentLockRegistry:
    """
    One mutex per component id.

    Movements against the same component queue behind each other inside a
    worker process; different components never share a lock. Cross-process
    safety comes from the row lock and guarded UPDATE in the stock services.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, component_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(component_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[component_id] = lock
            return lock

    @contextmanager
    def hold(self, component_id: str) -> Iterator[None]:
        lock = self.lock_for(component_id)
        with lock:
            yield


component_locks = ComponentLockRegistry()
