"""
engine/registry.py — Handle-based session manager
==================================================
The four operations callers use:

    handle = registry.start_session(SessionOptions(modality="optical"))
    result = registry.ingest(handle, sample)      # per sample
    status = registry.poll(handle)
    registry.cancel(handle)

Thread safety
-------------
A `ScanSession` itself is single-threaded.  The registry guards its
handle table with `_lock` and gives every session its own lock, so a
web server's worker threads can serve different scans concurrently while
calls against the same scan are serialised.  Nothing is shared between
sessions.

Unknown (or cancelled) handles raise `KeyError`.
"""

import threading
import time
import uuid
from typing import Callable

from acquisition.samples import Sample
from engine.results import IngestResult, SessionStatus
from engine.session import ScanSession, SessionOptions
from utils.logger import get_logger

logger = get_logger("engine.registry")


class SessionRegistry:
    """
    Parameters
    ----------
    clock : callable   Passed to every `ScanSession`; injectable for tests.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: dict[str, tuple[threading.Lock, ScanSession]] = {}

    def start_session(self, options: SessionOptions | None = None) -> str:
        session = ScanSession(options, clock=self._clock)
        handle = uuid.uuid4().hex
        with self._lock:
            self._sessions[handle] = (threading.Lock(), session)
        logger.info("Registered session %s (%d active).", handle, len(self))
        return handle

    def ingest(self, handle: str, sample: Sample) -> IngestResult:
        lock, session = self._get(handle)
        with lock:
            return session.ingest(sample)

    def ingest_many(self, handle: str, samples: list[Sample]) -> list[IngestResult]:
        """Feed a batch under one lock acquisition, in order."""
        lock, session = self._get(handle)
        with lock:
            return [session.ingest(s) for s in samples]

    def poll(self, handle: str) -> SessionStatus:
        lock, session = self._get(handle)
        with lock:
            return session.poll()

    def cancel(self, handle: str) -> None:
        """Tear the session down and forget the handle."""
        with self._lock:
            lock, session = self._sessions.pop(handle)
        with lock:
            session.cancel()
        logger.info("Unregistered session %s.", handle)

    def __contains__(self, handle: str) -> bool:
        with self._lock:
            return handle in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _get(self, handle: str) -> tuple[threading.Lock, ScanSession]:
        with self._lock:
            return self._sessions[handle]
