from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field

from projectproof.errors import Cancelled


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise Cancelled(f"run cancelled before {stage}")


@dataclass(slots=True)
class RunEntry:
    owner_id: str
    token: CancelToken = field(default_factory=CancelToken)
    started: bool = False
    created_at: float = field(default_factory=time.monotonic)


class RunRegistry:
    """Tracks reserved and in-flight runs by run id, each owned by one user.

    A run id is either reserved ahead of the upload (so the owner can open the
    thought stream first) or registered directly when the run starts. Only
    the owner may start, cancel or watch it.
    """

    def __init__(self, reservation_ttl_sec: float = 900.0) -> None:
        self.reservation_ttl_sec = reservation_ttl_sec
        self._entries: dict[str, RunEntry] = {}
        self._lock = threading.Lock()

    def reserve(self, user_id: str) -> str:
        run_id = str(uuid.uuid4())
        with self._lock:
            self._purge_stale_reservations()
            self._entries[run_id] = RunEntry(owner_id=user_id)
        return run_id

    def register(self, run_id: str, user_id: str) -> CancelToken:
        with self._lock:
            entry = self._entries.get(run_id)
            if entry is None:
                entry = RunEntry(owner_id=user_id)
                self._entries[run_id] = entry
            elif entry.owner_id != user_id or entry.started:
                raise ValueError(f"run {run_id} is already in use")
            entry.started = True
            return entry.token

    def owner(self, run_id: str) -> str | None:
        with self._lock:
            entry = self._entries.get(run_id)
        return entry.owner_id if entry else None

    def cancel(self, run_id: str, user_id: str) -> bool:
        with self._lock:
            entry = self._entries.get(run_id)
        if entry is None or entry.owner_id != user_id:
            return False
        entry.token.cancel()
        return True

    def release(self, run_id: str) -> None:
        with self._lock:
            self._entries.pop(run_id, None)

    def active(self) -> list[str]:
        with self._lock:
            return sorted(run_id for run_id, entry in self._entries.items() if entry.started)

    def _purge_stale_reservations(self) -> None:
        cutoff = time.monotonic() - self.reservation_ttl_sec
        stale = [
            run_id
            for run_id, entry in self._entries.items()
            if not entry.started and entry.created_at < cutoff
        ]
        for run_id in stale:
            del self._entries[run_id]
