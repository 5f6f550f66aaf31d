from __future__ import annotations

import datetime as dt
import random
from threading import RLock
from typing import Callable, Dict, Generic, List, Optional, Protocol, TypeVar

from .config import Settings, settings as default_settings
from .directory import DirectoryClient
from .models import EmployeePresence, MeetingHistoryEntry, MeetingLog, TrackingSession
from .utils import utcnow

T = TypeVar("T")


class IdGenerator(Protocol):
    def next(self) -> str:
        ...


class SequentialIdGenerator:
    """Hands out ``prefix_001``, ``prefix_002``, ... and never reuses a value."""

    def __init__(self, prefix: str, width: int = 3, start: int = 1) -> None:
        self._lock = RLock()
        self.prefix = prefix
        self.width = width
        self._counter = start

    def next(self) -> str:
        with self._lock:
            value = self._counter
            self._counter += 1
        return f"{self.prefix}_{value:0{self.width}d}"


class RecordStore(Generic[T]):
    """Insertion-ordered records keyed by id."""

    def __init__(self, ids: IdGenerator) -> None:
        self.lock = RLock()
        self.ids = ids
        self._records: Dict[str, T] = {}

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def all(self) -> List[T]:
        with self.lock:
            return list(self._records.values())

    def get(self, record_id: str) -> Optional[T]:
        with self.lock:
            return self._records.get(record_id)

    def put(self, record_id: str, record: T) -> None:
        with self.lock:
            self._records[record_id] = record

    def remove(self, record_id: str) -> bool:
        with self.lock:
            return self._records.pop(record_id, None) is not None


class TrackingStore(RecordStore[TrackingSession]):
    pass


class MeetingStore(RecordStore[MeetingLog]):
    pass


class HistoryStore:
    """Append-only log of finished customer interactions."""

    def __init__(self, ids: IdGenerator) -> None:
        self.lock = RLock()
        self.ids = ids
        self._entries: List[MeetingHistoryEntry] = []

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)

    def append(self, entry: MeetingHistoryEntry) -> None:
        with self.lock:
            self._entries.append(entry)

    def all(self) -> List[MeetingHistoryEntry]:
        with self.lock:
            return list(self._entries)


class PresenceStore:
    """Locally tracked status and location overlaid on directory records."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.lock = RLock()
        self.rng = rng or random.Random()
        self._presence: Dict[str, EmployeePresence] = {}

    def get(self, employee_id: str) -> Optional[EmployeePresence]:
        with self.lock:
            return self._presence.get(employee_id)

    def put(self, employee_id: str, presence: EmployeePresence) -> None:
        with self.lock:
            self._presence[employee_id] = presence

    def clear(self) -> None:
        with self.lock:
            self._presence.clear()


class AppState:
    """Everything a request handler may touch, built once per application."""

    def __init__(
        self,
        base_settings: Optional[Settings] = None,
        *,
        directory: Optional[DirectoryClient] = None,
        clock: Optional[Callable[[], dt.datetime]] = None,
        id_factory: Optional[Callable[[str], IdGenerator]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.settings = base_settings or default_settings
        width = self.settings.id_padding
        make_ids = id_factory or (lambda prefix: SequentialIdGenerator(prefix, width=width))
        self.tracking = TrackingStore(make_ids("session"))
        self.meetings = MeetingStore(make_ids("meeting"))
        self.history = HistoryStore(make_ids("history"))
        self.presence = PresenceStore(rng)
        self.directory = directory or DirectoryClient(self.settings.directory_url, self.settings.directory_timeout)
        self._clock = clock or utcnow

    def now(self) -> dt.datetime:
        return self._clock()
