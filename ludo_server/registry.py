import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Set

from ludo_server.errors import RoomNotFound
from ludo_server.models import Room, generate_room_code


class _Entry:
    __slots__ = ('room', 'lock', 'live')

    def __init__(self, room: Room):
        self.room = room
        self.lock = threading.RLock()
        self.live = True


PARTICIPANT_LOCK_STRIPES = 64


class RoomRegistry:
    """All live rooms keyed by code, each guarded by its own lock.

    The registry lock only protects the dictionaries below and is never held
    while waiting on a room lock. Work on a room happens inside
    ``locked(code)``; a room destroyed while a caller waited for its lock is
    reported as not found.

    Membership changes for one participant (leave the old room, take a seat
    in the new one, bind) run under ``participant_lock``. It is always taken
    before any room lock, and a thread holds at most one.
    """

    def __init__(self, code_length: int = 6):
        self.code_length = code_length
        self._lock = threading.Lock()
        self._entries: Dict[str, _Entry] = {}
        self._issued: Set[str] = set()
        self._memberships: Dict[str, str] = {}
        self._participant_locks = [threading.RLock() for _ in range(PARTICIPANT_LOCK_STRIPES)]

    def create(self) -> Room:
        with self._lock:
            code = generate_room_code(self._issued.__contains__, self.code_length)
            self._issued.add(code)
            room = Room(code=code)
            self._entries[code] = _Entry(room)
            return room

    @contextmanager
    def locked(self, code) -> Iterator[Room]:
        code = normalize_code(code)
        with self._lock:
            entry = self._entries.get(code)
        if entry is None:
            raise RoomNotFound(code)
        with entry.lock:
            if not entry.live:
                raise RoomNotFound(code)
            yield entry.room

    def remove(self, code: str) -> None:
        """Drop a room. Call while holding its lock."""
        with self._lock:
            entry = self._entries.pop(code, None)
            if entry is not None:
                entry.live = False
            for participant_id in [p for p, c in self._memberships.items() if c == code]:
                del self._memberships[participant_id]

    def participant_lock(self, participant_id: str):
        return self._participant_locks[hash(participant_id) % len(self._participant_locks)]

    def bind(self, participant_id: str, code: str) -> None:
        with self._lock:
            self._memberships[participant_id] = code

    def unbind(self, participant_id: str) -> None:
        with self._lock:
            self._memberships.pop(participant_id, None)

    def room_of(self, participant_id: str) -> Optional[str]:
        with self._lock:
            return self._memberships.get(participant_id)

    def __contains__(self, code) -> bool:
        with self._lock:
            return normalize_code(code) in self._entries


def normalize_code(code) -> str:
    if not isinstance(code, str):
        return ''
    return code.strip().upper()
