import random
import string
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from primechain.models import Room, Player, DEFAULT_DIFFICULTY

CODE_ALPHABET = string.ascii_uppercase + string.digits


class RoomRegistry:
    """Process-local map of room code -> Room.

    Owned by the Flask app (``app.extensions['primechain']``) rather than a
    module global. Each room gets its own lock; ``locked()`` is the only way
    handlers should mutate a room so that actions on the same room never
    interleave, whatever async mode Socket.IO runs in.
    """

    def __init__(self, code_length: int = 6, rng: Optional[random.Random] = None):
        self.code_length = code_length
        self.rng = rng or random.Random()
        self._rooms: Dict[str, Room] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._members: Dict[str, str] = {}  # player sid -> room code
        self._guard = threading.Lock()

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: str) -> bool:
        return code in self._rooms

    def generate_code(self) -> str:
        """Generate a short room code not currently in use."""
        while True:
            code = ''.join(self.rng.choices(CODE_ALPHABET, k=self.code_length))
            if code not in self._rooms:
                return code

    def create(self, host_id: str, difficulty: str = DEFAULT_DIFFICULTY) -> Room:
        with self._guard:
            code = self.generate_code()
            room = Room(code=code, host_id=host_id, difficulty=difficulty)
            self._rooms[code] = room
            self._locks[code] = threading.Lock()
        return room

    def get(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self._rooms.get(code)

    def rooms(self) -> List[Room]:
        with self._guard:
            return list(self._rooms.values())

    @contextmanager
    def locked(self, code: Optional[str]) -> Iterator[Optional[Room]]:
        """Yield the room under its lock, or None if the code is unknown."""
        with self._guard:
            room = self._rooms.get(code) if code else None
            lock = self._locks.get(code) if code else None
        if room is None or lock is None:
            yield None
            return
        with lock:
            yield room

    def claim_member(self, sid: str, code: str) -> Optional[str]:
        """Record ``sid`` as a member of ``code`` unless it already belongs to a room.

        Returns the room code the connection already belonged to, or None when
        the claim was recorded. Check and write happen under one lock.
        """
        with self._guard:
            existing = self._members.get(sid)
            if existing is None:
                self._members[sid] = code
            return existing

    def release_members(self, room: Room) -> None:
        with self._guard:
            self._release_members(room)

    def _release_members(self, room: Room) -> None:
        for p in room.players:
            if self._members.get(p.id) == room.code:
                del self._members[p.id]

    def add_player(self, room: Room, player: Player) -> None:
        room.players.append(player)
        with self._guard:
            self._members.setdefault(player.id, room.code)

    def room_code_for(self, sid: str) -> Optional[str]:
        return self._members.get(sid)

    def remove(self, code: str) -> Optional[Room]:
        with self._guard:
            room = self._rooms.pop(code, None)
            self._locks.pop(code, None)
            if room:
                self._release_members(room)
        return room

    def idle_codes(self, ttl_sec: float, now: Optional[float] = None) -> List[str]:
        if ttl_sec <= 0:
            return []
        now = time.time() if now is None else now
        with self._guard:
            return [code for code, room in self._rooms.items() if now - room.last_activity > ttl_sec]

    def purge_idle(self, ttl_sec: float, now: Optional[float] = None) -> List[Room]:
        """Remove and return every room idle for longer than ``ttl_sec``."""
        now = time.time() if now is None else now
        removed = []
        for code in self.idle_codes(ttl_sec, now):
            with self.locked(code) as room:
                # Activity may have landed between the scan and taking the lock
                if room is None or now - room.last_activity <= ttl_sec:
                    continue
                self.remove(code)
                removed.append(room)
        return removed
