from dataclasses import dataclass, field
from typing import List, Optional
import time

# 'setup' only exists client side before a room is created
ROOM_STATUSES = ('setup', 'lobby', 'playing', 'ended')
DIFFICULTIES = ('relax', 'medium', 'hard')
DEFAULT_DIFFICULTY = 'medium'

INITIAL_LIVES = {'relax': 20, 'medium': 10, 'hard': 5}
STARTING_PRIMES = (2, 3, 5, 7)
MOVE_REWARD = 100
MAX_EXCEPTIONS = 5


def initial_lives_for(difficulty: str) -> int:
    return INITIAL_LIVES.get(difficulty, INITIAL_LIVES[DEFAULT_DIFFICULTY])


def max_attempts_for(difficulty: str) -> int:
    return 1 if difficulty == 'hard' else 3


@dataclass
class Player:
    id: str
    name: str
    lives: int
    score: int = 0
    is_dead: bool = False
    attempts_on_current_number: int = 0

    def lose_life(self) -> None:
        """Take one life, clamped at zero. Reaching zero kills the player."""
        self.lives = max(0, self.lives - 1)
        if self.lives == 0:
            self.is_dead = True

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
            'lives': self.lives,
            'isDead': self.is_dead,
            'attemptsOnCurrentNumber': self.attempts_on_current_number,
        }


@dataclass
class Room:
    code: str
    host_id: str
    difficulty: str = DEFAULT_DIFFICULTY
    status: str = 'lobby'
    current_number: int = 0
    allow_exception: bool = False
    exception_count: int = 0
    players: List[Player] = field(default_factory=list)
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)

    @property
    def max_attempts(self) -> int:
        return max_attempts_for(self.difficulty)

    @property
    def initial_lives(self) -> int:
        return initial_lives_for(self.difficulty)

    @property
    def channel(self) -> str:
        return room_channel(self.code)

    def is_host(self, sid: str) -> bool:
        return sid == self.host_id

    def find_player(self, sid: str) -> Optional[Player]:
        for p in self.players:
            if p.id == sid:
                return p
        return None

    def reset_attempts(self) -> None:
        for p in self.players:
            p.attempts_on_current_number = 0

    def leaderboard(self) -> List[Player]:
        # Stable: equal scores keep join order
        return sorted(self.players, key=lambda p: p.score, reverse=True)

    def touch(self, now: Optional[float] = None) -> None:
        self.last_activity = time.time() if now is None else now

    def to_dict(self):
        return {
            'roomId': self.code,
            'status': self.status,
            'difficulty': self.difficulty,
            'currentNumber': self.current_number,
            'allowException': self.allow_exception,
            'exceptionCount': self.exception_count,
            'maxAttempts': self.max_attempts,
            'initialLives': self.initial_lives,
            'players': [p.to_dict() for p in self.players],
            'lastActivity': self.last_activity,
        }

    def summary(self):
        return {
            'roomId': self.code,
            'status': self.status,
            'difficulty': self.difficulty,
            'playerCount': len(self.players),
        }


def room_channel(code: str) -> str:
    """Socket.IO room that scopes broadcasts for a room code."""
    return f"room:{code}"
