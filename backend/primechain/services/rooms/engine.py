"""Room state machine.

Each public method handles one inbound action for one connection and returns
an :class:`Outcome` describing what to send. Host-only actions and moves that
are not allowed in the room's current state are ignored, not reported.
"""

from typing import Callable, Optional

from primechain.models import (
    DIFFICULTIES,
    DEFAULT_DIFFICULTY,
    MAX_EXCEPTIONS,
    MOVE_REWARD,
    STARTING_PRIMES,
    Player,
    Room,
)
from .outcomes import Emit, Outcome, applied, ignored, rejected
from .registry import RoomRegistry
from .validator import is_prime, parse_digit, validate_move

ROOM_NOT_FOUND = 'Room not found'
GAME_ALREADY_STARTED = 'Game already started'
ALREADY_IN_ANOTHER_ROOM = 'Already joined another room'


def normalize_code(code) -> Optional[str]:
    if not isinstance(code, str):
        return None
    return code.strip().upper() or None


def _players(players):
    return [p.to_dict() for p in players]


class RoomEngine:
    def __init__(self, registry: RoomRegistry, primality: Callable[[int], bool] = is_prime):
        self.registry = registry
        self.primality = primality

    def _seed_number(self, room: Room) -> None:
        room.current_number = self.registry.rng.choice(STARTING_PRIMES)

    # ---- lobby ----

    def create_room(self, sid: str, difficulty=None) -> Outcome:
        if difficulty not in DIFFICULTIES:
            difficulty = DEFAULT_DIFFICULTY
        room = self.registry.create(host_id=sid, difficulty=difficulty)
        return applied(room.code, Emit.unicast('room_created', room.code), subscribe=True)

    def join_room(self, sid: str, code, name) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if room is None:
                return rejected(ROOM_NOT_FOUND, code)
            if room.status != 'lobby':
                return rejected(GAME_ALREADY_STARTED, code)
            member_of = self.registry.claim_member(sid, code)
            if member_of == code:
                return ignored(code, 'already joined')
            if member_of is not None:
                return rejected(ALREADY_IN_ANOTHER_ROOM, code)

            player = Player(id=sid, name='' if name is None else str(name), lives=room.initial_lives)
            self.registry.add_player(room, player)
            room.touch()
            return applied(
                code,
                Emit.broadcast('player_joined', _players(room.players)),
                Emit.unicast('joined_success', {
                    'roomId': code,
                    'difficulty': room.difficulty,
                    'initialLives': room.initial_lives,
                }),
                subscribe=True,
            )

    def start_game(self, sid: str, code) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if room is None or not room.is_host(sid) or room.status != 'lobby':
                return ignored(code, 'start_game not allowed')
            room.status = 'playing'
            self._seed_number(room)
            room.reset_attempts()
            room.touch()
            return applied(code, Emit.broadcast('game_started', {'currentNumber': room.current_number}))

    # ---- host controls while playing ----

    def _host_playing(self, sid: str, room: Optional[Room]) -> bool:
        return room is not None and room.is_host(sid) and room.status == 'playing'

    def _number_updated(self, room: Room, **extra) -> Emit:
        payload = {'currentNumber': room.current_number, 'lastWinner': None, 'skipped': True}
        payload.update(extra)
        return Emit.broadcast('number_updated', payload)

    def force_new_number(self, sid: str, code) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if not self._host_playing(sid, room):
                return ignored(code, 'force_new_number not allowed')
            self._seed_number(room)
            room.reset_attempts()
            room.allow_exception = False
            room.touch()
            return applied(code, self._number_updated(room))

    def enable_exception(self, sid: str, code) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if not self._host_playing(sid, room):
                return ignored(code, 'enable_exception not allowed')
            if room.exception_count >= MAX_EXCEPTIONS:
                return ignored(code, 'exception limit reached')
            room.allow_exception = True
            room.exception_count += 1
            room.reset_attempts()
            room.touch()
            return applied(code, self._number_updated(room, exceptionActive=True))

    def skip_number(self, sid: str, code) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if not self._host_playing(sid, room):
                return ignored(code, 'skip_number not allowed')
            room.reset_attempts()
            room.touch()
            return applied(code, self._number_updated(room))

    def end_game(self, sid: str, code) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if room is None or not room.is_host(sid) or room.status == 'ended':
                return ignored(code, 'end_game not allowed')
            room.status = 'ended'
            # Players of a finished room may join another one
            self.registry.release_members(room)
            room.touch()
            return applied(code, Emit.broadcast('game_ended', {'leaderboard': _players(room.leaderboard())}))

    # ---- players ----

    def submit_move(self, sid: str, code, digit) -> Outcome:
        code = normalize_code(code)
        with self.registry.locked(code) as room:
            if room is None or room.status != 'playing':
                return ignored(code, 'room not playing')
            player = room.find_player(sid)
            if player is None or player.is_dead:
                return ignored(code, 'not a live player')
            max_attempts = room.max_attempts
            if player.attempts_on_current_number >= max_attempts:
                return ignored(code, 'player locked')
            digit = parse_digit(digit)
            if digit is None:
                return ignored(code, 'malformed digit')

            verdict = validate_move(room.current_number, digit, room.allow_exception, self.primality)
            room.touch()

            if verdict.accepted:
                player.score += MOVE_REWARD
                room.current_number = verdict.candidate
                room.allow_exception = False
                room.reset_attempts()
                return applied(
                    code,
                    Emit.broadcast('number_updated', {
                        'currentNumber': room.current_number,
                        'lastWinner': player.to_dict(),
                    }),
                    Emit.broadcast('leaderboard_update', _players(room.leaderboard())),
                    Emit.unicast('move_feedback', {'correct': True, 'score': MOVE_REWARD}),
                )

            player.lose_life()
            player.attempts_on_current_number += 1
            emits = []
            if player.is_dead:
                emits.append(Emit.unicast('game_over_personal'))
            emits.append(Emit.unicast('move_feedback', {
                'correct': False,
                'lives': player.lives,
                'attempts': player.attempts_on_current_number,
                'locked': player.attempts_on_current_number >= max_attempts,
                'maxAttempts': max_attempts,
            }))
            emits.append(Emit.broadcast('leaderboard_update', _players(room.players)))
            return applied(code, *emits)
