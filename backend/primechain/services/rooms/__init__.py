"""Room domain services: registry, move validation and the room state machine.

Socket handlers and HTTP routes import from here. Only the idle-room reaper
talks to Socket.IO; the engine and validator stay transport-free, keeping
transport concerns separated from the game rules.
"""

from .engine import RoomEngine
from .outcomes import Emit, Outcome
from .registry import RoomRegistry
from .validator import extend_chain, is_prime, parse_digit, validate_move

__all__ = [
    'Emit',
    'Outcome',
    'RoomEngine',
    'RoomRegistry',
    'extend_chain',
    'is_prime',
    'parse_digit',
    'validate_move',
]
