from dataclasses import dataclass, field
from typing import Any, List, Optional

ROOM = 'room'
SENDER = 'sender'

APPLIED = 'applied'
REJECTED = 'rejected'
IGNORED = 'ignored'

_NO_PAYLOAD = object()


@dataclass(frozen=True)
class Emit:
    event: str
    payload: Any = _NO_PAYLOAD
    scope: str = SENDER

    @property
    def has_payload(self) -> bool:
        return self.payload is not _NO_PAYLOAD

    @classmethod
    def broadcast(cls, event: str, payload: Any = _NO_PAYLOAD) -> 'Emit':
        return cls(event, payload, ROOM)

    @classmethod
    def unicast(cls, event: str, payload: Any = _NO_PAYLOAD) -> 'Emit':
        return cls(event, payload, SENDER)


@dataclass
class Outcome:
    """Result of one inbound action.

    - applied: state changed; ``emits`` are sent in order
    - rejected: user-facing failure, reported to the caller as ``error``
    - ignored: authorization or state mismatch, nothing observable happens
    """
    status: str
    room_code: Optional[str] = None
    emits: List[Emit] = field(default_factory=list)
    reason: Optional[str] = None
    # True when the acting connection should enter the room's broadcast scope
    subscribe: bool = False

    @property
    def applied(self) -> bool:
        return self.status == APPLIED

    @property
    def rejected(self) -> bool:
        return self.status == REJECTED

    @property
    def ignored(self) -> bool:
        return self.status == IGNORED

    def events(self, scope: Optional[str] = None) -> List[str]:
        return [e.event for e in self.emits if scope is None or e.scope == scope]


def applied(room_code: str, *emits: Emit, subscribe: bool = False) -> Outcome:
    return Outcome(APPLIED, room_code=room_code, emits=list(emits), subscribe=subscribe)


def rejected(reason: str, room_code: Optional[str] = None) -> Outcome:
    return Outcome(REJECTED, room_code=room_code, reason=reason)


def ignored(room_code: Optional[str] = None, reason: Optional[str] = None) -> Outcome:
    # reason is for logs only, never sent to the client
    return Outcome(IGNORED, room_code=room_code, reason=reason)
