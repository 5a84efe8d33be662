from flask import current_app, request
from flask_socketio import emit, join_room

from primechain import get_engine, socketio
from primechain.models import room_channel
from primechain.services.rooms.outcomes import ROOM, Outcome
from primechain.services.rooms.reaper import start_room_reaper


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _dispatch(action: str, outcome: Outcome) -> None:
    """Send what the engine decided, in order, and log it."""
    sid = _get_sid()
    log = current_app.logger
    if outcome.ignored:
        log.debug(f"[ignored] action={action} room={outcome.room_code} sid={sid} reason={outcome.reason}")
        return
    if outcome.rejected:
        log.info(f"[rejected] action={action} room={outcome.room_code} sid={sid} reason={outcome.reason}")
        emit('error', outcome.reason)
        return

    channel = room_channel(outcome.room_code)
    # Join first so the actor also receives the room broadcast that follows
    if outcome.subscribe:
        join_room(channel)
    for e in outcome.emits:
        args = (e.payload,) if e.has_payload else ()
        if e.scope == ROOM:
            emit(e.event, *args, to=channel)
        else:
            emit(e.event, *args)
    log.info(f"[{action}] room={outcome.room_code} sid={sid} events={outcome.events()}")


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def handle_connect(auth=None):
    start_room_reaper(current_app._get_current_object())
    emit('connected', {'sid': _get_sid()})


def handle_disconnect(reason=None):
    # Players stay in their room as-is; the room reaper eventually drops it
    current_app.logger.info(f"[disconnect] sid={_get_sid()} reason={reason}")


def handle_ping(data=None):
    emit('pong', data or {})


def handle_create_room(data=None):
    outcome = get_engine().create_room(_get_sid(), _payload(data).get('difficulty'))
    _dispatch('create_room', outcome)


def handle_join_room(data=None):
    data = _payload(data)
    outcome = get_engine().join_room(_get_sid(), data.get('roomId'), data.get('name'))
    _dispatch('join_room', outcome)


def handle_start_game(data=None):
    _dispatch('start_game', get_engine().start_game(_get_sid(), _payload(data).get('roomId')))


def handle_force_new_number(data=None):
    _dispatch('force_new_number', get_engine().force_new_number(_get_sid(), _payload(data).get('roomId')))


def handle_enable_exception(data=None):
    _dispatch('enable_exception', get_engine().enable_exception(_get_sid(), _payload(data).get('roomId')))


def handle_skip_number(data=None):
    _dispatch('skip_number', get_engine().skip_number(_get_sid(), _payload(data).get('roomId')))


def handle_submit_move(data=None):
    data = _payload(data)
    outcome = get_engine().submit_move(_get_sid(), data.get('roomId'), data.get('digit'))
    _dispatch('submit_move', outcome)


def handle_end_game(data=None):
    _dispatch('end_game', get_engine().end_game(_get_sid(), _payload(data).get('roomId')))


def handle_error(exc):
    current_app.logger.exception(f"[socket-error] sid={_get_sid()} event={getattr(request, 'event', None)}: {exc}")
    emit('error', 'Internal error')


HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'ping': handle_ping,
    'create_room': handle_create_room,
    'join_room': handle_join_room,
    'start_game': handle_start_game,
    'force_new_number': handle_force_new_number,
    'enable_exception': handle_enable_exception,
    'skip_number': handle_skip_number,
    'submit_move': handle_submit_move,
    'end_game': handle_end_game,
}


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    for event, handler in HANDLERS.items():
        socketio.on_event(event, handler, namespace=namespace)
    socketio.on_error(namespace)(handle_error)
