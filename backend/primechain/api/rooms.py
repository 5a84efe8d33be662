from flask import Blueprint, jsonify

from primechain import get_engine
from primechain.services.rooms.engine import ROOM_NOT_FOUND, normalize_code

rooms = Blueprint('rooms', __name__)


@rooms.route('', methods=['GET'])
def list_rooms():
    registry = get_engine().registry
    return jsonify([room.summary() for room in registry.rooms()])


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room_state(room_code):
    """Read-only snapshot of a room, for host screens and debugging."""
    with get_engine().registry.locked(normalize_code(room_code)) as room:
        if room is None:
            return jsonify({'error': ROOM_NOT_FOUND}), 404
        state = room.to_dict()
        state['leaderboard'] = [p.to_dict() for p in room.leaderboard()]
        return jsonify(state)
