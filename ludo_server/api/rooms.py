from flask import Blueprint, current_app, jsonify

from ludo_server.errors import RoomNotFound


rooms = Blueprint('rooms', __name__)


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    """
    Returns the full state of a room, as broadcast to its players.
    """
    try:
        state = current_app.extensions['ludo_rooms'].snapshot(room_code)
    except RoomNotFound as exc:
        return jsonify(exc.to_dict()), 404
    return jsonify(state)
