import threading
import uuid
from typing import Dict, List, Optional

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from ludo_server import socketio
from ludo_server.errors import LudoError
from ludo_server.rooms import Outbound, RoomManager


class ConnectionDirectory:
    """Maps transport socket ids to generated participant ids and back."""

    def __init__(self):
        self._lock = threading.Lock()
        self._sid_to_participant: Dict[str, str] = {}
        self._participant_to_sid: Dict[str, str] = {}

    def register(self, sid: str) -> str:
        with self._lock:
            participant_id = self._sid_to_participant.get(sid)
            if participant_id is None:
                participant_id = uuid.uuid4().hex
                self._sid_to_participant[sid] = participant_id
                self._participant_to_sid[participant_id] = sid
            return participant_id

    def forget(self, sid: str) -> Optional[str]:
        with self._lock:
            participant_id = self._sid_to_participant.pop(sid, None)
            if participant_id is not None:
                self._participant_to_sid.pop(participant_id, None)
            return participant_id

    def sid_for(self, participant_id: str) -> Optional[str]:
        with self._lock:
            return self._participant_to_sid.get(participant_id)


def _manager() -> RoomManager:
    return current_app.extensions['ludo_rooms']


def _connections() -> ConnectionDirectory:
    return current_app.extensions['ludo_connections']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _field(data, *names):
    if isinstance(data, dict):
        for name in names:
            if name in data:
                return data[name]
    return None


def _room_code(data):
    if isinstance(data, str):
        return data
    return _field(data, 'room_code', 'roomCode')


def _player_name(data):
    if isinstance(data, str):
        return data
    return _field(data, 'player_name', 'playerName', 'name')


def _dispatch(events: List[Outbound]) -> None:
    namespace = request.namespace
    for event in events:
        if event.room is not None:
            socketio.emit(event.event, event.payload, to=event.room, namespace=namespace)
            continue
        sid = _connections().sid_for(event.participant)
        if sid is not None:
            socketio.emit(event.event, event.payload, to=sid, namespace=namespace)


def _act(action, *args) -> None:
    """Run a room manager action for the calling socket and deliver its events."""
    manager = _manager()
    participant_id = _connections().register(_get_sid())
    before = manager.room_of(participant_id)
    try:
        events = action(participant_id, *args)
    except LudoError as exc:
        current_app.logger.info(f"[rejected] participant={participant_id} code={exc.code} message={exc.message}")
        emit(exc.event, exc.to_dict())
        return
    after = manager.room_of(participant_id)
    if before and before != after:
        leave_room(before)
    if after and after != before:
        join_room(after)
    _dispatch(events)


def handle_connect(auth=None):
    participant_id = _connections().register(_get_sid())
    emit('connected', {'participant_id': participant_id})


def handle_disconnect(reason=None):
    sid = _get_sid()
    participant_id = _connections().register(sid)
    events = _manager().leave_room(participant_id)
    _connections().forget(sid)
    _dispatch(events)


def handle_create_room(data):
    _act(_manager().create_room, _player_name(data))


def handle_join_room(data):
    _act(_manager().join_room, _room_code(data), _player_name(data))


def handle_start_game(data):
    _act(_manager().start_game, _room_code(data))


def handle_roll_dice(data):
    _act(_manager().roll_dice, _room_code(data))


def handle_move_piece(data):
    _act(_manager().move_piece, _room_code(data), _field(data, 'piece_index', 'pieceIndex'))


def handle_leave_room(data=None):
    _act(_manager().leave_room)


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on ``namespace``."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('create-room', handle_create_room, namespace=namespace)
    socketio.on_event('join-room', handle_join_room, namespace=namespace)
    socketio.on_event('start-game', handle_start_game, namespace=namespace)
    socketio.on_event('roll-dice', handle_roll_dice, namespace=namespace)
    socketio.on_event('move-piece', handle_move_piece, namespace=namespace)
    socketio.on_event('leave-room', handle_leave_room, namespace=namespace)
