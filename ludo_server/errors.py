"""Request rejection errors.

None of these are fatal: the socket layer catches ``LudoError`` and reports it
to the requesting participant only, on the event named by ``event``.
"""


class LudoError(Exception):
    code = 'LUDO_ERROR'
    event = 'game-error'
    default_message = 'Request rejected'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class RoomError(LudoError):
    event = 'room-error'


class RoomNotFound(RoomError):
    code = 'ROOM_NOT_FOUND'
    default_message = 'Room not found'

    def __init__(self, room_code: str = None):
        self.room_code = room_code
        super().__init__(f"Room '{room_code}' not found" if room_code else None)


class RoomFull(RoomError):
    code = 'ROOM_FULL'
    default_message = 'Room is full'


class GameAlreadyStarted(RoomError):
    code = 'GAME_ALREADY_STARTED'
    default_message = 'Game already started'


class NotAuthorized(LudoError):
    code = 'NOT_AUTHORIZED'
    default_message = 'Not authorized to start game'


class NotEnoughPlayers(LudoError):
    code = 'NOT_ENOUGH_PLAYERS'
    default_message = 'Need at least 2 players to start'


class NotYourTurn(LudoError):
    code = 'NOT_YOUR_TURN'
    default_message = 'Not your turn'


class IllegalMove(LudoError):
    code = 'ILLEGAL_MOVE'
    default_message = 'Invalid move'
