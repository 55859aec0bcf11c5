from typing import NamedTuple, Optional

from ludo_server.errors import IllegalMove
from ludo_server.models import Piece, Room
from ludo_server.services.game.board import COLORS, destination, is_safe


class MoveOutcome(NamedTuple):
    old_position: dict
    new_position: dict


class CapturedPiece(NamedTuple):
    color: str
    slot: int

    def to_dict(self):
        return {'color': self.color, 'piece_index': self.slot}


def can_move(piece: Piece, die: int, color: str) -> bool:
    return destination(color, piece.state, piece.position, die) is not None


def apply_move(piece: Piece, die: int, color: str) -> MoveOutcome:
    """Move ``piece`` in place. Callers are expected to check ``can_move`` first."""
    target = destination(color, piece.state, piece.position, die)
    if target is None:
        raise IllegalMove(f"{color} piece {piece.home_slot} cannot move {die}")
    old = piece.to_dict()
    piece.state, piece.position = target.state, target.position
    return MoveOutcome(old, piece.to_dict())


def resolve_capture(room: Room, moving_color: str, landed_cell: int) -> Optional[CapturedPiece]:
    """Send the first opposing piece on ``landed_cell`` back home.

    Colors are scanned in palette order and slots in ascending order, so a
    cell that somehow holds several opposing pieces loses only the first.
    """
    if is_safe(landed_cell):
        return None
    for color in COLORS:
        if color == moving_color:
            continue
        for piece in room.pieces[color]:
            if piece.is_at_home or piece.is_in_home_stretch:
                continue
            if piece.position == landed_cell:
                piece.send_home()
                return CapturedPiece(color, piece.home_slot)
    return None


def has_won(room: Room, color: str) -> bool:
    return all(piece.is_finished for piece in room.pieces[color])
