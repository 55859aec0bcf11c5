import random
import string
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from ludo_server.services.game.board import (
    COLORS,
    HOME_STRETCH_LAST,
    PIECES_PER_COLOR,
    PieceState,
)


class TurnPhase(Enum):
    AWAITING_ROLL = 'awaiting_roll'
    AWAITING_MOVE = 'awaiting_move'
    TURN_OVER = 'turn_over'


@dataclass
class Piece:
    home_slot: int
    state: PieceState = PieceState.HOME
    # None at home, track cell on the track, stretch index in the stretch
    position: Optional[int] = None

    @property
    def is_at_home(self) -> bool:
        return self.state is PieceState.HOME

    @property
    def is_in_home_stretch(self) -> bool:
        return self.state is PieceState.HOME_STRETCH

    @property
    def is_finished(self) -> bool:
        return self.is_in_home_stretch and self.position == HOME_STRETCH_LAST

    def send_home(self):
        self.state = PieceState.HOME
        self.position = None

    def to_dict(self):
        return {
            'home_slot': self.home_slot,
            'state': self.state.value,
            'position': self.position,
            'is_in_home_stretch': self.is_in_home_stretch,
            'is_finished': self.is_finished,
        }


@dataclass
class Player:
    id: str
    name: str
    color: str
    is_host: bool = False

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'is_host': self.is_host,
        }


def new_piece_set() -> Dict[str, List[Piece]]:
    return {color: [Piece(home_slot=slot) for slot in range(PIECES_PER_COLOR)] for color in COLORS}


def generate_room_code(is_taken: Callable[[str], bool], length: int = 6) -> str:
    """Generate a unique, short room code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not is_taken(code):
            return code


@dataclass
class Room:
    code: str
    # Insertion order is turn order
    players: Dict[str, Player] = field(default_factory=dict)
    pieces: Dict[str, List[Piece]] = field(default_factory=new_piece_set)
    current_player_id: Optional[str] = None
    game_started: bool = False
    phase: TurnPhase = TurnPhase.AWAITING_ROLL
    last_dice_value: Optional[int] = None
    can_roll_again: bool = False
    movable_slots: List[int] = field(default_factory=list)
    winner: Optional[str] = None

    @property
    def player_count(self) -> int:
        return len(self.players)

    @property
    def player_ids(self) -> List[str]:
        return list(self.players)

    @property
    def is_empty(self) -> bool:
        return not self.players

    @property
    def is_over(self) -> bool:
        return self.winner is not None

    @property
    def host(self) -> Optional[Player]:
        return next((p for p in self.players.values() if p.is_host), None)

    @property
    def current_player_index(self) -> Optional[int]:
        if self.current_player_id not in self.players:
            return None
        return self.player_ids.index(self.current_player_id)

    def used_colors(self) -> List[str]:
        return [p.color for p in self.players.values()]

    def next_free_color(self) -> Optional[str]:
        used = self.used_colors()
        return next((c for c in COLORS if c not in used), None)

    def to_dict(self):
        return {
            'room_code': self.code,
            'players': [p.to_dict() for p in self.players.values()],
            'player_count': self.player_count,
            'pieces': {color: [p.to_dict() for p in pieces] for color, pieces in self.pieces.items()},
            'current_player_id': self.current_player_id,
            'current_player_index': self.current_player_index,
            'game_started': self.game_started,
            'phase': self.phase.value,
            'dice_value': self.last_dice_value,
            'can_roll_again': self.can_roll_again,
            'movable_pieces': list(self.movable_slots),
            'winner': self.winner,
        }
