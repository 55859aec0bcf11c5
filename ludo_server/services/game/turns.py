import random
from typing import List, NamedTuple, Optional

from ludo_server.errors import IllegalMove, NotYourTurn
from ludo_server.models import Room, TurnPhase
from ludo_server.services.game.board import MAX_DIE, PieceState
from ludo_server.services.game.rules import (
    CapturedPiece,
    apply_move,
    can_move,
    has_won,
    resolve_capture,
)


class RollResult(NamedTuple):
    dice_value: int
    movable_slots: List[int]
    can_roll_again: bool
    turn_forfeited: bool


class MoveResult(NamedTuple):
    color: str
    slot: int
    old_position: dict
    new_position: dict
    captured: Optional[CapturedPiece]
    has_won: bool
    another_turn: bool


def movable_slots(room: Room, color: str, die: int) -> List[int]:
    return [piece.home_slot for piece in room.pieces[color] if can_move(piece, die, color)]


class TurnController:
    """Whose turn it is, dice, and the extension policy for one room at a time.

    The current player is tracked by participant id. Turn order is the
    room's player insertion order, recomputed from live membership whenever
    the turn moves on, so departures never leave a stale index behind.
    """

    def __init__(self, rng: random.Random = None):
        self.rng = rng or random.SystemRandom()

    def begin(self, room: Room) -> None:
        room.current_player_id = room.player_ids[0] if room.players else None
        self._reset_turn(room)

    def roll_dice(self, room: Room, participant_id: str) -> RollResult:
        self._check_turn(room, participant_id)
        if room.phase is not TurnPhase.AWAITING_ROLL:
            raise IllegalMove('Move a piece before rolling again')

        die = self.rng.randint(1, MAX_DIE)
        color = room.players[participant_id].color
        slots = movable_slots(room, color, die)

        room.last_dice_value = die
        room.can_roll_again = die == MAX_DIE
        room.movable_slots = slots

        if slots:
            room.phase = TurnPhase.AWAITING_MOVE
            return RollResult(die, slots, room.can_roll_again, False)
        if die == MAX_DIE:
            # Nothing can use the six, but the six still earns another roll
            room.phase = TurnPhase.AWAITING_ROLL
            return RollResult(die, slots, True, False)

        self.advance(room)
        return RollResult(die, slots, False, True)

    def move_piece(self, room: Room, participant_id: str, slot) -> MoveResult:
        self._check_turn(room, participant_id)
        if room.phase is not TurnPhase.AWAITING_MOVE:
            raise IllegalMove('Roll the dice first')
        if not isinstance(slot, int) or isinstance(slot, bool) or slot not in room.movable_slots:
            raise IllegalMove('Cannot move this piece')

        color = room.players[participant_id].color
        die = room.last_dice_value
        piece = room.pieces[color][slot]
        outcome = apply_move(piece, die, color)

        captured = None
        if piece.state is PieceState.TRACK:
            captured = resolve_capture(room, color, piece.position)

        won = has_won(room, color)
        another_turn = (die == MAX_DIE or captured is not None) and not won

        if won:
            room.winner = color
            room.phase = TurnPhase.TURN_OVER
            room.can_roll_again = False
            room.movable_slots = []
        elif another_turn:
            room.phase = TurnPhase.AWAITING_ROLL
            room.can_roll_again = True
            room.movable_slots = []
        else:
            self.advance(room)

        return MoveResult(color, slot, outcome.old_position, outcome.new_position, captured, won, another_turn)

    def advance(self, room: Room) -> None:
        room.current_player_id = self._following(room, room.current_player_id)
        self._reset_turn(room)

    def handle_departure(self, room: Room, participant_id: str) -> bool:
        """Pass the turn on if ``participant_id`` holds it. Call before removing them.

        Returns True when the current player changed.
        """
        if not room.game_started or room.is_over or room.current_player_id != participant_id:
            return False
        following = self._following(room, participant_id)
        room.current_player_id = None if following == participant_id else following
        self._reset_turn(room)
        return True

    def _check_turn(self, room: Room, participant_id: str) -> None:
        if not room.game_started:
            raise IllegalMove('Game has not started')
        if room.is_over:
            raise IllegalMove('Game is over')
        if participant_id != room.current_player_id:
            raise NotYourTurn()

    @staticmethod
    def _following(room: Room, participant_id: Optional[str]) -> Optional[str]:
        order = room.player_ids
        if not order:
            return None
        if participant_id not in order:
            return order[0]
        return order[(order.index(participant_id) + 1) % len(order)]

    @staticmethod
    def _reset_turn(room: Room) -> None:
        room.phase = TurnPhase.AWAITING_ROLL
        room.can_roll_again = False
        room.movable_slots = []
