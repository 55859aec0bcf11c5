import logging
from dataclasses import dataclass
from typing import List, Optional

from ludo_server.errors import (
    GameAlreadyStarted,
    NotAuthorized,
    NotEnoughPlayers,
    RoomFull,
    RoomNotFound,
)
from ludo_server.models import Player, Room
from ludo_server.registry import RoomRegistry, normalize_code
from ludo_server.services.game.board import COLORS
from ludo_server.services.game.turns import TurnController


@dataclass
class Outbound:
    """One event to deliver: broadcast to ``room`` or sent to ``participant``."""

    event: str
    payload: dict
    room: Optional[str] = None
    participant: Optional[str] = None


class RoomManager:
    """Room lifecycle and game actions.

    Every operation takes the room's lock from the registry, mutates the room
    and returns the events the transport should deliver. Errors are raised as
    ``LudoError`` subclasses before any state is changed.
    """

    def __init__(self, registry: RoomRegistry, turns: TurnController = None,
                 min_players: int = 2, max_players: int = 4, logger=None):
        self.registry = registry
        self.turns = turns or TurnController()
        self.min_players = min_players
        self.max_players = min(max_players, len(COLORS))
        self.logger = logger or logging.getLogger(__name__)

    def create_room(self, participant_id: str, host_name: str) -> List[Outbound]:
        with self.registry.participant_lock(participant_id):
            events = self.leave_room(participant_id)
            room = self.registry.create()
            with self.registry.locked(room.code) as room:
                host = Player(id=participant_id, name=_clean_name(host_name), color=room.next_free_color(), is_host=True)
                room.players[participant_id] = host
                self.registry.bind(participant_id, room.code)
                self.logger.info(f"[room-created] room={room.code} host={host.name} color={host.color}")
                events.append(Outbound('room-created', {
                    'room_code': room.code,
                    'player_id': participant_id,
                    'game_state': room.to_dict(),
                }, participant=participant_id))
            return events

    def join_room(self, participant_id: str, room_code, name: str) -> List[Outbound]:
        with self.registry.participant_lock(participant_id):
            current = self.registry.room_of(participant_id)
            if current is not None and current == normalize_code(room_code):
                with self.registry.locked(room_code) as room:
                    return [self._joined(room, participant_id)]

            # Take the new seat first so a rejected join leaves the old seat untouched
            with self.registry.locked(room_code) as room:
                self._check_joinable(room)
                player = Player(id=participant_id, name=_clean_name(name), color=room.next_free_color())
                room.players[participant_id] = player
                code = room.code
                self.logger.info(f"[player-joined] room={code} player={player.name} color={player.color}")
                joined = [self._joined(room, participant_id), Outbound('player-joined', {
                    'player': player.to_dict(),
                    'game_state': room.to_dict(),
                }, room=code)]

            events = self._leave(participant_id, current) if current is not None else []
            self.registry.bind(participant_id, code)
            return events + joined

    def start_game(self, participant_id: str, room_code) -> List[Outbound]:
        with self.registry.locked(room_code) as room:
            requester = room.players.get(participant_id)
            if requester is None or not requester.is_host:
                raise NotAuthorized()
            if room.game_started:
                raise GameAlreadyStarted()
            if room.player_count < self.min_players:
                raise NotEnoughPlayers(f"Need at least {self.min_players} players to start")
            room.game_started = True
            self.turns.begin(room)
            self.logger.info(f"[game-started] room={room.code} players={room.player_count}")
            return [Outbound('game-started', {'game_state': room.to_dict()}, room=room.code)]

    def roll_dice(self, participant_id: str, room_code) -> List[Outbound]:
        with self.registry.locked(room_code) as room:
            self._check_member(room, participant_id)
            roller_index = room.current_player_index
            result = self.turns.roll_dice(room, participant_id)
            self.logger.info(
                f"[dice-rolled] room={room.code} player={participant_id} value={result.dice_value} "
                f"movable={result.movable_slots}"
            )
            state = room.to_dict()
            events = [Outbound('dice-rolled', {
                'dice_value': result.dice_value,
                'current_player_index': roller_index,
                'movable_pieces': result.movable_slots,
                'can_roll_again': result.can_roll_again,
                'game_state': state,
            }, room=room.code)]
            if result.turn_forfeited:
                events.append(self._turn_switched(room, state))
            return events

    def move_piece(self, participant_id: str, room_code, slot) -> List[Outbound]:
        with self.registry.locked(room_code) as room:
            self._check_member(room, participant_id)
            result = self.turns.move_piece(room, participant_id, slot)
            self.logger.info(
                f"[piece-moved] room={room.code} color={result.color} piece={result.slot} "
                f"to={result.new_position['state']}:{result.new_position['position']}"
            )
            if result.captured:
                self.logger.info(
                    f"[capture] room={room.code} by={result.color} "
                    f"captured={result.captured.color}:{result.captured.slot}"
                )
            events = [Outbound('piece-moved', {
                'player_color': result.color,
                'piece_index': result.slot,
                'old_position': result.old_position,
                'new_position': result.new_position,
                'captured': result.captured.to_dict() if result.captured else None,
                'has_won': result.has_won,
                'another_turn': result.another_turn,
                'game_state': room.to_dict(),
            }, room=room.code)]
            if result.has_won:
                winner = room.players[participant_id]
                self.logger.info(f"[game-won] room={room.code} winner={winner.color} player={winner.name}")
                events.append(Outbound('game-won', {
                    'winner': winner.color,
                    'player_name': winner.name,
                }, room=room.code))
            return events

    def leave_room(self, participant_id: str) -> List[Outbound]:
        """Remove a participant from their room, if any. Safe to call repeatedly."""
        with self.registry.participant_lock(participant_id):
            code = self.registry.room_of(participant_id)
            if code is None:
                return []
            events = self._leave(participant_id, code)
            self.registry.unbind(participant_id)
            return events

    def _leave(self, participant_id: str, code: str) -> List[Outbound]:
        try:
            with self.registry.locked(code) as room:
                return self._remove_player(room, participant_id)
        except RoomNotFound:
            # Destroyed between lookup and lock; nothing left to leave
            return []

    def _remove_player(self, room: Room, participant_id: str) -> List[Outbound]:
        player = room.players.get(participant_id)
        if player is None:
            return []
        turn_changed = self.turns.handle_departure(room, participant_id)
        del room.players[participant_id]
        self.logger.info(f"[player-left] room={room.code} player={player.name} color={player.color}")

        if room.is_empty:
            self.registry.remove(room.code)
            self.logger.info(f"[room-destroyed] room={room.code}")
            return []

        if player.is_host:
            new_host = next(iter(room.players.values()))
            new_host.is_host = True
            self.logger.info(f"[host-migrated] room={room.code} host={new_host.name}")

        state = room.to_dict()
        events = [Outbound('player-left', {
            'player_id': participant_id,
            'host_id': room.host.id,
            'game_state': state,
        }, room=room.code)]
        if turn_changed:
            events.append(self._turn_switched(room, state))
        return events

    def snapshot(self, room_code) -> dict:
        with self.registry.locked(room_code) as room:
            return room.to_dict()

    def room_of(self, participant_id: str) -> Optional[str]:
        return self.registry.room_of(participant_id)

    def _check_joinable(self, room: Room) -> None:
        if room.player_count >= self.max_players:
            raise RoomFull()
        if room.game_started:
            raise GameAlreadyStarted()

    @staticmethod
    def _joined(room: Room, participant_id: str) -> Outbound:
        return Outbound('joined-room', {
            'room_code': room.code,
            'player_id': participant_id,
            'game_state': room.to_dict(),
        }, participant=participant_id)

    @staticmethod
    def _check_member(room: Room, participant_id: str) -> None:
        if participant_id not in room.players:
            raise NotAuthorized('You are not a player in this room')

    @staticmethod
    def _turn_switched(room: Room, state: dict) -> Outbound:
        return Outbound('turn-switched', {
            'current_player_index': room.current_player_index,
            'current_player_id': room.current_player_id,
            'game_state': state,
        }, room=room.code)


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        return 'Player'
    return name.strip()[:32]
