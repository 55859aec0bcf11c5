"""Board geometry: track size, entry cells, stretch boundaries and safe cells.

Everything here is constant. The rules engine consults it, nothing mutates it.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, NamedTuple, Optional


TRACK_SIZE = 52
MAX_DIE = 6
PIECES_PER_COLOR = 4
# Home stretch indices run 0..6; 6 is the finish
HOME_STRETCH_LAST = 6
STAR_OFFSET = 8

COLORS: List[str] = ['red', 'green', 'yellow', 'blue']

ENTRY_CELLS: Dict[str, int] = {
    'red': 1,
    'green': 14,
    'yellow': 27,
    'blue': 40,
}

# Last main-track cell before the color turns into its home stretch
STRETCH_BOUNDARIES: Dict[str, int] = {
    'red': 51,
    'green': 12,
    'yellow': 25,
    'blue': 38,
}


def _compute_safe_cells() -> FrozenSet[int]:
    cells = set()
    for entry in ENTRY_CELLS.values():
        cells.add(entry)
        cells.add((entry + STAR_OFFSET) % TRACK_SIZE)
    return frozenset(cells)


SAFE_CELLS: FrozenSet[int] = _compute_safe_cells()


class PieceState(Enum):
    HOME = 'home'
    TRACK = 'track'
    HOME_STRETCH = 'home_stretch'


class Destination(NamedTuple):
    state: PieceState
    position: int


def is_safe(cell: int) -> bool:
    return cell in SAFE_CELLS


def destination(color: str, state: PieceState, position: Optional[int], die: int) -> Optional[Destination]:
    """Where a piece would end up after moving ``die`` steps.

    Returns None when the move is illegal: leaving home without a six,
    overshooting the finish in the stretch, or crossing the stretch boundary
    with more steps than the stretch can absorb. Both ``can_move`` and
    ``apply_move`` go through this function so they can never disagree.
    """
    if not 1 <= die <= MAX_DIE:
        return None

    if state is PieceState.HOME:
        if die != MAX_DIE:
            return None
        return Destination(PieceState.TRACK, ENTRY_CELLS[color])

    if state is PieceState.HOME_STRETCH:
        target = position + die
        if target > HOME_STRETCH_LAST:
            return None
        return Destination(PieceState.HOME_STRETCH, target)

    steps_to_boundary = (STRETCH_BOUNDARIES[color] - position) % TRACK_SIZE
    if die > steps_to_boundary:
        stretch_index = die - steps_to_boundary
        if stretch_index > HOME_STRETCH_LAST:
            return None
        return Destination(PieceState.HOME_STRETCH, stretch_index)
    return Destination(PieceState.TRACK, (position + die) % TRACK_SIZE)
