"""
salvo/core/validator.py

TranscriptValidator — fleet legality of a single board.

A legal fleet is exactly `ship_count` ships of exactly `ship_length` cells,
where a ship is one 4-connected component of occupied cells. Diagonal
contact does not connect two cells, so two ships touching only at a corner
are still two ships.

Pure predicate: raises InvalidBoard with a structured reason, never mutates.
The flood fill only walks occupied cells, so it is O(occupied) and works
unchanged for any square grid width.
"""

from typing import List

from salvo.core.exceptions import BoardFault, InvalidBoard
from salvo.core.models import Board, Transcript


class TranscriptValidator:
    """
    Usage:
        validator = TranscriptValidator()
        validator.validate(board)               # raises InvalidBoard
        validator.validate_transcript(transcript)
    """

    def __init__(self, ship_count: int = 2, ship_length: int = 2):
        self.ship_count  = ship_count
        self.ship_length = ship_length

    @property
    def fleet_cells(self) -> int:
        return self.ship_count * self.ship_length

    def validate(self, board: Board) -> None:
        occupied = board.occupied

        if len(occupied) != self.fleet_cells:
            raise InvalidBoard(
                BoardFault.CELL_COUNT,
                f"Board must have exactly {self.fleet_cells} occupied cells",
                {"occupied": len(occupied)},
            )

        sizes = component_sizes(board)
        if len(sizes) != self.ship_count or any(s != self.ship_length for s in sizes):
            raise InvalidBoard(
                BoardFault.SHAPE,
                f"Board must contain exactly {self.ship_count} ships "
                f"of length {self.ship_length}",
                {"component_sizes": sizes},
            )

    def validate_transcript(self, transcript: Transcript) -> None:
        """Validate both boards. The failure names the offending player."""
        for player in (1, 2):
            try:
                self.validate(transcript.board_of(player))
            except InvalidBoard as exc:
                raise InvalidBoard(
                    exc.reason,
                    f"Player {player}: {exc.message}",
                    {**exc.details, "player": player},
                ) from exc


def component_sizes(board: Board) -> List[int]:
    """
    Sizes of the 4-connected components of occupied cells,
    in order of each component's lowest linear index.
    """
    occupied = board.occupied
    visited  = set()
    sizes: List[int] = []

    for start in sorted(occupied):
        if start in visited:
            continue

        visited.add(start)
        stack = [start]
        size  = 0

        while stack:
            current = stack.pop()
            size += 1
            for nxt in board.neighbors(current):
                if nxt in occupied and nxt not in visited:
                    visited.add(nxt)
                    stack.append(nxt)

        sizes.append(size)

    return sizes
