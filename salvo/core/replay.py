"""
salvo/core/replay.py

Match Replay Engine — v1

Replays an ordered move list against two validated boards.

Rules enforced here, per move, in this order:
    1. Turn     → move.player == expected player       (TurnOrderViolation)
    2. Bounds   → 0 <= x, y < width                    (OutOfBounds)
    3. Repeat   → shooter never targeted this cell     (DuplicateShot)
    4. Outcome  → hit iff opponent's board is occupied at (x, y)
    5. Win      → shooter's hits == opponent's ship cells ends the game;
                  trailing moves are ignored, never an error
    6. Turn     → cursor flips after every non-terminal move

Running out of moves without a winner is NoWinnerDetermined.

Bounds are checked before repeats: only in-bounds shots are ever recorded,
so an out-of-bounds move can never also be a repeat.

No I/O. No shared state. Two replays of the same inputs are identical.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Sequence, Set

from salvo.core.exceptions import BoardFault, InvalidBoard, ReplayError, ReplayFault
from salvo.core.models import Board, Move, ReplayResult, Transcript


@dataclass(frozen=True)
class ShotRecord:
    """One replayed move, with the running score after it."""
    index:    int
    player:   int
    x:        int
    y:        int
    hit:      bool
    hits_p1:  int
    hits_p2:  int
    terminal: bool


class ReplayEngine:
    """
    Usage:
        engine = ReplayEngine()
        result = engine.replay(board_p1, board_p2, moves)
        result = engine.replay_transcript(transcript)

        for shot in engine.timeline(board_p1, board_p2, moves):
            ...

    Boards are assumed to have passed TranscriptValidator. A board with no
    ships at all is still refused with InvalidBoard.
    """

    def replay(
        self,
        board_p1: Board,
        board_p2: Board,
        moves:    Sequence[Move],
    ) -> ReplayResult:
        shots = list(self.timeline(board_p1, board_p2, moves))

        if not shots or not shots[-1].terminal:
            raise ReplayError(
                ReplayFault.NO_WINNER_DETERMINED,
                "Move sequence ended before either player sank the opposing fleet",
                details={
                    "moves":   len(moves),
                    "hits_p1": shots[-1].hits_p1 if shots else 0,
                    "hits_p2": shots[-1].hits_p2 if shots else 0,
                },
            )

        last = shots[-1]
        return ReplayResult(
            hits=        tuple(s.hit for s in shots),
            winner=      last.player,
            total_moves= len(shots),
            hits_p1=     last.hits_p1,
            hits_p2=     last.hits_p2,
        )

    def replay_transcript(self, transcript: Transcript) -> ReplayResult:
        return self.replay(transcript.board_p1, transcript.board_p2, transcript.moves)

    def timeline(
        self,
        board_p1: Board,
        board_p2: Board,
        moves:    Sequence[Move],
    ) -> Iterator[ShotRecord]:
        """
        Yield one ShotRecord per consumed move.

        Stops after the winning move. Raises ReplayError at the first
        illegal move. Does NOT raise when moves run out without a winner;
        that judgement belongs to replay().
        """
        if board_p1.width != board_p2.width:
            raise InvalidBoard(
                BoardFault.SIZE,
                "Both boards must share the same grid width",
                {"width_p1": board_p1.width, "width_p2": board_p2.width},
            )
        for player, board in ((1, board_p1), (2, board_p2)):
            if not board.occupied:
                raise InvalidBoard(
                    BoardFault.CELL_COUNT,
                    f"Board of player {player} has no ships; no shot could ever win",
                    {"player": player},
                )

        # board each player shoots AT
        targets: Dict[int, Board]    = {1: board_p2, 2: board_p1}
        to_win:  Dict[int, int]      = {1: len(board_p2.occupied), 2: len(board_p1.occupied)}
        shots:   Dict[int, Set[int]] = {1: set(), 2: set()}
        hits:    Dict[int, int]      = {1: 0, 2: 0}
        expected = 1

        for i, mv in enumerate(moves):
            if mv.player != expected:
                raise ReplayError(
                    ReplayFault.TURN_ORDER_VIOLATION,
                    f"Move {i}: expected player {expected}, got {mv.player}",
                    move_index=i,
                )

            target = targets[mv.player]
            if not target.in_bounds(mv.x, mv.y):
                raise ReplayError(
                    ReplayFault.OUT_OF_BOUNDS,
                    f"Move {i}: ({mv.x}, {mv.y}) is outside the "
                    f"{target.width}x{target.width} grid",
                    move_index=i,
                )

            idx = target.index(mv.x, mv.y)
            if idx in shots[mv.player]:
                raise ReplayError(
                    ReplayFault.DUPLICATE_SHOT,
                    f"Move {i}: player {mv.player} already fired at ({mv.x}, {mv.y})",
                    move_index=i,
                )
            shots[mv.player].add(idx)

            hit = target.cells[idx] == 1
            if hit:
                hits[mv.player] += 1

            terminal = hits[mv.player] == to_win[mv.player]

            yield ShotRecord(
                index=    i,
                player=   mv.player,
                x=        mv.x,
                y=        mv.y,
                hit=      hit,
                hits_p1=  hits[1],
                hits_p2=  hits[2],
                terminal= terminal,
            )

            if terminal:
                return

            expected = 2 if expected == 1 else 1
