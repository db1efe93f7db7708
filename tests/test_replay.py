"""
tests/test_replay.py

Replay rules, checked per move in this order:
    turn → bounds → duplicate → hit → win

Trailing moves after the winning shot are never examined.
"""

import pytest

from salvo.core.exceptions import BoardFault, InvalidBoard, ReplayError, ReplayFault
from salvo.core.models import Board
from salvo.core.replay import ReplayEngine

from helpers.games import moves_from, standard_board, winning_moves


@pytest.fixture
def engine():
    return ReplayEngine()


def replay(engine, moves):
    return engine.replay(standard_board(), standard_board(), moves_from(moves))


# Player 1 only misses; player 2 sinks player 1's fleet on move 8.
PLAYER_TWO_WINS = (
    (1, 3, 0), (2, 0, 0),
    (1, 3, 1), (2, 0, 1),
    (1, 3, 2), (2, 2, 2),
    (1, 1, 1), (2, 2, 3),
)


# ─────────────────────────────────────────────────────────────
# Win detection
# ─────────────────────────────────────────────────────────────

class TestWinDetection:

    def test_player_one_wins_on_seventh_move(self, engine):
        result = replay(engine, winning_moves())
        assert result.winner == 1
        assert result.total_moves == 7
        assert result.hits == (True, False, True, False, True, False, True)
        assert (result.hits_p1, result.hits_p2) == (4, 0)

    def test_player_two_can_win(self, engine):
        result = replay(engine, PLAYER_TWO_WINS)
        assert result.winner == 2
        assert result.total_moves == 8
        assert result.hits_p2 == 4

    def test_trailing_moves_are_ignored(self, engine):
        trailing = winning_moves() + ((2, 0, 0), (1, 0, 0), (1, 9, 9))
        result = replay(engine, trailing)
        assert result.winner == 1
        assert result.total_moves == 7

    def test_same_cell_on_both_boards_is_not_a_repeat(self, engine):
        moves = ((1, 0, 0), (2, 0, 0), (1, 0, 1), (2, 0, 1))
        shots = list(engine.timeline(standard_board(), standard_board(), moves_from(moves)))
        assert [s.hit for s in shots] == [True, True, True, True]

    def test_timeline_stops_at_winning_shot(self, engine):
        moves = winning_moves() + ((2, 1, 1),)
        shots = list(engine.timeline(standard_board(), standard_board(), moves_from(moves)))
        assert len(shots) == 7
        assert shots[-1].terminal
        assert not any(s.terminal for s in shots[:-1])


# ─────────────────────────────────────────────────────────────
# Violations
# ─────────────────────────────────────────────────────────────

class TestViolations:

    def test_player_two_moving_first_is_turn_violation(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [(2, 0, 0)])
        assert exc.value.fault == ReplayFault.TURN_ORDER_VIOLATION
        assert exc.value.move_index == 0

    def test_same_player_twice_is_turn_violation(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [(1, 0, 0), (1, 1, 0)])
        assert exc.value.fault == ReplayFault.TURN_ORDER_VIOLATION
        assert exc.value.move_index == 1

    def test_unknown_player_is_turn_violation(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [(3, 0, 0)])
        assert exc.value.fault == ReplayFault.TURN_ORDER_VIOLATION

    def test_repeat_shot_is_duplicate(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [(1, 0, 0), (2, 3, 0), (1, 0, 0)])
        assert exc.value.fault == ReplayFault.DUPLICATE_SHOT
        assert exc.value.move_index == 2

    @pytest.mark.parametrize("x,y", [(4, 0), (0, 4), (-1, 0), (0, -1)])
    def test_off_grid_shot_is_out_of_bounds(self, engine, x, y):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [(1, x, y)])
        assert exc.value.fault == ReplayFault.OUT_OF_BOUNDS

    def test_turn_checked_before_bounds(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [(2, 9, 9)])
        assert exc.value.fault == ReplayFault.TURN_ORDER_VIOLATION

    def test_running_out_of_moves_has_no_winner(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, winning_moves()[:-1])
        assert exc.value.fault == ReplayFault.NO_WINNER_DETERMINED
        assert exc.value.details["hits_p1"] == 3

    def test_empty_move_list_has_no_winner(self, engine):
        with pytest.raises(ReplayError) as exc:
            replay(engine, [])
        assert exc.value.fault == ReplayFault.NO_WINNER_DETERMINED

    def test_shipless_board_never_yields_a_winner(self, engine):
        empty = Board((0,) * 16)
        with pytest.raises(InvalidBoard) as exc:
            engine.replay(standard_board(), empty, moves_from([(1, 3, 3)]))
        assert exc.value.reason == BoardFault.CELL_COUNT
        assert exc.value.details["player"] == 2


class TestDeterminism:

    def test_replay_is_repeatable(self, engine):
        assert replay(engine, winning_moves()) == replay(engine, winning_moves())

    def test_separate_engines_agree(self):
        assert replay(ReplayEngine(), PLAYER_TWO_WINS) == replay(ReplayEngine(), PLAYER_TWO_WINS)
