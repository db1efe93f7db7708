"""
tests/test_validator.py

Fleet legality.

A legal board on the 4×4 grid holds exactly two ships of exactly two cells,
where a ship is a 4-connected group of occupied cells.
"""

import pytest

from salvo.core.exceptions import BoardFault, InvalidBoard
from salvo.core.models import Board
from salvo.core.validator import TranscriptValidator, component_sizes

from helpers.games import make_transcript, standard_board


@pytest.fixture
def validator():
    return TranscriptValidator()


# ─────────────────────────────────────────────────────────────
# Board encoding
# ─────────────────────────────────────────────────────────────

class TestBoardEncoding:

    def test_wrong_cell_count_is_size_fault(self):
        with pytest.raises(InvalidBoard) as exc:
            Board(tuple([0] * 15))
        assert exc.value.reason == BoardFault.SIZE

    def test_cell_value_other_than_zero_or_one_rejected(self):
        cells = [0] * 16
        cells[3] = 2
        with pytest.raises(InvalidBoard) as exc:
            Board(tuple(cells))
        assert exc.value.reason == BoardFault.CELL_VALUE
        assert exc.value.details["index"] == 3

    def test_boolean_cells_rejected(self):
        cells = [0] * 16
        cells[0] = True
        with pytest.raises(InvalidBoard) as exc:
            Board(tuple(cells))
        assert exc.value.reason == BoardFault.CELL_VALUE

    def test_linear_index_is_row_major(self):
        board = Board.from_coords([(1, 2)])
        assert board.index(1, 2) == 9
        assert board.cells[9] == 1
        assert board.is_occupied(1, 2)

    def test_to_bytes_is_occupancy_vector(self):
        assert standard_board().to_bytes() == bytes(
            [1, 0, 0, 0, 1, 0, 0, 0, 0, 0, 1, 0, 0, 0, 1, 0]
        )

    def test_from_coords_outside_grid_rejected(self):
        with pytest.raises(InvalidBoard):
            Board.from_coords([(4, 0)])


# ─────────────────────────────────────────────────────────────
# Fleet rules
# ─────────────────────────────────────────────────────────────

class TestFleetRules:

    def test_two_disjoint_pairs_accepted(self, validator):
        validator.validate(standard_board())

    def test_horizontal_and_vertical_pairs_accepted(self, validator):
        validator.validate(Board.from_coords([(0, 0), (1, 0), (3, 2), (3, 3)]))

    def test_ships_touching_diagonally_are_two_ships(self, validator):
        board = Board.from_coords([(0, 0), (1, 0), (2, 1), (3, 1)])
        assert component_sizes(board) == [2, 2]
        validator.validate(board)

    @pytest.mark.parametrize("coords", [
        [(0, 0), (0, 1), (2, 2)],
        [(0, 0), (0, 1), (2, 2), (2, 3), (3, 3)],
        [],
    ])
    def test_wrong_occupied_count_rejected(self, validator, coords):
        with pytest.raises(InvalidBoard) as exc:
            validator.validate(Board.from_coords(coords))
        assert exc.value.reason == BoardFault.CELL_COUNT

    def test_four_in_a_row_rejected(self, validator):
        with pytest.raises(InvalidBoard) as exc:
            validator.validate(Board.from_coords([(0, 1), (1, 1), (2, 1), (3, 1)]))
        assert exc.value.reason == BoardFault.SHAPE
        assert exc.value.details["component_sizes"] == [4]

    def test_square_block_rejected(self, validator):
        with pytest.raises(InvalidBoard) as exc:
            validator.validate(Board.from_coords([(0, 0), (1, 0), (0, 1), (1, 1)]))
        assert exc.value.reason == BoardFault.SHAPE

    def test_three_plus_one_rejected(self, validator):
        board = Board.from_coords([(0, 0), (1, 0), (2, 0), (3, 3)])
        assert component_sizes(board) == [3, 1]
        with pytest.raises(InvalidBoard) as exc:
            validator.validate(board)
        assert exc.value.reason == BoardFault.SHAPE

    def test_validate_does_not_mutate(self, validator):
        board = standard_board()
        before = board.to_bytes()
        validator.validate(board)
        assert board.to_bytes() == before


class TestTranscriptValidation:

    def test_offending_player_is_named(self, validator):
        bad = Board.from_coords([(0, 0), (1, 0), (2, 0), (3, 0)])
        with pytest.raises(InvalidBoard) as exc:
            validator.validate_transcript(make_transcript(board_p2=bad))
        assert exc.value.details["player"] == 2
        assert str(exc.value).startswith("Player 2:")

    def test_player_one_checked_first(self, validator):
        bad = Board.from_coords([(0, 0)])
        with pytest.raises(InvalidBoard) as exc:
            validator.validate_transcript(make_transcript(board_p1=bad, board_p2=bad))
        assert exc.value.details["player"] == 1
