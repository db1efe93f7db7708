"""
salvo/core/commitment.py

CommitmentBinder — board commitments and the session-bound public output.

Locked contracts (changing any of these requires a new BOARD_HASH_SCHEME):

    board_hash(board) = hex(SHA-256(board.to_bytes()))
                        to_bytes() is the row-major 0/1 occupancy vector,
                        one byte per cell (16 bytes on a 4×4 grid)

    journal(output)   = JCS(output.to_dict())          RFC 8785 bytes
    journal_digest    = SHA-256(journal)               32 raw bytes

The attestation backend certifies journal_digest; the settlement ledger
recomputes it from the PublicOutput it is handed. Neither side ever sees a
second encoding.
"""

import hashlib

from salvo.core.canonical import canonicalize
from salvo.core.models import Board, PublicOutput, ReplayResult


BOARD_HASH_SCHEME = "sha256/occupancy-v1"


def board_hash(board: Board) -> str:
    return hashlib.sha256(board.to_bytes()).hexdigest()


def encode_journal(output: PublicOutput) -> bytes:
    return canonicalize(output.to_dict())


def journal_digest(journal: bytes) -> bytes:
    return hashlib.sha256(journal).digest()


class CommitmentBinder:
    """
    Pure binder. Holds no state beyond the scheme name it reports.

    Usage:
        binder = CommitmentBinder()
        output = binder.bind(session_id, board_p1, board_p2, replay_result)
    """

    scheme = BOARD_HASH_SCHEME

    def board_hash(self, board: Board) -> str:
        return board_hash(board)

    def bind(
        self,
        session_id:    int,
        board_p1:      Board,
        board_p2:      Board,
        replay_result: ReplayResult,
    ) -> PublicOutput:
        return PublicOutput(
            session_id=    session_id,
            winner=        replay_result.winner,
            board_hash_p1= board_hash(board_p1),
            board_hash_p2= board_hash(board_p2),
            total_moves=   replay_result.total_moves,
        )

    def journal(self, output: PublicOutput) -> bytes:
        return encode_journal(output)
