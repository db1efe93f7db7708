"""
salvo Exception Hierarchy

All exceptions inherit from SalvoError for easy catching.
Every class carries a stable ``kind`` string so callers and the CLI can
report failures without matching on class names.
"""

from enum import Enum


class SalvoError(Exception):
    """Base exception for all salvo errors"""

    kind = "salvo_error"
    idempotent = False

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class TranscriptFormatError(SalvoError):
    """Raised when an input document does not parse into the canonical shape"""
    kind = "transcript_format"


# ── Verification pipeline ────────────────────────────────────

class BoardFault(str, Enum):
    SIZE       = "size"
    CELL_VALUE = "cell_value"
    CELL_COUNT = "cell_count"
    SHAPE      = "shape"


class InvalidBoard(SalvoError):
    """Raised when a board layout is structurally illegal"""
    kind = "invalid_board"

    def __init__(self, reason: BoardFault, message: str, details: dict = None):
        super().__init__(message, details)
        self.reason = BoardFault(reason)


class ReplayFault(str, Enum):
    TURN_ORDER_VIOLATION = "TurnOrderViolation"
    DUPLICATE_SHOT       = "DuplicateShot"
    OUT_OF_BOUNDS        = "OutOfBounds"
    NO_WINNER_DETERMINED = "NoWinnerDetermined"


class ReplayError(SalvoError):
    """Raised when a move sequence cannot be replayed to a winner"""
    kind = "replay_error"

    def __init__(
        self,
        fault: ReplayFault,
        message: str,
        move_index: int = None,
        details: dict = None,
    ):
        details = dict(details or {})
        if move_index is not None:
            details.setdefault("move_index", move_index)
        super().__init__(message, details)
        self.fault = ReplayFault(fault)
        self.move_index = move_index


# ── Settlement ───────────────────────────────────────────────

class SettlementError(SalvoError):
    """Raised when a settlement ledger operation is rejected"""
    kind = "settlement_error"


class SessionNotFound(SettlementError):
    kind = "SessionNotFound"
    idempotent = True


class SessionAlreadyExists(SettlementError):
    kind = "SessionAlreadyExists"


class InvalidSessionParameters(SettlementError):
    kind = "InvalidSessionParameters"


class AlreadySettled(SettlementError):
    kind = "AlreadySettled"
    idempotent = True


class SessionAborted(SettlementError):
    kind = "SessionAborted"


class CommitmentLocked(SettlementError):
    kind = "CommitmentLocked"


class NotPlayer(SettlementError):
    kind = "NotPlayer"


class SessionMismatch(SettlementError):
    kind = "SessionMismatch"


class CommitmentMismatch(SettlementError):
    kind = "CommitmentMismatch"


class WinnerOutOfRange(SettlementError):
    kind = "WinnerOutOfRange"


class InvalidTotalMoves(SettlementError):
    kind = "InvalidTotalMoves"


class InvalidProofMaterial(SettlementError):
    kind = "InvalidProofMaterial"


class InvalidAttestation(SettlementError):
    kind = "InvalidAttestation"


# ── Persistence ──────────────────────────────────────────────

class StoreError(SalvoError):
    """Raised when session store operations fail"""
    kind = "store_error"
