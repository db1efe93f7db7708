"""
salvo/core/models.py

Match Data Model — v1

═══════════════════════════════════════════════════════════════════
WIRE CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 — Board encoding
    grid        = width × width cells, linear index = y * width + x
    bytes       = row-major occupancy vector, one byte per cell, 0 or 1
    4×4 board   = exactly 16 bytes

CONTRACT 2 — Transcript document
    { "session_id": uint32, "board_p1": [0|1 × 16], "board_p2": [0|1 × 16],
      "moves": [ {"player": int, "x": int, "y": int}, ... ] }
    Exactly these keys. Unknown or missing keys are rejected.

CONTRACT 3 — Public output
    { "session_id", "winner", "board_hash_p1", "board_hash_p2", "total_moves" }
    Board hashes are 64-char lowercase hex. One shape only: no camelCase
    aliases, no nested variants.

CONTRACT 4 — Proof artifact
    { "journal_hex": hex, "seal_hex": hex | null, "public_output": {...} }

Parsing enforces TYPES and SHAPE. Game rules (move ranges, winner range,
turn order) are enforced downstream so they surface as the precise
replay / settlement error instead of a generic format error.
═══════════════════════════════════════════════════════════════════
"""

import json
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from salvo.core.exceptions import BoardFault, InvalidBoard, TranscriptFormatError


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

GRID_WIDTH  = 4
GRID_CELLS  = GRID_WIDTH * GRID_WIDTH
PLAYERS     = (1, 2)
UINT32_MAX  = 2 ** 32 - 1

# SHA-256 digest = 32 bytes = 64 hex chars
_HASH_HEX_LENGTH = 64
_HASH_HEX_RE     = re.compile(r"^[0-9a-f]{64}$")
_HEX_RE          = re.compile(r"^(?:[0-9a-fA-F]{2})*$")

_TRANSCRIPT_KEYS    = frozenset({"session_id", "board_p1", "board_p2", "moves"})
_MOVE_KEYS          = frozenset({"player", "x", "y"})
_PUBLIC_OUTPUT_KEYS = frozenset({
    "session_id", "winner", "board_hash_p1", "board_hash_p2", "total_moves",
})
_ARTIFACT_KEYS      = frozenset({"journal_hex", "seal_hex", "public_output"})


# ─────────────────────────────────────────────────────────────
# Field helpers
# ─────────────────────────────────────────────────────────────

def _is_int(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is never a valid number here
    return isinstance(value, int) and not isinstance(value, bool)


def is_hash_hex(value: Any) -> bool:
    """True iff value is a 64-char lowercase hex string."""
    return isinstance(value, str) and bool(_HASH_HEX_RE.match(value))


def _require_keys(data: Any, expected: FrozenSet[str], what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise TranscriptFormatError(
            f"{what} must be a JSON object, got {type(data).__name__}"
        )
    keys = set(data)
    missing = sorted(expected - keys)
    unknown = sorted(keys - expected)
    if missing or unknown:
        raise TranscriptFormatError(
            f"{what} has wrong fields",
            {"missing": missing, "unknown": unknown},
        )
    return data


def _require_uint32(value: Any, name: str) -> int:
    if not _is_int(value) or not 0 <= value <= UINT32_MAX:
        raise TranscriptFormatError(
            f"{name} must be an unsigned 32-bit integer, got {value!r}"
        )
    return value


def _require_int(value: Any, name: str) -> int:
    if not _is_int(value):
        raise TranscriptFormatError(
            f"{name} must be an integer, got {value!r}"
        )
    return value


def _require_hex(value: Any, name: str) -> str:
    if not isinstance(value, str) or not _HEX_RE.match(value):
        raise TranscriptFormatError(
            f"{name} must be an even-length hex string, got {value!r}"
        )
    return value.lower()


def _load_json(path: Path, what: str) -> Any:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"{what} not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise TranscriptFormatError(
            f"Malformed JSON in {what.lower()} '{path}': {e}"
        ) from e


# ─────────────────────────────────────────────────────────────
# Board
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Board:
    """
    Square occupancy grid. A cell value of 1 is a ship segment.

    Construction enforces the encoding (size, 0/1 values). Fleet legality
    (cell count, ship shapes) is TranscriptValidator's job.
    """

    cells: Tuple[int, ...]
    width: int = GRID_WIDTH

    def __post_init__(self) -> None:
        object.__setattr__(self, "cells", tuple(self.cells))

        if not _is_int(self.width) or self.width <= 0:
            raise InvalidBoard(
                BoardFault.SIZE,
                f"Board width must be a positive integer, got {self.width!r}",
            )
        if len(self.cells) != self.width * self.width:
            raise InvalidBoard(
                BoardFault.SIZE,
                "Board must have width × width cells",
                {"expected": self.width * self.width, "got": len(self.cells)},
            )
        for idx, cell in enumerate(self.cells):
            if not _is_int(cell) or cell not in (0, 1):
                raise InvalidBoard(
                    BoardFault.CELL_VALUE,
                    "Board cells must be 0 or 1",
                    {"index": idx, "value": cell},
                )

    @classmethod
    def from_list(cls, cells: Any, width: int = GRID_WIDTH) -> "Board":
        if not isinstance(cells, (list, tuple)):
            raise TranscriptFormatError(
                f"Board must be an array of cells, got {type(cells).__name__}"
            )
        return cls(tuple(cells), width)

    @classmethod
    def from_coords(
        cls,
        coords: Iterable[Tuple[int, int]],
        width:  int = GRID_WIDTH,
    ) -> "Board":
        """Build a board from (x, y) ship-segment coordinates."""
        cells = [0] * (width * width)
        for x, y in coords:
            if not (0 <= x < width and 0 <= y < width):
                raise InvalidBoard(
                    BoardFault.SIZE,
                    "Ship coordinate outside the grid",
                    {"x": x, "y": y, "width": width},
                )
            cells[y * width + x] = 1
        return cls(tuple(cells), width)

    # ── Geometry ──────────────────────────────────────────────

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.width

    def index(self, x: int, y: int) -> int:
        return y * self.width + x

    def is_occupied(self, x: int, y: int) -> bool:
        return self.cells[self.index(x, y)] == 1

    @property
    def occupied(self) -> FrozenSet[int]:
        return frozenset(i for i, cell in enumerate(self.cells) if cell == 1)

    def neighbors(self, idx: int) -> Iterable[int]:
        """Orthogonal neighbours of a linear index. Diagonals excluded."""
        x, y = idx % self.width, idx // self.width
        for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if self.in_bounds(nx, ny):
                yield self.index(nx, ny)

    # ── Encoding ──────────────────────────────────────────────

    def to_bytes(self) -> bytes:
        """CONTRACT 1 — canonical byte encoding."""
        return bytes(self.cells)

    def to_list(self) -> list:
        return list(self.cells)


# ─────────────────────────────────────────────────────────────
# Move / Transcript
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Move:
    player: int
    x:      int
    y:      int

    @classmethod
    def from_dict(cls, data: Any, index: int = 0) -> "Move":
        _require_keys(data, _MOVE_KEYS, f"moves[{index}]")
        return cls(
            player= _require_int(data["player"], f"moves[{index}].player"),
            x=      _require_int(data["x"],      f"moves[{index}].x"),
            y=      _require_int(data["y"],      f"moves[{index}].y"),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"player": self.player, "x": self.x, "y": self.y}


@dataclass(frozen=True)
class Transcript:
    """
    The complete, immutable record of one match.

    Consumed by the verification pipeline. Never mutated after creation.
    """

    session_id: int
    board_p1:   Board
    board_p2:   Board
    moves:      Tuple[Move, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "moves", tuple(self.moves))

    @classmethod
    def from_dict(cls, data: Any) -> "Transcript":
        """CONTRACT 2 — THE ONLY transcript deserialization path."""
        _require_keys(data, _TRANSCRIPT_KEYS, "Transcript")

        boards = []
        for player, key in ((1, "board_p1"), (2, "board_p2")):
            try:
                boards.append(Board.from_list(data[key]))
            except InvalidBoard as exc:
                raise InvalidBoard(
                    exc.reason, exc.message, {**exc.details, "player": player},
                ) from exc

        raw_moves = data["moves"]
        if not isinstance(raw_moves, list):
            raise TranscriptFormatError(
                f"moves must be an array, got {type(raw_moves).__name__}"
            )

        return cls(
            session_id= _require_uint32(data["session_id"], "session_id"),
            board_p1=   boards[0],
            board_p2=   boards[1],
            moves=      tuple(Move.from_dict(m, i) for i, m in enumerate(raw_moves)),
        )

    @classmethod
    def load(cls, path: Path) -> "Transcript":
        return cls.from_dict(_load_json(path, "Transcript"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "board_p1":   self.board_p1.to_list(),
            "board_p2":   self.board_p2.to_list(),
            "moves":      [m.to_dict() for m in self.moves],
        }

    def board_of(self, player: int) -> Board:
        return self.board_p1 if player == 1 else self.board_p2


# ─────────────────────────────────────────────────────────────
# Replay / Public output
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ReplayResult:
    """Derived from a Transcript by ReplayEngine. Never stored on its own."""
    hits:        Tuple[bool, ...]
    winner:      int
    total_moves: int
    hits_p1:     int = 0
    hits_p2:     int = 0


@dataclass(frozen=True)
class PublicOutput:
    """
    The only artifact that crosses into settlement.
    See CONTRACT 3.
    """

    session_id:    int
    winner:        int
    board_hash_p1: str
    board_hash_p2: str
    total_moves:   int

    @classmethod
    def from_dict(cls, data: Any) -> "PublicOutput":
        _require_keys(data, _PUBLIC_OUTPUT_KEYS, "public_output")
        for key in ("board_hash_p1", "board_hash_p2"):
            if not is_hash_hex(data[key]):
                raise TranscriptFormatError(
                    f"public_output.{key} must be {_HASH_HEX_LENGTH}-char "
                    f"lowercase hex, got {data[key]!r}"
                )
        return cls(
            session_id=    _require_uint32(data["session_id"],  "public_output.session_id"),
            winner=        _require_uint32(data["winner"],      "public_output.winner"),
            board_hash_p1= data["board_hash_p1"],
            board_hash_p2= data["board_hash_p2"],
            total_moves=   _require_uint32(data["total_moves"], "public_output.total_moves"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id":    self.session_id,
            "winner":        self.winner,
            "board_hash_p1": self.board_hash_p1,
            "board_hash_p2": self.board_hash_p2,
            "total_moves":   self.total_moves,
        }


@dataclass(frozen=True)
class ProofArtifact:
    """
    Journal + certificate + decoded public output. See CONTRACT 4.

    seal_hex is None only when produced by a dev-mode backend.
    """

    journal_hex:   str
    seal_hex:      Optional[str]
    public_output: PublicOutput

    @classmethod
    def from_dict(cls, data: Any) -> "ProofArtifact":
        _require_keys(data, _ARTIFACT_KEYS, "Proof artifact")
        journal_hex = _require_hex(data["journal_hex"], "journal_hex")
        if not journal_hex:
            raise TranscriptFormatError("journal_hex must not be empty")
        seal_hex = data["seal_hex"]
        if seal_hex is not None:
            seal_hex = _require_hex(seal_hex, "seal_hex")
        return cls(
            journal_hex=   journal_hex,
            seal_hex=      seal_hex,
            public_output= PublicOutput.from_dict(data["public_output"]),
        )

    @classmethod
    def load(cls, path: Path) -> "ProofArtifact":
        return cls.from_dict(_load_json(path, "Proof artifact"))

    @property
    def journal(self) -> bytes:
        return bytes.fromhex(self.journal_hex)

    @property
    def seal(self) -> Optional[bytes]:
        return bytes.fromhex(self.seal_hex) if self.seal_hex is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "journal_hex":   self.journal_hex,
            "seal_hex":      self.seal_hex,
            "public_output": self.public_output.to_dict(),
        }


# ─────────────────────────────────────────────────────────────
# Session record
# ─────────────────────────────────────────────────────────────

class SessionStatus(str, Enum):
    OPEN                = "open"
    AWAITING_SETTLEMENT = "awaiting_settlement"
    SETTLED             = "settled"
    ABORTED             = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.SETTLED, SessionStatus.ABORTED)


@dataclass(frozen=True)
class SessionRecord:
    """
    One settlement session. Owned by SettlementLedger.

    Frozen: every transition produces a new record via dataclasses.replace,
    so a record handed to a caller can never change underneath them.
    """

    session_id:      int
    player1:         str
    player2:         str
    stake_p1:        int
    stake_p2:        int
    status:          SessionStatus
    board_commit_p1: Optional[str] = None
    board_commit_p2: Optional[str] = None
    winner:          Optional[int] = None
    total_moves:     Optional[int] = None
    journal_hash:    Optional[str] = None
    seal_hash:       Optional[str] = None
    submitter:       Optional[str] = None
    created_at:      Optional[str] = None
    settled_at:      Optional[str] = None
    abort_reason:    Optional[str] = None

    def player_number(self, address: str) -> Optional[int]:
        if address == self.player1:
            return 1
        if address == self.player2:
            return 2
        return None

    def commitment(self, player: int) -> Optional[str]:
        return self.board_commit_p1 if player == 1 else self.board_commit_p2

    @property
    def winner_address(self) -> Optional[str]:
        if self.winner is None:
            return None
        return self.player1 if self.winner == 1 else self.player2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id":      self.session_id,
            "player1":         self.player1,
            "player2":         self.player2,
            "stake_p1":        self.stake_p1,
            "stake_p2":        self.stake_p2,
            "status":          self.status.value,
            "board_commit_p1": self.board_commit_p1,
            "board_commit_p2": self.board_commit_p2,
            "winner":          self.winner,
            "total_moves":     self.total_moves,
            "journal_hash":    self.journal_hash,
            "seal_hash":       self.seal_hash,
            "submitter":       self.submitter,
            "created_at":      self.created_at,
            "settled_at":      self.settled_at,
            "abort_reason":    self.abort_reason,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        """Trusts persisted data. Used by the JSONL store on restore."""
        return cls(
            session_id=      data["session_id"],
            player1=         data["player1"],
            player2=         data["player2"],
            stake_p1=        data["stake_p1"],
            stake_p2=        data["stake_p2"],
            status=          SessionStatus(data["status"]),
            board_commit_p1= data.get("board_commit_p1"),
            board_commit_p2= data.get("board_commit_p2"),
            winner=          data.get("winner"),
            total_moves=     data.get("total_moves"),
            journal_hash=    data.get("journal_hash"),
            seal_hash=       data.get("seal_hash"),
            submitter=       data.get("submitter"),
            created_at=      data.get("created_at"),
            settled_at=      data.get("settled_at"),
            abort_reason=    data.get("abort_reason"),
        )
