"""
salvo/ledger/store.py

Session record stores.

SessionStore       in-memory, thread-safe. The default.
JsonlSessionStore  append-only JSONL, hash-chained, survives restarts.

JSONL contract: put() MUST, in this exact order:
  1. Acquire lock
  2. Build line  {"sequence": n, "prev_hash": h, "record": record.to_dict()}
  3. Append line to file       must succeed before state advances
  4. Advance state             sequence, prev_hash, in-memory record

    prev_hash(line 0)   = GENESIS_HASH ("0" * 64)
    prev_hash(line n+1) = SHA-256(JCS(line n))

The store never decides whether a transition is legal. That is the
SettlementLedger's job; the store only keeps what it is handed.
"""

import json
import logging
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from salvo.core.canonical import canonical_hash
from salvo.core.exceptions import StoreError
from salvo.core.models import SessionRecord

logger = logging.getLogger(__name__)

GENESIS_HASH = "0" * 64


class SessionStore:
    """In-memory session store. Records are frozen, so sharing them is safe."""

    def __init__(self) -> None:
        self._lock:    threading.Lock            = threading.Lock()
        self._records: Dict[int, SessionRecord] = {}

    def get(self, session_id: int) -> Optional[SessionRecord]:
        with self._lock:
            return self._records.get(session_id)

    def put(self, record: SessionRecord) -> None:
        with self._lock:
            self._records[record.session_id] = record

    def records(self) -> List[SessionRecord]:
        with self._lock:
            return [self._records[k] for k in sorted(self._records)]

    def __contains__(self, session_id: int) -> bool:
        with self._lock:
            return session_id in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class JsonlSessionStore(SessionStore):
    """
    File-backed store. Every put() appends one chained line; the latest
    line for a session id wins on restore.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        self._sequence:  int = 0
        self._last_hash: str = GENESIS_HASH

        self._restore_state()

    # ── Public API ────────────────────────────────────────────

    def put(self, record: SessionRecord) -> None:
        with self._lock:
            line = {
                "sequence":  self._sequence,
                "prev_hash": self._last_hash,
                "record":    record.to_dict(),
            }
            self._append(line)

            self._sequence  += 1
            self._last_hash  = canonical_hash(line)
            self._records[record.session_id] = record

    def verify_chain(self) -> bool:
        """
        Recompute the full chain from genesis.

        Returns True if every line parses, sequences run 0..n-1 with no gap,
        and every prev_hash matches. False on any violation.
        """
        expected_prev = GENESIS_HASH
        try:
            for i, line in self._iter_lines():
                if line.get("sequence") != i or line.get("prev_hash") != expected_prev:
                    return False
                SessionRecord.from_dict(line["record"])
                expected_prev = canonical_hash(line)
        except (ValueError, KeyError, TypeError):
            return False
        return True

    @property
    def head_hash(self) -> str:
        """Hash a next line would reference. Suitable for external anchoring."""
        with self._lock:
            return self._last_hash

    # ── Internal ──────────────────────────────────────────────

    def _iter_lines(self) -> Iterator[Tuple[int, Dict[str, Any]]]:
        if not self.path.exists():
            return
        with open(self.path, "r", encoding="utf-8") as f:
            n = 0
            for raw in f:
                raw = raw.strip()
                if not raw:
                    continue
                yield n, json.loads(raw)
                n += 1

    def _restore_state(self) -> None:
        """
        Rebuild records, sequence and head hash from an existing file.

        A corrupted LAST line (typically a torn write) is cut off the file
        with a RuntimeWarning, so the next put() starts on a clean line.
        Corruption or a chain break anywhere else is a StoreError: the
        history can no longer be trusted.
        """
        if not self.path.exists():
            return

        with open(self.path, "rb") as f:
            raw_lines = f.readlines()

        last = max((i for i, raw in enumerate(raw_lines) if raw.strip()), default=-1)
        good_end = 0
        n = 0

        for i, raw in enumerate(raw_lines):
            if not raw.strip():
                good_end += len(raw)
                continue
            try:
                line   = json.loads(raw.decode("utf-8"))
                record = SessionRecord.from_dict(line["record"])
            except (ValueError, KeyError, TypeError) as exc:
                if i == last:
                    warnings.warn(
                        f"JsonlSessionStore: dropped unreadable last line of "
                        f"{self.path}: {exc}",
                        RuntimeWarning,
                        stacklevel=3,
                    )
                    self._truncate(good_end)
                    break
                raise StoreError(
                    f"Corrupt session store line {n + 1}", {"path": str(self.path)}
                ) from exc

            if line.get("sequence") != n or line.get("prev_hash") != self._last_hash:
                raise StoreError(
                    f"Session store chain break at line {n + 1}",
                    {"path": str(self.path)},
                )

            self._records[record.session_id] = record
            self._sequence  = n + 1
            self._last_hash = canonical_hash(line)
            good_end += len(raw)
            n += 1
        else:
            if raw_lines and not raw_lines[-1].endswith(b"\n"):
                self._truncate(good_end)

        logger.info(
            "restored %d session(s) from %s (%d line(s))",
            len(self._records), self.path, self._sequence,
        )

    def _truncate(self, size: int) -> None:
        """Cut the file to ``size`` bytes and leave it ending on a newline."""
        try:
            with open(self.path, "r+b") as f:
                f.truncate(size)
                if size:
                    f.seek(size - 1)
                    if f.read(1) != b"\n":
                        f.write(b"\n")
        except OSError as exc:
            raise StoreError(f"Session store repair failed: {exc}") from exc

    def _append(self, line: Dict[str, Any]) -> None:
        """State MUST NOT advance if this raises."""
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(line) + "\n")
                f.flush()
        except OSError as exc:
            raise StoreError(f"Session store write failed: {exc}") from exc
