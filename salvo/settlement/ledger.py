"""
Settlement ledger: a per-session state machine fed by verified public outputs.

    start ──► OPEN ──commit_board×2──► AWAITING_SETTLEMENT ──submit_result──► SETTLED
               │                              │
               └──────────── abort ───────────┴──────────────────────────────► ABORTED

SETTLED and ABORTED are terminal.

submit_result() evaluates EVERY check before the first write:
    1. SessionNotFound        6. CommitmentMismatch
    2. AlreadySettled         7. WinnerOutOfRange
    3. SessionAborted         8. InvalidTotalMoves
    4. NotPlayer              9. InvalidProofMaterial
    5. SessionMismatch       10. InvalidAttestation
A rejected or crashed submission leaves the record exactly as it was.

Concurrency: every mutation of a session runs under that session's lock,
so "is it settled?" and "mark it settled" are one atomic step. Locks are
per session id; different sessions never wait on each other.
"""

import logging
import threading
import warnings
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from salvo.attestation.backend import AttestationBackend
from salvo.core.canonical import sha256_hex
from salvo.core.commitment import encode_journal, journal_digest
from salvo.core.config import LedgerConfig, SalvoConfigError, init_strict_config
from salvo.core.exceptions import (
    AlreadySettled,
    CommitmentLocked,
    CommitmentMismatch,
    InvalidAttestation,
    InvalidProofMaterial,
    InvalidSessionParameters,
    InvalidTotalMoves,
    NotPlayer,
    SessionAborted,
    SessionAlreadyExists,
    SessionMismatch,
    SessionNotFound,
    SettlementError,
    WinnerOutOfRange,
)
from salvo.core.models import (
    PLAYERS,
    UINT32_MAX,
    PublicOutput,
    SessionRecord,
    SessionStatus,
    is_hash_hex,
)
from salvo.core.time import utc_timestamp
from salvo.ledger.store import JsonlSessionStore, SessionStore

logger = logging.getLogger(__name__)


class SettlementHooks:
    """
    Integration points with the external ledger layer (stake escrow).

    Each hook runs inside the session's exclusive section, BEFORE the new
    record is stored. If a hook raises, the transition does not happen and
    the exception reaches the caller.
    """

    def on_start(self, record: SessionRecord) -> None:
        """Stakes are locked for record.player1 / record.player2."""

    def on_finalize(self, record: SessionRecord) -> None:
        """Stakes are released to record.winner_address. Called once per session."""

    def on_abort(self, record: SessionRecord) -> None:
        """Stakes are returned to both players."""


class SettlementLedger:
    """
    Usage:
        ledger = SettlementLedger(backend)
        ledger.start(7, "alice", "bob", 100, 100,
                     board_commit_p1=h1, board_commit_p2=h2)
        winner = ledger.submit_result(7, "alice", public_output, certificate)
        record = ledger.get_session(7)
    """

    def __init__(
        self,
        backend: AttestationBackend,
        config:  Optional[LedgerConfig]   = None,
        store:   Optional[SessionStore]   = None,
        hooks:   Optional[SettlementHooks] = None,
    ) -> None:
        self.config = config or init_strict_config()

        if not backend.production and not self.config.is_dev:
            raise SalvoConfigError(
                f"{backend!r} is a development backend; "
                "a strict-mode ledger refuses it"
            )
        if self.config.is_dev:
            warnings.warn(
                "SettlementLedger running in DEV mode: null seals and "
                "accept-all backends are accepted. Never settle real stakes.",
                RuntimeWarning,
                stacklevel=2,
            )

        if store is None:
            store = (
                JsonlSessionStore(self.config.store_path)
                if self.config.store_path else SessionStore()
            )

        self.backend = backend
        self.store   = store
        self.hooks   = hooks or SettlementHooks()

        self._registry_lock: threading.Lock       = threading.Lock()
        self._session_locks: Dict[int, List[Any]] = {}

    # ── Transitions ───────────────────────────────────────────

    def start(
        self,
        session_id:      int,
        player1:         str,
        player2:         str,
        stake_p1:        int,
        stake_p2:        int,
        board_commit_p1: Optional[str] = None,
        board_commit_p2: Optional[str] = None,
    ) -> SessionRecord:
        _check_start_params(
            session_id, player1, player2, stake_p1, stake_p2,
            board_commit_p1, board_commit_p2,
        )

        with self._session_lock(session_id):
            if self.store.get(session_id) is not None:
                raise SessionAlreadyExists(
                    f"Session {session_id} already exists",
                    {"session_id": session_id},
                )

            both = board_commit_p1 is not None and board_commit_p2 is not None
            record = SessionRecord(
                session_id=      session_id,
                player1=         player1,
                player2=         player2,
                stake_p1=        stake_p1,
                stake_p2=        stake_p2,
                status=          (
                    SessionStatus.AWAITING_SETTLEMENT if both else SessionStatus.OPEN
                ),
                board_commit_p1= board_commit_p1,
                board_commit_p2= board_commit_p2,
                created_at=      utc_timestamp(),
            )

            self.hooks.on_start(record)
            self.store.put(record)

        logger.info(
            "session %d started: %s vs %s (status=%s)",
            session_id, player1, player2, record.status.value,
        )
        return record

    def commit_board(self, session_id: int, player: int, board_hash: str) -> SessionRecord:
        """Attach one player's board commitment. A set commitment never changes."""
        if player not in PLAYERS:
            raise InvalidSessionParameters(
                f"player must be 1 or 2, got {player!r}"
            )
        if not is_hash_hex(board_hash):
            raise InvalidSessionParameters(
                "board_hash must be a 64-char lowercase hex digest",
                {"board_hash": board_hash},
            )

        with self._session_lock(session_id):
            record = self._require_live(session_id)

            if record.commitment(player) is not None:
                raise CommitmentLocked(
                    f"Session {session_id}: player {player} board already committed",
                    {"session_id": session_id, "player": player},
                )

            field   = "board_commit_p1" if player == 1 else "board_commit_p2"
            updated = replace(record, **{field: board_hash})
            if updated.board_commit_p1 is not None and updated.board_commit_p2 is not None:
                updated = replace(updated, status=SessionStatus.AWAITING_SETTLEMENT)

            self.store.put(updated)

        logger.info(
            "session %d: player %d committed board %s... (status=%s)",
            session_id, player, board_hash[:16], updated.status.value,
        )
        return updated

    def submit_result(
        self,
        session_id:    int,
        submitter:     str,
        public_output: Union[PublicOutput, Dict[str, Any]],
        certificate:   Optional[bytes],
        journal:       Optional[bytes] = None,
    ) -> int:
        """
        Settle a session from a verified public output.

        public_output may be a PublicOutput or its wire dict; a dict is
        parsed strictly (TranscriptFormatError on any deviation).
        journal, when given, must be the canonical encoding of public_output.

        Returns the winner (1 or 2). Raises a SettlementError subclass on
        rejection. Exceptions raised by the backend itself propagate
        untouched, with the record unchanged, so the caller may retry.
        """
        if not isinstance(public_output, PublicOutput):
            public_output = PublicOutput.from_dict(public_output)

        with self._session_lock(session_id):
            try:
                record, expected_journal = self._check_submission(
                    session_id, submitter, public_output, certificate, journal,
                )
            except SettlementError as exc:
                logger.warning("session %d: submission rejected: %s", session_id, exc)
                raise

            settled = replace(
                record,
                status=       SessionStatus.SETTLED,
                winner=       public_output.winner,
                total_moves=  public_output.total_moves,
                journal_hash= sha256_hex(expected_journal),
                seal_hash=    sha256_hex(certificate) if certificate else None,
                submitter=    submitter,
                settled_at=   utc_timestamp(),
            )

            self.hooks.on_finalize(settled)
            self.store.put(settled)

        logger.info(
            "session %d settled: winner=%d (%s) total_moves=%d",
            session_id, settled.winner, settled.winner_address, settled.total_moves,
        )
        return settled.winner

    def submit_artifact(self, session_id: int, submitter: str, artifact) -> int:
        """submit_result() for a ProofArtifact; its journal must match its public output."""
        return self.submit_result(
            session_id,
            submitter,
            artifact.public_output,
            artifact.seal,
            journal=artifact.journal,
        )

    def abort(self, session_id: int, reason: str = "cancelled") -> SessionRecord:
        """External cancellation. A cancelled session can never settle."""
        with self._session_lock(session_id):
            record  = self._require_live(session_id)
            aborted = replace(record, status=SessionStatus.ABORTED, abort_reason=reason)

            self.hooks.on_abort(aborted)
            self.store.put(aborted)

        logger.info("session %d aborted: %s", session_id, reason)
        return aborted

    # ── Queries ───────────────────────────────────────────────

    def get_session(self, session_id: int) -> SessionRecord:
        record = self.store.get(session_id)
        if record is None:
            raise SessionNotFound(
                f"Session {session_id} not found", {"session_id": session_id}
            )
        return record

    def stats(self) -> Dict[str, Any]:
        by_status: Dict[str, int] = {}
        records = self.store.records()
        for record in records:
            by_status[record.status.value] = by_status.get(record.status.value, 0) + 1
        return {"total": len(records), "by_status": by_status}

    # ── Internal ──────────────────────────────────────────────

    @contextmanager
    def _session_lock(self, session_id: int) -> Iterator[None]:
        """
        Hold the lock for ``session_id``. The registry entry lives only while
        some caller holds or waits on it, so unknown and finished ids leave
        nothing behind.
        """
        with self._registry_lock:
            entry = self._session_locks.get(session_id)
            if entry is None:
                entry = self._session_locks[session_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._registry_lock:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._session_locks[session_id]

    def _require_live(self, session_id: int) -> SessionRecord:
        record = self.store.get(session_id)
        if record is None:
            raise SessionNotFound(
                f"Session {session_id} not found", {"session_id": session_id}
            )
        if record.status == SessionStatus.SETTLED:
            raise AlreadySettled(
                f"Session {session_id} is already settled",
                {"session_id": session_id, "winner": record.winner},
            )
        if record.status == SessionStatus.ABORTED:
            raise SessionAborted(
                f"Session {session_id} was aborted",
                {"session_id": session_id, "reason": record.abort_reason},
            )
        return record

    def _check_submission(
        self,
        session_id:    int,
        submitter:     str,
        output:        PublicOutput,
        certificate:   Optional[bytes],
        journal:       Optional[bytes],
    ) -> Tuple[SessionRecord, bytes]:
        """Run checks 1-10 in order. Returns the live record and canonical journal. Never writes."""
        record = self._require_live(session_id)

        if record.player_number(submitter) is None:
            raise NotPlayer(
                f"Submitter {submitter!r} is not a player in session {session_id}",
                {"session_id": session_id},
            )

        if output.session_id != session_id:
            raise SessionMismatch(
                "Public output belongs to another session",
                {"session_id": session_id, "output_session_id": output.session_id},
            )

        for player, got in ((1, output.board_hash_p1), (2, output.board_hash_p2)):
            committed = record.commitment(player)
            if committed is None or committed != got:
                raise CommitmentMismatch(
                    f"Board hash for player {player} does not match the session commitment",
                    {
                        "player":    player,
                        "committed": committed,
                        "got":       got,
                    },
                )

        if output.winner not in PLAYERS:
            raise WinnerOutOfRange(
                f"Winner must be 1 or 2, got {output.winner}",
            )

        if not 0 < output.total_moves <= UINT32_MAX:
            raise InvalidTotalMoves(
                f"total_moves must be positive, got {output.total_moves}",
            )

        expected_journal = encode_journal(output)
        if journal is not None and journal != expected_journal:
            raise InvalidProofMaterial(
                "Journal does not encode the submitted public output",
            )
        if not certificate and not self.config.allow_null_seal:
            raise InvalidProofMaterial(
                "A non-empty certificate is required outside dev mode",
            )

        if not self.backend.verify(
            certificate,
            self.backend.identifier,
            journal_digest(expected_journal),
        ):
            raise InvalidAttestation(
                "Attestation backend rejected the certificate",
                {"backend": self.backend.identifier[:16] + "..."},
            )

        return record, expected_journal


def _check_start_params(
    session_id:      Any,
    player1:         Any,
    player2:         Any,
    stake_p1:        Any,
    stake_p2:        Any,
    board_commit_p1: Any,
    board_commit_p2: Any,
) -> None:
    if (
        not isinstance(session_id, int) or isinstance(session_id, bool)
        or not 0 < session_id <= UINT32_MAX
    ):
        raise InvalidSessionParameters(
            f"session_id must be in [1, {UINT32_MAX}], got {session_id!r}"
        )
    for name, player in (("player1", player1), ("player2", player2)):
        if not isinstance(player, str) or not player:
            raise InvalidSessionParameters(f"{name} must be a non-empty string")
    if player1 == player2:
        raise InvalidSessionParameters(
            "Cannot play against yourself: player1 and player2 must differ"
        )
    for name, stake in (("stake_p1", stake_p1), ("stake_p2", stake_p2)):
        if not isinstance(stake, int) or isinstance(stake, bool) or stake < 0:
            raise InvalidSessionParameters(
                f"{name} must be a non-negative integer, got {stake!r}"
            )
    for name, commit in (("board_commit_p1", board_commit_p1), ("board_commit_p2", board_commit_p2)):
        if commit is not None and not is_hash_hex(commit):
            raise InvalidSessionParameters(
                f"{name} must be a 64-char lowercase hex digest",
                {name: commit},
            )
