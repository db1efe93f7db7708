"""
salvo/__init__.py

salvo: match-integrity verification and exactly-once settlement for
two-player hidden-board games.

Transcript ─► validate ─► replay ─► bind ─► attest ─► settle
"""

__version__ = "0.1.0"

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from salvo.core.models import (
    Board,
    Move,
    ProofArtifact,
    PublicOutput,
    ReplayResult,
    SessionRecord,
    SessionStatus,
    Transcript,
)
from salvo.core.commitment import BOARD_HASH_SCHEME, board_hash, encode_journal
from salvo.core.pipeline import VerificationPipeline, prove, verify_transcript
from salvo.core.crypto import Ed25519KeyManager
from salvo.attestation.backend import (
    AttestationBackend,
    DevModeBackend,
    Ed25519AttestationBackend,
)
from salvo.settlement.ledger import SettlementHooks, SettlementLedger

__all__ = [
    # Data model
    "Board",
    "Move",
    "Transcript",
    "ReplayResult",
    "PublicOutput",
    "ProofArtifact",
    "SessionRecord",
    "SessionStatus",
    # Pipeline
    "VerificationPipeline",
    "verify_transcript",
    "prove",
    "board_hash",
    "encode_journal",
    # Attestation
    "AttestationBackend",
    "DevModeBackend",
    "Ed25519AttestationBackend",
    "Ed25519KeyManager",
    # Settlement
    "SettlementLedger",
    "SettlementHooks",
    # Constants
    "BOARD_HASH_SCHEME",
]
