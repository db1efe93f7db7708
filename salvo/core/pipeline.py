"""
salvo/core/pipeline.py

Verification pipeline. MUST run, in this exact order:
  1. TranscriptValidator.validate_transcript     both fleets legal
  2. ReplayEngine.replay_transcript              turns, shots, winner
  3. CommitmentBinder.bind                       board hashes + public output
  4. (prove only) backend.attest(journal)        certificate over the journal

Any failure in 1-3 propagates unchanged. A transcript is never partially
accepted. Stages share no mutable state, so one pipeline instance can
serve any number of threads.
"""

import logging
from typing import Optional

from salvo.attestation.backend import AttestationBackend
from salvo.core.commitment import CommitmentBinder
from salvo.core.models import ProofArtifact, PublicOutput, Transcript
from salvo.core.replay import ReplayEngine
from salvo.core.validator import TranscriptValidator

logger = logging.getLogger(__name__)


class VerificationPipeline:

    def __init__(
        self,
        validator: Optional[TranscriptValidator] = None,
        engine:    Optional[ReplayEngine]        = None,
        binder:    Optional[CommitmentBinder]    = None,
    ) -> None:
        self.validator = validator or TranscriptValidator()
        self.engine    = engine or ReplayEngine()
        self.binder    = binder or CommitmentBinder()

    def verify(self, transcript: Transcript) -> PublicOutput:
        """Steps 1-3. Returns the session-bound public output."""
        self.validator.validate_transcript(transcript)
        result = self.engine.replay_transcript(transcript)
        output = self.binder.bind(
            transcript.session_id,
            transcript.board_p1,
            transcript.board_p2,
            result,
        )
        logger.debug(
            "session %d verified: winner=%d total_moves=%d",
            output.session_id, output.winner, output.total_moves,
        )
        return output

    def prove(
        self,
        transcript: Transcript,
        backend:    AttestationBackend,
    ) -> ProofArtifact:
        """Steps 1-4. Returns the artifact handed to settlement."""
        output  = self.verify(transcript)
        journal = self.binder.journal(output)
        seal    = backend.attest(journal)

        if seal is None:
            logger.warning(
                "session %d: backend %r produced no certificate (dev mode only)",
                output.session_id, backend,
            )
        else:
            logger.info(
                "session %d attested by backend %s...",
                output.session_id, backend.identifier[:16],
            )

        return ProofArtifact(
            journal_hex=   journal.hex(),
            seal_hex=      seal.hex() if seal is not None else None,
            public_output= output,
        )


_default_pipeline = VerificationPipeline()


def verify_transcript(transcript: Transcript) -> PublicOutput:
    return _default_pipeline.verify(transcript)


def prove(transcript: Transcript, backend: AttestationBackend) -> ProofArtifact:
    return _default_pipeline.prove(transcript, backend)
