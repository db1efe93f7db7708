"""
salvo/cli/prove.py

salvo prove — run the verification pipeline and write a proof artifact.

Usage:
    salvo prove                                   Built-in sample game, dev backend
    salvo prove --input game.json                 Prove a transcript
    salvo prove --input game.json --key k.pem     Sign with an Ed25519 key
    salvo prove --session 42 --proof out.json     Override session id / output

Exit codes:
    0  Artifact written
    1  Transcript rejected (illegal board, replay violation)
    2  Error  (file missing, malformed JSON, bad key)
"""

import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from salvo.attestation.backend import (
    AttestationBackend,
    DevModeBackend,
    Ed25519AttestationBackend,
)
from salvo.cli.output import _Color, emit_error, header, row_info, short_hash, verdict
from salvo.core.crypto import Ed25519KeyManager
from salvo.core.exceptions import InvalidBoard, ReplayError, TranscriptFormatError
from salvo.core.models import UINT32_MAX, Board, Move, Transcript
from salvo.core.pipeline import prove

SAMPLE_SESSION_ID = 1

# Ships at (0,0)-(0,1) and (2,2)-(2,3) on both boards.
_SAMPLE_SHIPS = ((0, 0), (0, 1), (2, 2), (2, 3))

# Player 1 sinks both ships on the 7th move; player 2 only ever misses.
_SAMPLE_MOVES = (
    (1, 0, 0), (2, 3, 0),
    (1, 0, 1), (2, 3, 1),
    (1, 2, 2), (2, 3, 2),
    (1, 2, 3),
)


def sample_transcript(session_id: int = SAMPLE_SESSION_ID) -> Transcript:
    """A complete, legal game that player 1 wins in 7 moves."""
    board = Board.from_coords(_SAMPLE_SHIPS)
    return Transcript(
        session_id= session_id,
        board_p1=   board,
        board_p2=   board,
        moves=      tuple(Move(p, x, y) for p, x, y in _SAMPLE_MOVES),
    )


@click.command(name="prove")
@click.option(
    "--input", "input_path",
    type=click.Path(),
    default=None,
    metavar="FILE",
    help="Transcript JSON. Defaults to the built-in sample game.",
)
@click.option(
    "--session", "session_id",
    type=click.IntRange(1, UINT32_MAX),
    default=None,
    help="Override the transcript's session id.",
)
@click.option(
    "--proof", "proof_path",
    type=click.Path(),
    default="proof.json",
    show_default=True,
    metavar="FILE",
    help="Where to write the proof artifact.",
)
@click.option(
    "--key", "key_path",
    type=click.Path(),
    default=None,
    metavar="PEM",
    help="Ed25519 private key. Without it the dev backend emits a null seal.",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def prove_command(
    input_path: Optional[str],
    session_id: Optional[int],
    proof_path: str,
    key_path:   Optional[str],
    no_color:   bool,
) -> None:
    """
    Validate, replay and attest a match transcript.

    \b
    Examples:
      salvo prove
      salvo prove --input game.json --key authority.pem --proof proof.json
    """
    _Color.configure(not no_color)

    # ── Load ──────────────────────────────────────────────────
    try:
        transcript = Transcript.load(Path(input_path)) if input_path else sample_transcript()
    except (FileNotFoundError, TranscriptFormatError) as e:
        emit_error("salvo_prove", str(e))
        sys.exit(2)
    except InvalidBoard as e:
        emit_error("salvo_prove", f"{e.reason.value}: {e}")
        sys.exit(1)

    if session_id is not None:
        transcript = replace(transcript, session_id=session_id)

    if transcript.session_id == 0:
        emit_error("salvo_prove", f"Session id 0 can never be settled; use 1..{UINT32_MAX}")
        sys.exit(2)

    # ── Backend ───────────────────────────────────────────────
    backend: AttestationBackend
    if key_path:
        try:
            backend = Ed25519AttestationBackend.from_key_manager(
                Ed25519KeyManager.from_file(Path(key_path))
            )
        except (FileNotFoundError, ValueError) as e:
            emit_error("salvo_prove", f"Cannot load key: {e}")
            sys.exit(2)
    else:
        backend = DevModeBackend()

    # ── Prove ─────────────────────────────────────────────────
    try:
        artifact = prove(transcript, backend)
    except InvalidBoard as e:
        emit_error("salvo_prove", f"{e.reason.value}: {e}")
        sys.exit(1)
    except ReplayError as e:
        emit_error("salvo_prove", f"{e.fault.value}: {e}")
        sys.exit(1)

    out = Path(proof_path)
    try:
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(artifact.to_dict(), indent=2), encoding="utf-8")
    except OSError as e:
        emit_error("salvo_prove", f"Cannot write proof: {e}")
        sys.exit(2)

    # ── Output ────────────────────────────────────────────────
    output = artifact.public_output
    header("Proof")
    click.echo(row_info("Transcript", input_path or "built-in sample"))
    click.echo(row_info("Session", str(output.session_id)))
    click.echo(row_info("Winner", f"player {output.winner}"))
    click.echo(row_info("Total moves", str(output.total_moves)))
    click.echo(row_info("Board hash p1", _Color.cyan(short_hash(output.board_hash_p1))))
    click.echo(row_info("Board hash p2", _Color.cyan(short_hash(output.board_hash_p2))))
    click.echo(row_info("Backend", _Color.cyan(short_hash(backend.identifier))))
    if artifact.seal_hex is None:
        click.echo(row_info("Seal", _Color.yellow("none (dev mode, settle with a dev ledger only)")))
    else:
        click.echo(row_info("Seal", short_hash(artifact.seal_hex)))
    click.echo(row_info("Proof", str(out)))
    click.echo()
    verdict(True, f"PROVED  ·  player {output.winner} wins in {output.total_moves} moves", "")
