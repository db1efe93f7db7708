"""
salvo/cli/verify.py

salvo verify — check a proof artifact before it goes to settlement.

Usage:
    salvo verify proof.json --public-key HEX                  Certificate check
    salvo verify proof.json --public-key HEX --transcript g   + independent replay
    salvo verify proof.json --dev                             Dev artifact (null seal)
    salvo verify proof.json --dev --format json               Machine-readable JSON
    salvo verify proof.json --public-key HEX --quiet          Exit code only

Checks, in order:
    1. Journal     journal bytes == canonical encoding of public_output
    2. Certificate backend.verify(seal, identifier, SHA-256(journal))
    3. Replay      (--transcript) replaying the transcript reproduces
                   public_output exactly

Exit codes:
    0  Artifact valid
    1  Artifact invalid
    2  Error  (file missing, malformed JSON, bad options)
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from salvo.attestation.backend import (
    AttestationBackend,
    DevModeBackend,
    Ed25519AttestationBackend,
)
from salvo.cli.output import (
    _Color,
    emit_error,
    emit_json,
    header,
    row_fail,
    row_info,
    row_ok,
    short_hash,
    verdict,
)
from salvo.core.commitment import encode_journal, journal_digest
from salvo.core.exceptions import InvalidBoard, ReplayError, TranscriptFormatError
from salvo.core.models import ProofArtifact, Transcript
from salvo.core.pipeline import verify_transcript

_TOOL = "salvo_verify"


@click.command(name="verify")
@click.argument("artifact", type=click.Path(exists=False))
@click.option(
    "--transcript", "transcript_path",
    type=click.Path(),
    default=None,
    metavar="FILE",
    help="Replay this transcript and compare with the artifact's public output.",
)
@click.option(
    "--public-key",
    type=str,
    default=None,
    metavar="HEX",
    help="Ed25519 public key of the attesting backend.",
)
@click.option(
    "--dev",
    is_flag=True,
    default=False,
    help="Accept a dev-mode artifact. The certificate is not checked.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(
    artifact:        str,
    transcript_path: Optional[str],
    public_key:      Optional[str],
    dev:             bool,
    fmt:             str,
    quiet:           bool,
    no_color:        bool,
) -> None:
    """
    Verify a proof artifact: journal, certificate and (optionally) replay.

    ARTIFACT is the JSON file written by `salvo prove`.
    """
    _Color.configure(not no_color)

    # ── Options ───────────────────────────────────────────────
    if dev == bool(public_key):
        emit_error(_TOOL, "Pass exactly one of --public-key or --dev", fmt, quiet)
        sys.exit(2)

    backend: AttestationBackend
    if dev:
        backend = DevModeBackend()
    else:
        try:
            backend = Ed25519AttestationBackend(public_key)
        except ValueError as e:
            emit_error(_TOOL, str(e), fmt, quiet)
            sys.exit(2)

    # ── Load ──────────────────────────────────────────────────
    try:
        proof = ProofArtifact.load(Path(artifact))
    except (FileNotFoundError, TranscriptFormatError) as e:
        emit_error(_TOOL, str(e), fmt, quiet)
        sys.exit(2)

    checks: List[Dict[str, Any]] = []

    # ── 1. Journal ────────────────────────────────────────────
    expected_journal = encode_journal(proof.public_output)
    journal_ok = proof.journal == expected_journal
    checks.append({
        "check":  "journal",
        "valid":  journal_ok,
        "detail": "journal encodes public_output" if journal_ok
                  else "journal does not encode public_output",
    })

    # ── 2. Certificate ────────────────────────────────────────
    cert_ok = backend.verify(
        proof.seal, backend.identifier, journal_digest(proof.journal),
    )
    if dev:
        cert_detail = "dev mode: certificate not checked"
    elif cert_ok:
        cert_detail = f"valid under backend {short_hash(backend.identifier)}"
    elif proof.seal is None:
        cert_detail = "no certificate (dev-mode artifact)"
    else:
        cert_detail = "certificate rejected"
    checks.append({"check": "certificate", "valid": cert_ok, "detail": cert_detail})

    # ── 3. Replay ─────────────────────────────────────────────
    if transcript_path:
        try:
            transcript = Transcript.load(Path(transcript_path))
        except (FileNotFoundError, TranscriptFormatError) as e:
            emit_error(_TOOL, str(e), fmt, quiet)
            sys.exit(2)
        except InvalidBoard as e:
            transcript = None
            checks.append({
                "check": "replay", "valid": False,
                "detail": f"{e.reason.value}: {e}",
            })

        if transcript is not None:
            try:
                replayed = verify_transcript(transcript)
            except InvalidBoard as e:
                checks.append({
                    "check": "replay", "valid": False,
                    "detail": f"{e.reason.value}: {e}",
                })
            except ReplayError as e:
                checks.append({
                    "check": "replay", "valid": False,
                    "detail": f"{e.fault.value}: {e}",
                })
            else:
                same = replayed == proof.public_output
                checks.append({
                    "check":  "replay",
                    "valid":  same,
                    "detail": "transcript reproduces public_output" if same
                              else "transcript yields a different public_output",
                })

    valid = all(c["valid"] for c in checks)

    # ── Output ────────────────────────────────────────────────
    if quiet:
        sys.exit(0 if valid else 1)

    if fmt == "json":
        emit_json(_TOOL, {
            "artifact":      artifact,
            "valid":         valid,
            "dev_mode":      dev,
            "backend":       backend.identifier,
            "public_output": proof.public_output.to_dict(),
            "checks":        checks,
        })
    else:
        _output_human(artifact, proof, backend, checks, valid)

    sys.exit(0 if valid else 1)


def _output_human(
    artifact: str,
    proof:    ProofArtifact,
    backend:  AttestationBackend,
    checks:   List[Dict[str, Any]],
    valid:    bool,
) -> None:
    output = proof.public_output
    header("Proof Verification")

    click.echo(row_info("Artifact", artifact))
    click.echo(row_info("Session", str(output.session_id)))
    click.echo(row_info("Winner", f"player {output.winner}"))
    click.echo(row_info("Total moves", str(output.total_moves)))
    click.echo(row_info("Backend", _Color.cyan(short_hash(backend.identifier))))
    click.echo()

    for c in checks:
        row = row_ok if c["valid"] else row_fail
        click.echo(row(c["check"].capitalize(), c["detail"]))
    click.echo()

    failed = sum(1 for c in checks if not c["valid"])
    verdict(
        valid,
        f"VALID  ·  {len(checks)} check(s) passed",
        f"INVALID  ·  {failed} of {len(checks)} check(s) failed",
    )
