"""
salvo/cli/session.py

salvo session — drive a file-backed settlement ledger.

Usage:
    salvo session start 7 alice bob --stake-p1 100 --stake-p2 100
    salvo session commit 7 1 <board-hash>
    salvo session submit 7 alice proof.json
    salvo session abort 7 --reason timeout
    salvo session show 7 --format json

Configuration, most specific first:
    --store / --dev / --public-key      command line
    --config FILE                       YAML (mode, allow_null_seal, store_path)
    SALVO_MODE / SALVO_STORE            environment

Exit codes:
    0  Transition recorded / session shown
    1  Rejected by the ledger (the error kind is printed)
    2  Error  (file missing, malformed input, bad configuration)
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
from salvo.cli.output import _Color, emit_error, emit_json, header, row_info, row_ok
from salvo.core.config import (
    LedgerConfig,
    SalvoConfigError,
    SettlementMode,
    config_from_env,
    init_dev_config,
    load_config,
)
from salvo.core.exceptions import SettlementError, StoreError, TranscriptFormatError
from salvo.core.models import SessionRecord, ProofArtifact
from salvo.settlement.ledger import SettlementLedger

_TOOL = "salvo_session"
DEFAULT_STORE = "sessions.jsonl"


@click.group(name="session")
@click.option(
    "--store",
    type=click.Path(),
    default=None,
    metavar="FILE",
    help=f"Session store (JSONL). Defaults to config, then ./{DEFAULT_STORE}.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(),
    default=None,
    metavar="FILE",
    help="YAML ledger configuration.",
)
@click.option("--dev", is_flag=True, default=False, help="Dev mode: accept null seals.")
@click.option(
    "--public-key",
    type=str,
    default=None,
    envvar="SALVO_PUBLIC_KEY",
    metavar="HEX",
    help="Ed25519 public key of the attestation backend (env SALVO_PUBLIC_KEY).",
)
@click.pass_context
def session_group(
    ctx:         click.Context,
    store:       Optional[str],
    config_path: Optional[str],
    dev:         bool,
    public_key:  Optional[str],
) -> None:
    """Start, commit, settle and inspect settlement sessions."""
    ctx.ensure_object(dict)
    ctx.obj["store"]       = store
    ctx.obj["config_path"] = config_path
    ctx.obj["dev"]         = dev
    ctx.obj["public_key"]  = public_key


def _open_ledger(ctx: click.Context) -> SettlementLedger:
    """Build the ledger from group options. Exits with code 2 on bad configuration."""
    opts = ctx.obj
    try:
        config: LedgerConfig
        if opts["dev"]:
            config = init_dev_config()
        elif opts["config_path"]:
            config = load_config(Path(opts["config_path"]))
        else:
            config = config_from_env()

        if opts["store"]:
            config = replace(config, store_path=Path(opts["store"]))
        elif config.store_path is None:
            config = replace(config, store_path=Path(DEFAULT_STORE))

        backend: AttestationBackend
        if opts["public_key"]:
            backend = Ed25519AttestationBackend(opts["public_key"])
        elif config.mode == SettlementMode.DEV:
            backend = DevModeBackend()
        else:
            raise SalvoConfigError(
                "Strict mode needs the backend's --public-key (or SALVO_PUBLIC_KEY)"
            )

        return SettlementLedger(backend, config)
    except (SalvoConfigError, StoreError, FileNotFoundError, ValueError) as e:
        emit_error(_TOOL, str(e))
        sys.exit(2)


def _rejected(exc: SettlementError) -> None:
    emit_error(_TOOL, f"{exc.kind}: {exc}")
    sys.exit(1)


def _store_failed(exc: StoreError) -> None:
    emit_error(_TOOL, f"Session store error: {exc}")
    sys.exit(2)


def _show_record(record: SessionRecord, title: str) -> None:
    header(title)
    click.echo(row_info("Session", str(record.session_id)))
    click.echo(row_info("Status", _Color.bold(record.status.value)))
    click.echo(row_info("Player 1", f"{record.player1}  (stake {record.stake_p1})"))
    click.echo(row_info("Player 2", f"{record.player2}  (stake {record.stake_p2})"))
    click.echo(row_info("Commit p1", record.board_commit_p1 or _Color.dim("pending")))
    click.echo(row_info("Commit p2", record.board_commit_p2 or _Color.dim("pending")))
    if record.winner is not None:
        click.echo(row_ok("Winner", f"player {record.winner} ({record.winner_address})"))
        click.echo(row_info("Total moves", str(record.total_moves)))
        click.echo(row_info("Submitter", str(record.submitter)))
        click.echo(row_info("Settled at", str(record.settled_at)))
    if record.abort_reason is not None:
        click.echo(row_info("Aborted", record.abort_reason))
    click.echo()


@session_group.command(name="start")
@click.argument("session_id", type=int)
@click.argument("player1")
@click.argument("player2")
@click.option("--stake-p1", type=int, default=0, show_default=True)
@click.option("--stake-p2", type=int, default=0, show_default=True)
@click.option("--commit-p1", type=str, default=None, metavar="HASH", help="Player 1 board hash.")
@click.option("--commit-p2", type=str, default=None, metavar="HASH", help="Player 2 board hash.")
@click.pass_context
def start_command(
    ctx:        click.Context,
    session_id: int,
    player1:    str,
    player2:    str,
    stake_p1:   int,
    stake_p2:   int,
    commit_p1:  Optional[str],
    commit_p2:  Optional[str],
) -> None:
    """Open SESSION_ID between PLAYER1 and PLAYER2."""
    ledger = _open_ledger(ctx)
    try:
        record = ledger.start(
            session_id, player1, player2, stake_p1, stake_p2,
            board_commit_p1=commit_p1, board_commit_p2=commit_p2,
        )
    except SettlementError as e:
        _rejected(e)
    except StoreError as e:
        _store_failed(e)
    _show_record(record, "Session Started")


@session_group.command(name="commit")
@click.argument("session_id", type=int)
@click.argument("player", type=click.IntRange(1, 2))
@click.argument("board_hash")
@click.pass_context
def commit_command(ctx: click.Context, session_id: int, player: int, board_hash: str) -> None:
    """Record PLAYER's BOARD_HASH for SESSION_ID."""
    ledger = _open_ledger(ctx)
    try:
        record = ledger.commit_board(session_id, player, board_hash)
    except SettlementError as e:
        _rejected(e)
    except StoreError as e:
        _store_failed(e)
    _show_record(record, "Board Committed")


@session_group.command(name="submit")
@click.argument("session_id", type=int)
@click.argument("submitter")
@click.argument("artifact", type=click.Path())
@click.pass_context
def submit_command(ctx: click.Context, session_id: int, submitter: str, artifact: str) -> None:
    """Settle SESSION_ID from a proof ARTIFACT submitted by SUBMITTER."""
    try:
        proof = ProofArtifact.load(Path(artifact))
    except (FileNotFoundError, TranscriptFormatError) as e:
        emit_error(_TOOL, str(e))
        sys.exit(2)

    ledger = _open_ledger(ctx)
    try:
        ledger.submit_artifact(session_id, submitter, proof)
    except SettlementError as e:
        _rejected(e)
    except StoreError as e:
        _store_failed(e)
    _show_record(ledger.get_session(session_id), "Session Settled")


@session_group.command(name="abort")
@click.argument("session_id", type=int)
@click.option("--reason", type=str, default="cancelled", show_default=True)
@click.pass_context
def abort_command(ctx: click.Context, session_id: int, reason: str) -> None:
    """Cancel SESSION_ID. It can never settle afterwards."""
    ledger = _open_ledger(ctx)
    try:
        record = ledger.abort(session_id, reason)
    except SettlementError as e:
        _rejected(e)
    except StoreError as e:
        _store_failed(e)
    _show_record(record, "Session Aborted")


@session_group.command(name="show")
@click.argument("session_id", type=int)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
)
@click.pass_context
def show_command(ctx: click.Context, session_id: int, fmt: str) -> None:
    """Print the current record for SESSION_ID."""
    ledger = _open_ledger(ctx)
    try:
        record = ledger.get_session(session_id)
    except SettlementError as e:
        if fmt == "json":
            click.echo(json.dumps({_TOOL: {"error": f"{e.kind}: {e}"}}))
            sys.exit(1)
        _rejected(e)

    if fmt == "json":
        emit_json(_TOOL, record.to_dict())
    else:
        _show_record(record, "Session")
