"""
salvo/cli/replay.py

salvo replay — print the shot-by-shot timeline of a transcript.

Usage:
    salvo replay game.json
    salvo replay game.json --format json

Exit codes:
    0  Transcript replays to a winner
    1  Transcript rejected (illegal board, replay violation)
    2  Error  (file missing, malformed JSON)
"""

import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from salvo.cli.output import (
    BAR_LIGHT,
    _Color,
    emit_error,
    emit_json,
    header,
    row_info,
    verdict,
)
from salvo.core.exceptions import InvalidBoard, ReplayError, ReplayFault, TranscriptFormatError
from salvo.core.models import Transcript
from salvo.core.replay import ReplayEngine, ShotRecord
from salvo.core.validator import TranscriptValidator

_TOOL = "salvo_replay"


@click.command(name="replay")
@click.argument("transcript", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def replay_command(transcript: str, fmt: str, no_color: bool) -> None:
    """
    Replay TRANSCRIPT move by move and show every shot.
    """
    _Color.configure(not no_color)

    try:
        game = Transcript.load(Path(transcript))
    except (FileNotFoundError, TranscriptFormatError) as e:
        emit_error(_TOOL, str(e), fmt)
        sys.exit(2)
    except InvalidBoard as e:
        emit_error(_TOOL, f"{e.reason.value}: {e}", fmt)
        sys.exit(1)

    shots: List[ShotRecord] = []
    error: Optional[str]    = None
    try:
        TranscriptValidator().validate_transcript(game)
        for shot in ReplayEngine().timeline(game.board_p1, game.board_p2, game.moves):
            shots.append(shot)
        if not shots or not shots[-1].terminal:
            error = f"{ReplayFault.NO_WINNER_DETERMINED.value}: move sequence ended without a winner"
    except InvalidBoard as e:
        error = f"{e.reason.value}: {e}"
    except ReplayError as e:
        error = f"{e.fault.value}: {e}"

    winner = shots[-1].player if error is None else None

    if fmt == "json":
        emit_json(_TOOL, {
            "transcript":    transcript,
            "session_id":    game.session_id,
            "moves":         len(game.moves),
            "winner":        winner,
            "total_moves":   len(shots) if winner is not None else None,
            "ignored_moves": len(game.moves) - len(shots) if winner is not None else 0,
            "error":         error,
            "shots":         [_shot_dict(s) for s in shots],
        })
    else:
        _output_human(transcript, game, shots, winner, error)

    sys.exit(0 if error is None else 1)


def _shot_dict(shot: ShotRecord) -> Dict[str, Any]:
    return {
        "move":     shot.index + 1,
        "player":   shot.player,
        "x":        shot.x,
        "y":        shot.y,
        "hit":      shot.hit,
        "hits_p1":  shot.hits_p1,
        "hits_p2":  shot.hits_p2,
        "terminal": shot.terminal,
    }


def _output_human(
    path:   str,
    game:   Transcript,
    shots:  List[ShotRecord],
    winner: Optional[int],
    error:  Optional[str],
) -> None:
    header("Match Replay")
    click.echo(row_info("Transcript", path))
    click.echo(row_info("Session", str(game.session_id)))
    click.echo(row_info("Moves", str(len(game.moves))))
    click.echo()

    if shots:
        click.echo(f"  {BAR_LIGHT}")
        click.echo(_Color.bold(f"  {'#':>4}  {'Player':<8}{'Target':<10}{'Result':<8}Score"))
        click.echo(f"  {BAR_LIGHT}")
        for s in shots:
            result = _Color.green("HIT") + "     " if s.hit else _Color.dim("miss") + "    "
            click.echo(
                f"  {s.index + 1:>4}  {'P' + str(s.player):<8}"
                f"{f'({s.x},{s.y})':<10}{result}"
                f"{s.hits_p1}-{s.hits_p2}"
                + (_Color.yellow("  ◄ sinks the fleet") if s.terminal else "")
            )
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    if winner is not None:
        ignored = len(game.moves) - len(shots)
        if ignored:
            click.echo(row_info("Ignored", f"{ignored} move(s) after the winning shot"))
            click.echo()
        verdict(True, f"player {winner} wins  ·  {len(shots)} moves", "")
    else:
        verdict(False, "", f"REJECTED  ·  {error}")
