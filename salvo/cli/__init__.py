"""
salvo/cli/__init__.py

salvo CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    salvo = "salvo.cli:cli"

Adding a new command:
    1. Create salvo/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import logging

import click

from salvo.cli.keygen import keygen_command
from salvo.cli.prove import prove_command
from salvo.cli.replay import replay_command
from salvo.cli.session import session_group
from salvo.cli.verify import verify_command


@click.group()
@click.version_option(package_name="salvo")
@click.option(
    "-v", "--verbose",
    count=True,
    help="Log to stderr. -v for INFO, -vv for DEBUG.",
)
def cli(verbose: int) -> None:
    """
    salvo — match verification and settlement CLI.

    \b
    Commands:
      prove     Validate, replay and attest a transcript.
      verify    Check a proof artifact (journal, certificate, replay).
      replay    Print a transcript's shot-by-shot timeline.
      keygen    Create an Ed25519 attestation key.
      session   Start, commit, settle and inspect sessions.

    \b
    Quick start:
      salvo prove --proof proof.json
      salvo verify proof.json --dev
      salvo session --dev start 1 alice bob --commit-p1 H1 --commit-p2 H2
      salvo session --dev submit 1 alice proof.json
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


cli.add_command(prove_command)
cli.add_command(verify_command)
cli.add_command(replay_command)
cli.add_command(keygen_command)
cli.add_command(session_group)
