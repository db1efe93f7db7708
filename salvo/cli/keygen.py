"""
salvo/cli/keygen.py

salvo keygen — create an Ed25519 attestation key.
"""

import sys
from pathlib import Path

import click

from salvo.attestation.backend import Ed25519AttestationBackend
from salvo.cli.output import _Color, emit_error, header, row_info
from salvo.core.crypto import Ed25519KeyManager


@click.command(name="keygen")
@click.argument("path", type=click.Path())
@click.option("--force", is_flag=True, default=False, help="Overwrite an existing key file.")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def keygen_command(path: str, force: bool, no_color: bool) -> None:
    """
    Write a new Ed25519 private key to PATH (PEM) and print the public key
    and backend identifier a settlement authority needs.
    """
    _Color.configure(not no_color)

    key_path = Path(path)
    if key_path.exists() and not force:
        emit_error("salvo_keygen", f"{key_path} already exists (use --force to overwrite)")
        sys.exit(2)

    km = Ed25519KeyManager.generate()
    try:
        km.save(key_path)
    except OSError as e:
        emit_error("salvo_keygen", f"Cannot write key: {e}")
        sys.exit(2)

    backend = Ed25519AttestationBackend.from_key_manager(km)

    header("Key Generated")
    click.echo(row_info("Key file", str(key_path)))
    click.echo(row_info("Public key", _Color.cyan(km.public_key_hex)))
    click.echo(row_info("Backend id", _Color.cyan(backend.identifier)))
    click.echo()
    click.echo(_Color.yellow("  Keep the key file private. Share only the public key."))
    click.echo()
