"""
salvo Attestation Backends

The ledger talks to any backend through AttestationBackend.verify().
Swapping the backend never touches verification or ledger logic.
"""

from salvo.attestation.backend import (
    AttestationBackend,
    DevModeBackend,
    Ed25519AttestationBackend,
)

__all__ = ["AttestationBackend", "DevModeBackend", "Ed25519AttestationBackend"]
