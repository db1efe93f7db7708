"""
salvo/attestation/backend.py

Attestation backend capability.

The settlement ledger never inspects a certificate. It hands the backend
three things and gets back pass/fail:

    verify(certificate, backend_identifier, journal_digest) -> bool

    certificate          opaque bytes (seal), or None
    backend_identifier   64-char hex naming the attested program / key
    journal_digest       SHA-256 of the canonical journal (32 raw bytes)

Concrete backends:
    Ed25519AttestationBackend   certificate = Ed25519 signature over
                                identifier_bytes ‖ journal_digest
    DevModeBackend              null certificate, accepts everything.
                                Only a dev-mode ledger will take it.
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional

from salvo.core.commitment import journal_digest
from salvo.core.crypto import Ed25519KeyManager


BACKEND_DOMAIN = b"salvo/replay/v1"
DEV_BACKEND_IDENTIFIER = "0" * 64


class AttestationBackend(ABC):
    """Capability interface. Implementations must never raise from verify()."""

    #: False for backends that must never be trusted outside development
    production: bool = True

    @property
    @abstractmethod
    def identifier(self) -> str:
        ...

    @abstractmethod
    def attest(self, journal: bytes) -> Optional[bytes]:
        """Produce a certificate over the canonical journal bytes."""

    @abstractmethod
    def verify(
        self,
        certificate:        Optional[bytes],
        backend_identifier: str,
        journal_digest:     bytes,
    ) -> bool:
        """True iff certificate attests journal_digest under backend_identifier."""


class Ed25519AttestationBackend(AttestationBackend):
    """
    Signing backend.

    A backend built from a key manager can attest and verify. A backend
    built from a public key hex alone (verify-only) is what a settlement
    authority runs.
    """

    def __init__(
        self,
        public_key_hex: str,
        key_manager:    Optional[Ed25519KeyManager] = None,
    ) -> None:
        try:
            raw = bytes.fromhex(public_key_hex)
        except (TypeError, ValueError):
            raise ValueError(f"public_key_hex is not valid hex: {public_key_hex!r}")
        if len(raw) != 32:
            raise ValueError(
                f"public_key_hex must encode 32 bytes, got {len(raw)}"
            )
        if key_manager is not None and key_manager.public_key_hex != public_key_hex.lower():
            raise ValueError("key_manager does not match public_key_hex")

        self.public_key_hex = public_key_hex.lower()
        self._key_manager   = key_manager
        self._identifier    = hashlib.sha256(BACKEND_DOMAIN + raw).hexdigest()

    @classmethod
    def from_key_manager(cls, key_manager: Ed25519KeyManager) -> "Ed25519AttestationBackend":
        return cls(key_manager.public_key_hex, key_manager)

    @property
    def identifier(self) -> str:
        return self._identifier

    @property
    def can_attest(self) -> bool:
        return self._key_manager is not None

    def attest(self, journal: bytes) -> bytes:
        if self._key_manager is None:
            raise RuntimeError(
                "Verify-only backend cannot attest. "
                "Build it with from_key_manager() to sign."
            )
        return self._key_manager.sign(self._message(journal_digest(journal)))

    def verify(
        self,
        certificate:        Optional[bytes],
        backend_identifier: str,
        journal_digest:     bytes,
    ) -> bool:
        if backend_identifier != self._identifier:
            return False
        if not certificate or not isinstance(journal_digest, (bytes, bytearray)):
            return False
        if len(journal_digest) != 32:
            return False
        return Ed25519KeyManager.verify_detached(
            self._message(bytes(journal_digest)),
            certificate,
            self.public_key_hex,
        )

    def _message(self, digest: bytes) -> bytes:
        return bytes.fromhex(self._identifier) + digest

    def __repr__(self) -> str:
        mode = "sign+verify" if self.can_attest else "verify-only"
        return f"Ed25519AttestationBackend({self._identifier[:16]}..., {mode})"


class DevModeBackend(AttestationBackend):
    """Accept-all stub. Produces null seals."""

    production = False

    @property
    def identifier(self) -> str:
        return DEV_BACKEND_IDENTIFIER

    def attest(self, journal: bytes) -> None:
        return None

    def verify(
        self,
        certificate:        Optional[bytes],
        backend_identifier: str,
        journal_digest:     bytes,
    ) -> bool:
        return True

    def __repr__(self) -> str:
        return "DevModeBackend()"
