"""
tests/test_attestation.py

Attestation backends and the Ed25519 key manager.
"""

import hashlib

import pytest

from salvo.attestation.backend import (
    BACKEND_DOMAIN,
    DEV_BACKEND_IDENTIFIER,
    DevModeBackend,
    Ed25519AttestationBackend,
)
from salvo.core.commitment import journal_digest
from salvo.core.crypto import Ed25519KeyManager
from salvo.core.pipeline import prove

from helpers.games import make_transcript

# RFC 8032, section 7.1, TEST 1
RFC8032_SEED   = bytes.fromhex("9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60")
RFC8032_PUBLIC = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"


@pytest.fixture
def key():
    return Ed25519KeyManager.generate()


@pytest.fixture
def backend(key):
    return Ed25519AttestationBackend.from_key_manager(key)


JOURNAL = b'{"session_id":1}'


class TestKeyManager:

    def test_seed_gives_known_public_key(self):
        km = Ed25519KeyManager.from_private_bytes(RFC8032_SEED)
        assert km.public_key_hex == RFC8032_PUBLIC
        assert len(km.public_key_raw) == 32

    def test_short_seed_rejected(self):
        with pytest.raises(ValueError):
            Ed25519KeyManager.from_private_bytes(b"\x00" * 31)

    def test_pem_round_trip(self, key, tmp_path):
        path = tmp_path / "keys" / "authority.pem"
        key.save(path)
        assert Ed25519KeyManager.from_file(path).public_key_hex == key.public_key_hex

    def test_missing_key_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Ed25519KeyManager.from_file(tmp_path / "missing.pem")

    def test_garbage_key_file(self, tmp_path):
        path = tmp_path / "bad.pem"
        path.write_text("not a key", encoding="utf-8")
        with pytest.raises(ValueError):
            Ed25519KeyManager.from_file(path)

    def test_verify_detached_never_raises(self, key):
        sig = key.sign(b"data")
        assert Ed25519KeyManager.verify_detached(b"data", sig, key.public_key_hex)
        assert not Ed25519KeyManager.verify_detached(b"other", sig, key.public_key_hex)
        assert not Ed25519KeyManager.verify_detached(b"data", sig[:10], key.public_key_hex)
        assert not Ed25519KeyManager.verify_detached(b"data", sig, "zz" * 32)
        assert not Ed25519KeyManager.verify_detached(b"data", sig, "ab")


class TestEd25519Backend:

    def test_identifier_is_domain_separated_key_hash(self):
        backend = Ed25519AttestationBackend(RFC8032_PUBLIC)
        expected = hashlib.sha256(BACKEND_DOMAIN + bytes.fromhex(RFC8032_PUBLIC)).hexdigest()
        assert backend.identifier == expected

    def test_attest_then_verify(self, backend):
        cert = backend.attest(JOURNAL)
        assert len(cert) == 64
        assert backend.verify(cert, backend.identifier, journal_digest(JOURNAL))

    def test_verify_only_backend_accepts_signed_certificate(self, key, backend):
        cert = backend.attest(JOURNAL)
        authority = Ed25519AttestationBackend(key.public_key_hex)
        assert authority.verify(cert, authority.identifier, journal_digest(JOURNAL))

    def test_verify_only_backend_cannot_attest(self, key):
        with pytest.raises(RuntimeError):
            Ed25519AttestationBackend(key.public_key_hex).attest(JOURNAL)

    def test_other_journal_rejected(self, backend):
        cert = backend.attest(JOURNAL)
        assert not backend.verify(cert, backend.identifier, journal_digest(b"{}"))

    def test_other_identifier_rejected(self, backend):
        cert = backend.attest(JOURNAL)
        assert not backend.verify(cert, "ab" * 32, journal_digest(JOURNAL))

    def test_other_key_rejected(self, backend):
        cert = backend.attest(JOURNAL)
        other = Ed25519AttestationBackend(Ed25519KeyManager.generate().public_key_hex)
        assert not other.verify(cert, other.identifier, journal_digest(JOURNAL))

    @pytest.mark.parametrize("cert", [None, b""])
    def test_missing_certificate_rejected(self, backend, cert):
        assert not backend.verify(cert, backend.identifier, journal_digest(JOURNAL))

    def test_wrong_digest_length_rejected(self, backend):
        cert = backend.attest(JOURNAL)
        assert not backend.verify(cert, backend.identifier, b"\x00" * 31)

    def test_bad_public_key_rejected(self):
        with pytest.raises(ValueError):
            Ed25519AttestationBackend("xyz")
        with pytest.raises(ValueError):
            Ed25519AttestationBackend("ab" * 31)

    def test_mismatched_key_manager_rejected(self, key):
        with pytest.raises(ValueError):
            Ed25519AttestationBackend(RFC8032_PUBLIC, key)

    def test_pipeline_artifact_verifies(self, backend):
        artifact = prove(make_transcript(), backend)
        assert artifact.seal is not None
        assert backend.verify(
            artifact.seal, backend.identifier, journal_digest(artifact.journal),
        )


class TestDevModeBackend:

    def test_not_production(self):
        assert DevModeBackend.production is False
        assert Ed25519AttestationBackend.production is True

    def test_null_seal_and_accept_all(self):
        dev = DevModeBackend()
        assert dev.identifier == DEV_BACKEND_IDENTIFIER
        assert dev.attest(JOURNAL) is None
        assert dev.verify(None, "anything", b"")

    def test_pipeline_artifact_has_null_seal(self):
        artifact = prove(make_transcript(), DevModeBackend())
        assert artifact.seal_hex is None
        assert artifact.public_output.winner == 1
