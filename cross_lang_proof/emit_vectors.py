"""
cross_lang_proof/emit_vectors.py

salvo Cross-Language Vectors — Python Emitter
=============================================

Proves the sample match with a deterministic Ed25519 key and dumps every
intermediate value to vectors.json:

    - board_bytes_hex_p1/p2   (16-byte occupancy vectors)
    - board_hash_p1/p2        (SHA-256 of those bytes)
    - public_output           (the dict that gets canonicalized)
    - journal_hex             (public_output after JCS, as hex)
    - journal_digest_hex      (SHA-256 of the journal)
    - public_key_hex          (raw Ed25519 public key, 32 bytes)
    - backend_identifier      (SHA-256("salvo/replay/v1" ‖ public key))
    - signed_message_hex      (identifier bytes ‖ journal digest)
    - seal_hex                (Ed25519 signature over signed_message)

Ed25519 signatures are deterministic, so a verifier in any language can
recompute every value above from the transcript and the public key alone.

Usage:
    cd cross_lang_proof
    python emit_vectors.py
"""

import json
from pathlib import Path

from salvo.attestation.backend import Ed25519AttestationBackend
from salvo.cli.prove import sample_transcript
from salvo.core.commitment import board_hash, journal_digest
from salvo.core.crypto import Ed25519KeyManager
from salvo.core.pipeline import prove


# FIXED 32-byte seed → deterministic key → reproducible vectors.
# This is NOT a security key.
VECTOR_SEED = bytes.fromhex(
    "deadbeefdeadbeefdeadbeefdeadbeef"
    "cafebabecafebabecafebabecafebabe"
)


def main():
    out_path = Path(__file__).parent / "vectors.json"

    key     = Ed25519KeyManager.from_private_bytes(VECTOR_SEED)
    backend = Ed25519AttestationBackend.from_key_manager(key)
    print(f"Public key (hex)   : {key.public_key_hex}")
    print(f"Backend identifier : {backend.identifier}")

    transcript = sample_transcript()
    artifact   = prove(transcript, backend)
    digest     = journal_digest(artifact.journal)

    vectors = {
        "transcript":          transcript.to_dict(),
        "board_bytes_hex_p1":  transcript.board_p1.to_bytes().hex(),
        "board_bytes_hex_p2":  transcript.board_p2.to_bytes().hex(),
        "board_hash_p1":       board_hash(transcript.board_p1),
        "board_hash_p2":       board_hash(transcript.board_p2),
        "public_output":       artifact.public_output.to_dict(),
        "journal_hex":         artifact.journal_hex,
        "journal_text":        artifact.journal.decode("utf-8"),
        "journal_digest_hex":  digest.hex(),
        "public_key_hex":      key.public_key_hex,
        "backend_identifier":  backend.identifier,
        "signed_message_hex":  backend.identifier + digest.hex(),
        "seal_hex":            artifact.seal_hex,
    }

    assert backend.verify(artifact.seal, backend.identifier, digest), "self-check failed"

    out_path.write_text(json.dumps(vectors, indent=2), encoding="utf-8")
    print(f"Journal            : {vectors['journal_text']}")
    print(f"Seal (hex)         : {artifact.seal_hex[:32]}...")
    print(f"Wrote {out_path}")


if __name__ == "__main__":
    main()
