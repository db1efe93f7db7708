"""
salvo: Production Setup Example

Demonstrates:
- Strict mode ledger
- Ed25519 attestation key (prover) and verify-only backend (settlement)
- File-backed, hash-chained session store
- Rejection of a forged result
"""

from dataclasses import replace
from pathlib import Path

from salvo import Ed25519AttestationBackend, Ed25519KeyManager, SettlementLedger, prove
from salvo.cli.prove import sample_transcript
from salvo.core.commitment import board_hash
from salvo.core.config import init_strict_config
from salvo.core.exceptions import InvalidAttestation
from salvo.ledger.store import JsonlSessionStore


def setup_production():
    """Set up a strict salvo settlement environment."""

    print("=" * 60)
    print("salvo: Production Setup")
    print("=" * 60)
    print()

    keys_dir  = Path("keys")
    store_dir = Path("ledger")
    keys_dir.mkdir(exist_ok=True)
    store_dir.mkdir(exist_ok=True)

    # 1️⃣ Attestation key
    print("1️⃣ Generating attestation key...")
    key = Ed25519KeyManager.generate()
    key.save(keys_dir / "authority.pem")
    prover = Ed25519AttestationBackend.from_key_manager(key)
    print(f"  ✅ Public key: {key.public_key_hex[:16]}...")
    print(f"  ✅ Backend id: {prover.identifier[:16]}...")
    print("  ✅ Saved: keys/authority.pem")
    print()

    # 2️⃣ Settlement side only knows the public key
    print("2️⃣ Opening strict ledger...")
    authority = Ed25519AttestationBackend(key.public_key_hex)
    ledger = SettlementLedger(
        authority,
        init_strict_config(store_dir / "sessions.jsonl"),
    )
    print(f"  ✅ Store: {ledger.store.path}")
    print()

    # 3️⃣ Players commit before the match
    session_id = 1001 + len(ledger.store)
    transcript = sample_transcript(session_id=session_id)
    print(f"3️⃣ Starting session {session_id}...")
    ledger.start(
        session_id, "alice", "bob", 500, 500,
        board_commit_p1=board_hash(transcript.board_p1),
        board_commit_p2=board_hash(transcript.board_p2),
    )
    print("  ✅ Both boards committed")
    print()

    # 4️⃣ Prove and settle
    print("4️⃣ Proving and settling...")
    artifact = prove(transcript, prover)
    forged   = replace(artifact.public_output, winner=2)
    try:
        ledger.submit_result(session_id, "bob", forged, artifact.seal)
    except InvalidAttestation as e:
        print(f"  ✅ Forged result refused: {e.kind}")

    winner = ledger.submit_artifact(session_id, "alice", artifact)
    print(f"  ✅ Settled: player {winner}")
    print()

    # 5️⃣ Audit the store
    print("5️⃣ Verifying store chain...")
    store = JsonlSessionStore(store_dir / "sessions.jsonl")
    print(f"  ✅ Chain valid: {store.verify_chain()}")
    print(f"  ✅ Head hash:   {store.head_hash[:16]}...")
    print()

    print("=" * 60)
    print("✅ Production setup complete!")
    print("=" * 60)


if __name__ == "__main__":
    setup_production()
