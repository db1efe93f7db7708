"""
salvo: Basic Usage Example

Demonstrates:
- Dev mode ledger (null seals, zero key ceremony)
- Proving a transcript
- Starting and settling a session
- Exactly-once settlement
"""

from salvo import DevModeBackend, SettlementLedger, prove
from salvo.cli.prove import sample_transcript
from salvo.core.commitment import board_hash
from salvo.core.config import init_dev_config
from salvo.core.exceptions import AlreadySettled


def main():
    """Basic salvo usage."""

    print("=" * 60)
    print("salvo: Basic Usage Example")
    print("=" * 60)
    print()

    # 1️⃣ A finished match
    print("1️⃣ Loading the sample match...")
    transcript = sample_transcript(session_id=7)
    print(f"  ✅ Session {transcript.session_id}, {len(transcript.moves)} moves")
    print()

    # 2️⃣ Prove it (dev backend: no certificate)
    print("2️⃣ Validating, replaying and binding...")
    artifact = prove(transcript, DevModeBackend())
    output = artifact.public_output
    print(f"  ✅ Winner: player {output.winner} after {output.total_moves} moves")
    print(f"  ✅ Journal: {artifact.journal_hex[:32]}...")
    print()

    # 3️⃣ Open a session with both commitments
    print("3️⃣ Starting session (dev mode)...")
    ledger = SettlementLedger(DevModeBackend(), init_dev_config())
    ledger.start(
        7, "alice", "bob", 100, 100,
        board_commit_p1=board_hash(transcript.board_p1),
        board_commit_p2=board_hash(transcript.board_p2),
    )
    print(f"  ✅ Status: {ledger.get_session(7).status.value}")
    print()

    # 4️⃣ Settle
    print("4️⃣ Submitting result...")
    winner = ledger.submit_artifact(7, "bob", artifact)
    record = ledger.get_session(7)
    print(f"  ✅ Settled: player {winner} ({record.winner_address}) wins the stakes")
    print()

    # 5️⃣ Second submission is refused
    print("5️⃣ Submitting again...")
    try:
        ledger.submit_artifact(7, "alice", artifact)
    except AlreadySettled as e:
        print(f"  ✅ Refused: {e.kind}")
    print()

    print("=" * 60)
    print("✅ Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
