"""
tests/test_cli.py

salvo command line, driven through click's CliRunner.

Exit codes shared by every command:
    0  success / valid
    1  rejected / invalid
    2  error (missing file, malformed input, bad options)
"""

import json

import pytest
from click.testing import CliRunner

from salvo.cli import cli
from salvo.core.crypto import Ed25519KeyManager
from salvo.core.exceptions import StoreError
from salvo.ledger.store import JsonlSessionStore

from helpers.games import STANDARD_BOARD_HASH, make_transcript


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def game_file(tmp_path):
    path = tmp_path / "game.json"
    path.write_text(json.dumps(make_transcript().to_dict()), encoding="utf-8")
    return path


@pytest.fixture
def key_file(tmp_path):
    path = tmp_path / "authority.pem"
    key = Ed25519KeyManager.generate()
    key.save(path)
    return path, key.public_key_hex


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def prove_to(runner, proof, *extra):
    result = runner.invoke(cli, ["prove", "--proof", str(proof), *extra])
    assert result.exit_code == 0, result.output
    return json.loads(proof.read_text(encoding="utf-8"))


# ─────────────────────────────────────────────────────────────
# prove
# ─────────────────────────────────────────────────────────────

class TestProve:

    def test_sample_game_with_dev_backend(self, runner, tmp_path):
        artifact = prove_to(runner, tmp_path / "proof.json")
        assert artifact["seal_hex"] is None
        assert artifact["public_output"] == {
            "session_id":    1,
            "winner":        1,
            "board_hash_p1": STANDARD_BOARD_HASH,
            "board_hash_p2": STANDARD_BOARD_HASH,
            "total_moves":   7,
        }

    def test_signed_with_key(self, runner, tmp_path, game_file, key_file):
        key_path, _ = key_file
        artifact = prove_to(
            runner, tmp_path / "proof.json",
            "--input", str(game_file), "--key", str(key_path),
        )
        assert len(bytes.fromhex(artifact["seal_hex"])) == 64

    def test_session_override(self, runner, tmp_path):
        artifact = prove_to(runner, tmp_path / "proof.json", "--session", "77")
        assert artifact["public_output"]["session_id"] == 77

    def test_session_zero_refused(self, runner, tmp_path):
        result = runner.invoke(cli, ["prove", "--session", "0", "--proof", str(tmp_path / "p.json")])
        assert result.exit_code == 2
        assert not (tmp_path / "p.json").exists()

    def test_session_zero_in_input_refused(self, runner, tmp_path):
        game = write_json(tmp_path / "zero.json", make_transcript(session_id=0).to_dict())
        result = runner.invoke(cli, ["prove", "--input", str(game), "--proof", str(tmp_path / "p.json")])
        assert result.exit_code == 2
        assert "Session id 0" in result.output
        assert not (tmp_path / "p.json").exists()

    def test_illegal_board_rejected(self, runner, tmp_path):
        data = make_transcript().to_dict()
        data["board_p1"] = [1, 1, 1, 1] + [0] * 12
        game = write_json(tmp_path / "bad.json", data)
        result = runner.invoke(cli, ["prove", "--input", str(game), "--proof", str(tmp_path / "p.json")])
        assert result.exit_code == 1
        assert not (tmp_path / "p.json").exists()

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(cli, ["prove", "--input", str(tmp_path / "none.json")])
        assert result.exit_code == 2

    def test_missing_key(self, runner, tmp_path):
        result = runner.invoke(cli, ["prove", "--key", str(tmp_path / "none.pem"),
                                     "--proof", str(tmp_path / "p.json")])
        assert result.exit_code == 2


# ─────────────────────────────────────────────────────────────
# verify
# ─────────────────────────────────────────────────────────────

class TestVerify:

    def test_dev_artifact(self, runner, tmp_path):
        proof = tmp_path / "proof.json"
        prove_to(runner, proof)
        result = runner.invoke(cli, ["verify", str(proof), "--dev"])
        assert result.exit_code == 0, result.output
        assert "VALID" in result.output

    def test_signed_artifact_with_replay_json(self, runner, tmp_path, game_file, key_file):
        key_path, public_key = key_file
        proof = tmp_path / "proof.json"
        prove_to(runner, proof, "--input", str(game_file), "--key", str(key_path))

        result = runner.invoke(cli, [
            "verify", str(proof), "--public-key", public_key,
            "--transcript", str(game_file), "--format", "json",
        ])
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)["salvo_verify"]
        assert report["valid"] is True
        assert [c["check"] for c in report["checks"]] == ["journal", "certificate", "replay"]

    def test_null_seal_fails_strict_check(self, runner, tmp_path, key_file):
        _, public_key = key_file
        proof = tmp_path / "proof.json"
        prove_to(runner, proof)
        result = runner.invoke(cli, ["verify", str(proof), "--public-key", public_key])
        assert result.exit_code == 1

    def test_tampered_output_invalid(self, runner, tmp_path, key_file):
        key_path, public_key = key_file
        proof = tmp_path / "proof.json"
        artifact = prove_to(runner, proof, "--key", str(key_path))
        artifact["public_output"]["winner"] = 2
        write_json(proof, artifact)

        result = runner.invoke(cli, [
            "verify", str(proof), "--public-key", public_key, "--format", "json",
        ])
        assert result.exit_code == 1
        checks = {c["check"]: c["valid"] for c in json.loads(result.output)["salvo_verify"]["checks"]}
        assert checks == {"journal": False, "certificate": True}

    def test_transcript_for_other_session_invalid(self, runner, tmp_path):
        proof = tmp_path / "proof.json"
        prove_to(runner, proof, "--session", "5")
        game = write_json(tmp_path / "g.json", make_transcript(session_id=6).to_dict())
        result = runner.invoke(cli, ["verify", str(proof), "--dev", "--transcript", str(game), "--quiet"])
        assert result.exit_code == 1
        assert result.output == ""

    @pytest.mark.parametrize("options", [[], ["--dev", "--public-key", "ab" * 32]])
    def test_exactly_one_backend_option(self, runner, tmp_path, options):
        proof = tmp_path / "proof.json"
        prove_to(runner, proof)
        result = runner.invoke(cli, ["verify", str(proof), *options])
        assert result.exit_code == 2

    def test_missing_artifact(self, runner, tmp_path):
        result = runner.invoke(cli, ["verify", str(tmp_path / "none.json"), "--dev"])
        assert result.exit_code == 2


# ─────────────────────────────────────────────────────────────
# replay / keygen
# ─────────────────────────────────────────────────────────────

class TestReplay:

    def test_timeline(self, runner, game_file):
        result = runner.invoke(cli, ["replay", str(game_file), "--format", "json"])
        assert result.exit_code == 0, result.output
        report = json.loads(result.output)["salvo_replay"]
        assert report["winner"] == 1
        assert report["total_moves"] == 7
        assert len(report["shots"]) == 7
        assert report["shots"][-1]["terminal"] is True

    def test_human_output(self, runner, game_file):
        result = runner.invoke(cli, ["replay", str(game_file)])
        assert result.exit_code == 0
        assert "player 1 wins" in result.output

    def test_turn_violation(self, runner, tmp_path):
        data = make_transcript().to_dict()
        data["moves"][0]["player"] = 2
        game = write_json(tmp_path / "bad.json", data)
        result = runner.invoke(cli, ["replay", str(game), "--format", "json"])
        assert result.exit_code == 1
        assert json.loads(result.output)["salvo_replay"]["error"].startswith("TurnOrderViolation")


class TestKeygen:

    def test_writes_loadable_key(self, runner, tmp_path):
        path = tmp_path / "k.pem"
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 0, result.output
        assert Ed25519KeyManager.from_file(path).public_key_hex in result.output

    def test_refuses_overwrite(self, runner, tmp_path):
        path = tmp_path / "k.pem"
        path.write_text("keep me", encoding="utf-8")
        result = runner.invoke(cli, ["keygen", str(path)])
        assert result.exit_code == 2
        assert path.read_text(encoding="utf-8") == "keep me"


# ─────────────────────────────────────────────────────────────
# session
# ─────────────────────────────────────────────────────────────

class TestSession:

    def session(self, runner, store, *args):
        return runner.invoke(cli, ["session", "--dev", "--store", str(store), *args])

    def test_dev_flow(self, runner, tmp_path):
        store = tmp_path / "sessions.jsonl"
        proof = tmp_path / "proof.json"
        prove_to(runner, proof)

        result = self.session(runner, store, "start", "1", "alice", "bob",
                              "--stake-p1", "100", "--stake-p2", "100",
                              "--commit-p1", STANDARD_BOARD_HASH)
        assert result.exit_code == 0, result.output

        result = self.session(runner, store, "commit", "1", "2", STANDARD_BOARD_HASH)
        assert result.exit_code == 0, result.output

        result = self.session(runner, store, "submit", "1", "bob", str(proof))
        assert result.exit_code == 0, result.output

        result = self.session(runner, store, "submit", "1", "alice", str(proof))
        assert result.exit_code == 1
        assert "AlreadySettled" in result.output

        result = self.session(runner, store, "show", "1", "--format", "json")
        assert result.exit_code == 0, result.output
        record = json.loads(result.output)["salvo_session"]
        assert record["status"] == "settled"
        assert record["winner"] == 1
        assert record["submitter"] == "bob"

    def test_commitment_mismatch(self, runner, tmp_path):
        store = tmp_path / "sessions.jsonl"
        proof = tmp_path / "proof.json"
        prove_to(runner, proof)
        self.session(runner, store, "start", "1", "alice", "bob",
                     "--commit-p1", "ab" * 32, "--commit-p2", STANDARD_BOARD_HASH)
        result = self.session(runner, store, "submit", "1", "alice", str(proof))
        assert result.exit_code == 1
        assert "CommitmentMismatch" in result.output

    def test_abort(self, runner, tmp_path):
        store = tmp_path / "sessions.jsonl"
        self.session(runner, store, "start", "3", "alice", "bob")
        result = self.session(runner, store, "abort", "3", "--reason", "timeout")
        assert result.exit_code == 0, result.output
        result = self.session(runner, store, "abort", "3")
        assert result.exit_code == 1
        assert "SessionAborted" in result.output

    def test_store_write_failure_is_an_error(self, runner, tmp_path, monkeypatch):
        store = tmp_path / "sessions.jsonl"
        self.session(runner, store, "start", "5", "alice", "bob")

        def refuse(self, line):
            raise StoreError("Session store write failed: disk full")

        monkeypatch.setattr(JsonlSessionStore, "_append", refuse)
        result = self.session(runner, store, "abort", "5")
        assert result.exit_code == 2
        assert "disk full" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_unknown_session(self, runner, tmp_path):
        result = self.session(runner, tmp_path / "s.jsonl", "show", "9")
        assert result.exit_code == 1
        assert "SessionNotFound" in result.output

    def test_strict_mode_needs_public_key(self, runner, tmp_path, monkeypatch):
        monkeypatch.delenv("SALVO_MODE", raising=False)
        monkeypatch.delenv("SALVO_PUBLIC_KEY", raising=False)
        result = runner.invoke(cli, ["session", "--store", str(tmp_path / "s.jsonl"),
                                     "show", "1"])
        assert result.exit_code == 2

    def test_yaml_config(self, runner, tmp_path):
        store = tmp_path / "from-config.jsonl"
        config = tmp_path / "salvo.yaml"
        config.write_text(f"mode: dev\nstore_path: {store}\n", encoding="utf-8")
        result = runner.invoke(cli, ["session", "--config", str(config),
                                     "start", "4", "alice", "bob"])
        assert result.exit_code == 0, result.output
        assert store.exists()
