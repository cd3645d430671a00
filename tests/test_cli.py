"""
Tests for the command-line entrypoint (no network access).
"""

import json

import pytest

import cli
import pipeline
from fingerprint import fingerprint_decimal
from relation import RotationPublicInput
from utils import write_json_atomic


def _run(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return excinfo.value.code


@pytest.fixture
def ids_file(tmp_path, raw_ids):
    path = tmp_path / "ids.json"
    path.write_text(json.dumps(raw_ids.to_dict()))
    return str(path)


class TestFingerprintCommand:
    def test_prints_fingerprint(self, ids_file, canonical_ids, capsys):
        assert _run(["fingerprint", "-i", ids_file, "--quiet"]) == 0
        assert capsys.readouterr().out.strip() == fingerprint_decimal(canonical_ids)

    def test_invalid_identifier(self, tmp_path, raw_ids, capsys):
        data = raw_ids.to_dict()
        data["cpuId"] = "ZZZZ"
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(data))
        assert _run(["fingerprint", "-i", str(path), "--quiet"]) == 2
        assert "cpuId" in capsys.readouterr().err

    def test_missing_file(self, tmp_path):
        assert _run(["fingerprint", "-i", str(tmp_path / "none.json"), "--quiet"]) == 2


class TestVerifyCommand:
    @pytest.fixture
    def cfg_file(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"proof_repetitions": 16}))
        return str(path)

    def test_missing_proof(self, tmp_path, cfg_file):
        assert _run(["verify", "--proof", str(tmp_path / "none.json"), "-c", cfg_file, "--quiet"]) == 2

    @pytest.mark.slow
    def test_valid_then_tampered(self, tmp_path, cfg_file, canonical_ids, fresh_setup, capsys):
        pi = RotationPublicInput(game_id=1, current_session_key=0, new_session_key=42)
        proof = pipeline.prove(fresh_setup, pi, canonical_ids)
        path = tmp_path / "proof.json"
        write_json_atomic(str(path), proof.to_dict())
        assert _run(["verify", "--proof", str(path), "-c", cfg_file, "--quiet"]) == 0
        assert capsys.readouterr().out.strip() == "valid"

        data = proof.to_dict()
        data["publicOutput"]["gameId"] = 2
        write_json_atomic(str(path), data)
        assert _run(["verify", "--proof", str(path), "-c", cfg_file, "--quiet"]) == 1
        assert capsys.readouterr().out.strip() == "invalid"


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        cli.build_arg_parser().parse_args([])
