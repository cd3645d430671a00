"""
Tests for configuration loading and the small file helpers.
"""

import json
import logging

import pytest

from config import DEFAULT_CONFIG, load_config, merge_config
from utils import read_json, setup_basic_logger, write_json_atomic


class TestConfig:
    """Defaults and overrides"""

    def test_merge_nested_section(self):
        merged = merge_config(DEFAULT_CONFIG, {"ledger": {"timeout": 1.0}, "proof_repetitions": 8})
        assert merged["ledger"]["timeout"] == 1.0
        assert merged["ledger"]["endpoint"] == DEFAULT_CONFIG["ledger"]["endpoint"]
        assert merged["proof_repetitions"] == 8

    def test_merge_does_not_mutate_base(self):
        merge_config(DEFAULT_CONFIG, {"ledger": {"timeout": 1.0}})
        assert DEFAULT_CONFIG["ledger"]["timeout"] == 10.0

    def test_merge_none(self):
        assert merge_config(DEFAULT_CONFIG, None) == DEFAULT_CONFIG

    def test_load_config(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"session_key_max": 99, "submission": {"max_attempts": 1}}))
        cfg = load_config(str(path))
        assert cfg["session_key_max"] == 99
        assert cfg["submission"]["max_attempts"] == 1
        assert cfg["submission"]["backoff"] == DEFAULT_CONFIG["submission"]["backoff"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "missing.json"))

    def test_non_object_file(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text("[1, 2]")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestUtils:
    """JSON helpers and logger setup"""

    def test_write_then_read(self, tmp_path):
        path = tmp_path / "nested" / "out.json"
        write_json_atomic(str(path), {"b": 1, "a": [1, 2]})
        assert read_json(path) == {"a": [1, 2], "b": 1}
        assert list(path.parent.iterdir()) == [path]

    def test_read_missing(self, tmp_path):
        assert read_json(tmp_path / "none.json") is None

    def test_logger_level_by_name(self):
        logger = setup_basic_logger("device-session-test", level="warning")
        assert logger.level == logging.WARNING
        assert len(setup_basic_logger("device-session-test").handlers) == 1
