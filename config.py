"""
config.py
Default configuration and loader. Overrides come from JSON files; nested
sections (e.g. "ledger") are merged key by key.
"""

import copy
import json
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_CONFIG: Dict[str, Any] = {
    # session-key domain new keys are drawn from (inclusive)
    "session_key_min": 2,
    "session_key_max": 10_000_000,
    "no_session_key": 0,            # ledger sentinel for "no prior session"
    "proof_repetitions": 137,       # (2/3)^137 ~ 2^-80 soundness error
    "prover_workers": None,         # None -> os.cpu_count()
    "rotation_timeout": 300.0,      # seconds for lookup + proof + submission
    "max_rotation_attempts": 2,
    "ledger": {
        "endpoint": "http://localhost:8080/graphql",
        "timeout": 10.0,
        "max_attempts": 3,
        "backoff": 0.5,
    },
    "submission": {
        "endpoint": "http://localhost:3152/submit-session",
        "timeout": 10.0,
        "max_attempts": 3,
        "backoff": 0.5,
    },
    "log_level": "INFO",
}


def merge_config(base: Dict[str, Any], overrides: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Return a copy of base with overrides applied; dict sections merge one level deep.
    """
    merged = copy.deepcopy(base)
    for k, v in (overrides or {}).items():
        if isinstance(v, dict) and isinstance(merged.get(k), dict):
            merged[k].update(v)
        else:
            merged[k] = v
    return merged


def load_config(path: str, base: Dict[str, Any] = None) -> Dict[str, Any]:
    """
    Load a JSON config file and merge it into base.

    :param path: path to JSON config file
    :param base: base configuration dictionary to update (if None use DEFAULT_CONFIG)
    :return: merged configuration dictionary
    """
    base = base if base is not None else DEFAULT_CONFIG
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with p.open("r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must hold a JSON object: {path}")
    return merge_config(base, data)
