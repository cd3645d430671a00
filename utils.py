"""
utils.py

Small collection of utilities: canonical JSON, atomic JSON files and a
minimal logger setup helper.
"""

from typing import Any, Dict, Optional, Union
from pathlib import Path
import json
import tempfile
import os
import logging

PathLike = Union[str, Path]


def canonical_json(obj: Any) -> str:
    """
    Deterministic JSON text (sorted keys, no whitespace); used wherever bytes are hashed or signed.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def write_json_atomic(path: PathLike, data: Any, indent: int = 2) -> None:
    """
    Write JSON to a temp file in the target directory and atomically move into place.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=p.name + ".", suffix=".tmp", dir=str(p.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, sort_keys=True, ensure_ascii=False)
            fh.write("\n")
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, p)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def read_json(path: PathLike) -> Optional[Dict]:
    """Parsed JSON content, or None when the file does not exist."""
    p = Path(path)
    if not p.is_file():
        return None
    return json.loads(p.read_text(encoding="utf-8"))


def setup_basic_logger(name: str = "", level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    Return a logger configured with a StreamHandler and a compact formatter.
    The default name configures the root logger so every module's logger reports.
    """
    logger = logging.getLogger(name)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)
    if logger.handlers:
        return logger
    ch = logging.StreamHandler()
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    ch.setFormatter(fmt)
    logger.addHandler(ch)
    return logger
