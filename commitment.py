"""
commitment.py

Hash-based commitments to simulated party views.

A view commitment is SHA-256 over a domain tag, the party seed and the
party's view words (32-byte big-endian field elements). The 32-byte random
seed doubles as the commitment's blinding nonce, so an unopened commitment
reveals nothing about the view it binds.

API:
 - new_seed() -> seed bytes
 - commit_view(seed, words) -> commitment bytes
 - verify_view(commitment, seed, words) -> bool
"""

import hashlib
import hmac
import secrets
from typing import Iterable

SEED_BYTES = 32
COMMITMENT_BYTES = 32
WORD_BYTES = 32


def new_seed() -> bytes:
    return secrets.token_bytes(SEED_BYTES)


def commit_view(seed: bytes, words: Iterable[int]) -> bytes:
    """
    Commit to a party view.
    """
    h = hashlib.sha256()
    h.update(b"view|")
    h.update(seed)
    for w in words:
        h.update(int(w).to_bytes(WORD_BYTES, "big"))
    return h.digest()


def verify_view(commitment_bytes: bytes, seed: bytes, words: Iterable[int]) -> bool:
    """
    Check that (seed, words) opens commitment_bytes.
    """
    return hmac.compare_digest(commit_view(seed, words), commitment_bytes)
