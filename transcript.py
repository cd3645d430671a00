"""
transcript.py

Fiat-Shamir transcript for rotation proofs.

The transcript binds:
  - the statement: circuit id, public input and public output (canonical JSON)
  - for every repetition: the three output shares and the three view commitments

and derives one challenge e in {0, 1, 2} per repetition from the resulting
digest. Also holds the fixed-width word codec used by the proof blob.
"""

from dataclasses import dataclass
from typing import List, Sequence, Tuple
import hashlib

from relation import RotationPublicInput, RotationPublicOutput
from utils import canonical_json

WORD_BYTES = 32


@dataclass(frozen=True)
class RoundCommitment:
    """First prover message of one repetition."""
    outputs: Tuple[int, int, int]
    commitments: Tuple[bytes, bytes, bytes]


def encode_words(values: Sequence[int]) -> bytes:
    return b"".join(int(v).to_bytes(WORD_BYTES, "big") for v in values)


def decode_words(data: bytes) -> List[int]:
    if len(data) % WORD_BYTES:
        raise ValueError("word buffer length is not a multiple of 32")
    return [int.from_bytes(data[i:i + WORD_BYTES], "big") for i in range(0, len(data), WORD_BYTES)]


def statement_digest(circuit_id: bytes,
                     public_input: RotationPublicInput,
                     public_output: RotationPublicOutput) -> bytes:
    """
    Deterministic digest over everything the verifier knows up front.
    """
    statement = {
        "circuit": circuit_id.hex(),
        "publicInput": public_input.to_dict(),
        "publicOutput": public_output.to_dict(),
    }
    return hashlib.sha256(b"statement|" + canonical_json(statement).encode("utf-8")).digest()


def challenge_digest(statement: bytes, rounds: Sequence[RoundCommitment]) -> bytes:
    h = hashlib.sha256()
    h.update(b"challenge|")
    h.update(statement)
    h.update(len(rounds).to_bytes(4, "big"))
    for rc in rounds:
        h.update(encode_words(rc.outputs))
        for c in rc.commitments:
            h.update(c)
    return h.digest()


def derive_challenges(digest: bytes, count: int) -> List[int]:
    """
    Expand a digest into `count` uniform values in {0, 1, 2}.
    Bytes equal to 255 are rejected to avoid modulo bias.
    """
    length = 2 * count + 16
    while True:
        stream = hashlib.shake_256(b"challenges|" + digest).digest(length)
        out = [b % 3 for b in stream if b < 255][:count]
        if len(out) == count:
            return out
        length *= 2


# Proof blob: header, all RoundCommitments, then one response per repetition.
PROOF_MAGIC = b"DRMS"
PROOF_VERSION = 1
HEADER_FORMAT = ">4sBHHI"  # magic, version, repetitions, inputs, gates
