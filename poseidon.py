"""
poseidon.py

Poseidon-style (HADES) permutation and fixed-width sponge hash over the BN254
scalar field.

Parameters (part of the fingerprint compatibility contract):
 - width t = 8 (capacity 1, rate 7), S-box x^5
 - 8 full rounds (4 before, 4 after) and 64 partial rounds
 - MDS: Cauchy matrix M[i][j] = 1 / (i + (t + j))
 - round constants: int(SHA-256("device-session-poseidon-t8|rc|<k>")) mod p,
   k = 0 .. t*(RF+RP)-1, consumed row by row

The permutation is written over "field-like" values: anything supporting
`value + value`, `value + int`, `value * value` and `value * int`. Plain
evaluation uses FieldElement; the prover runs the very same code over
secret-shared values (see shares.py).
"""

import hashlib
from typing import Any, List, Sequence

from finite_field import BN254_PRIME, FieldElement

WIDTH = 8
RATE = WIDTH - 1
FULL_ROUNDS = 8
PARTIAL_ROUNDS = 64
ALPHA = 5
DOMAIN_TAG = b"device-session-poseidon-t8"


def _derive_round_constants() -> List[List[int]]:
    total = WIDTH * (FULL_ROUNDS + PARTIAL_ROUNDS)
    flat = []
    for k in range(total):
        digest = hashlib.sha256(DOMAIN_TAG + b"|rc|" + str(k).encode("ascii")).digest()
        flat.append(int.from_bytes(digest, "big") % BN254_PRIME)
    return [flat[r * WIDTH:(r + 1) * WIDTH] for r in range(FULL_ROUNDS + PARTIAL_ROUNDS)]


def _derive_mds() -> List[List[int]]:
    # x_i = i, y_j = t + j: all distinct, x_i + y_j never zero -> Cauchy matrix is MDS
    return [
        [FieldElement(i + WIDTH + j).inv().to_int() for j in range(WIDTH)]
        for i in range(WIDTH)
    ]


ROUND_CONSTANTS = _derive_round_constants()
MDS = _derive_mds()


def _sbox(x):
    x2 = x * x
    x4 = x2 * x2
    return x4 * x


def _is_full_round(r: int) -> bool:
    half = FULL_ROUNDS // 2
    return r < half or r >= half + PARTIAL_ROUNDS


def _mix(state: Sequence[Any]) -> List[Any]:
    out = []
    for row in MDS:
        acc = state[0] * row[0]
        for j in range(1, WIDTH):
            acc = acc + state[j] * row[j]
        out.append(acc)
    return out


def permute(state: Sequence[Any]) -> List[Any]:
    """
    Apply the permutation to a width-8 state of field-like values.
    """
    if len(state) != WIDTH:
        raise ValueError(f"state must have width {WIDTH}, got {len(state)}")
    state = list(state)
    for r in range(FULL_ROUNDS + PARTIAL_ROUNDS):
        constants = ROUND_CONSTANTS[r]
        state = [s + c for s, c in zip(state, constants)]
        if _is_full_round(r):
            state = [_sbox(s) for s in state]
        else:
            state[0] = _sbox(state[0])
        state = _mix(state)
    return state


def hash_fields(inputs: Sequence[Any]) -> Any:
    """
    Hash 1..7 field-like values to one value of the same type.

    The capacity element carries the input count so inputs of different
    lengths never collide through zero padding.
    """
    n = len(inputs)
    if n < 1 or n > RATE:
        raise ValueError(f"hash_fields accepts 1..{RATE} inputs, got {n}")
    # lift constants into the inputs' value type
    zero = inputs[0] * 0
    state = [zero + n] + list(inputs) + [zero] * (RATE - n)
    return permute(state)[0]


def hash_ints(values: Sequence[int]) -> int:
    """
    Convenience wrapper: hash plain integers (reduced mod p) and return an int.
    """
    return hash_fields([FieldElement(v) for v in values]).to_int()


def multiplications_per_permutation() -> int:
    """Number of multiplication gates one permutation costs."""
    sboxes = FULL_ROUNDS * WIDTH + PARTIAL_ROUNDS
    return sboxes * 3
