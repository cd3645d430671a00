"""
shares.py

Three-party additive secret sharing for the MPC-in-the-head (ZKBoo) proof
backend.

A SharedValue holds the shares of one wire for every repetition at once as a
numpy object array (Python ints, BN254 is wider than any machine word):

  prover   : shape (3, R)  rows = parties 0, 1, 2
  verifier : shape (2, R)  rows = opened parties e and e+1 (per repetition)

Linear operations are local. Constants are added by party 0 only. A
multiplication gate computes, for each party i,

    z_i = a_i*b_i + a_(i+1)*b_i + a_i*b_(i+1) + r_i - r_(i+1)

with r_i drawn from party i's tape, so z_i depends only on parties i and i+1.
Party tapes are SHAKE-256 expansions of a per-party seed; the first n_inputs
tape words are the input shares of parties 0 and 1, party 2's input shares are
explicit (x - s0 - s1), the remaining words feed the multiplication gates.
"""

import hashlib
from typing import List, Optional, Sequence

import numpy as np

from finite_field import BN254_PRIME

P = BN254_PRIME
PARTIES = 3
_SAMPLE_BYTES = 40  # 320-bit samples reduced mod p


def tape_words(seed: bytes, count: int) -> List[int]:
    """Expand a party seed into `count` pseudo-random field elements."""
    stream = hashlib.shake_256(b"tape|" + seed).digest(count * _SAMPLE_BYTES)
    return [
        int.from_bytes(stream[i:i + _SAMPLE_BYTES], "big") % P
        for i in range(0, len(stream), _SAMPLE_BYTES)
    ]


def _objects(values) -> np.ndarray:
    return np.array(list(values), dtype=object)


def _tape_matrix(seed_rows: Sequence[Sequence[bytes]], words: int) -> np.ndarray:
    """Tapes for several parties as an array of shape (words, parties, R)."""
    rows, reps = len(seed_rows), len(seed_rows[0])
    tapes = np.empty((words, rows, reps), dtype=object)
    for i, seeds in enumerate(seed_rows):
        for j, seed in enumerate(seeds):
            tapes[:, i, j] = _objects(tape_words(seed, words))
    return tapes


class SharedValue:
    """One wire, shared between the simulated parties, vectorised over repetitions."""
    __slots__ = ("parties", "shares")

    def __init__(self, parties: "PartySet", shares: np.ndarray):
        self.parties = parties
        self.shares = shares

    def __add__(self, other):
        if isinstance(other, SharedValue):
            return SharedValue(self.parties, (self.shares + other.shares) % P)
        return self.parties.add_constant(self, int(other) % P)

    def __mul__(self, other):
        if isinstance(other, SharedValue):
            return self.parties.multiply(self, other)
        return SharedValue(self.parties, (self.shares * (int(other) % P)) % P)

    def __repr__(self):
        return f"SharedValue(shape={self.shares.shape})"


class PartySet:
    """
    Common bookkeeping: input wires are handed out in order, gates are counted.
    """

    def __init__(self, n_inputs: int, n_gates: Optional[int]):
        self.n_inputs = int(n_inputs)
        self.n_gates = n_gates
        self.gates_used = 0

    def input_values(self) -> List[SharedValue]:
        return [self._share_input(k) for k in range(self.n_inputs)]

    def _next_gate(self) -> int:
        g = self.gates_used
        if self.n_gates is not None and g >= self.n_gates:
            raise RuntimeError(f"circuit uses more than the compiled {self.n_gates} multiplication gates")
        self.gates_used += 1
        return g

    def check_complete(self) -> None:
        if self.n_gates is not None and self.gates_used != self.n_gates:
            raise RuntimeError(f"circuit used {self.gates_used} of {self.n_gates} compiled gates")

    def _share_input(self, k: int) -> SharedValue:
        raise NotImplementedError

    def add_constant(self, value: SharedValue, c: int) -> SharedValue:
        raise NotImplementedError

    def multiply(self, a: SharedValue, b: SharedValue) -> SharedValue:
        raise NotImplementedError


class CountingParties(PartySet):
    """
    Dry run used to compile the relation: tracks the wiring, not the values.
    """

    def __init__(self, n_inputs: int):
        super().__init__(n_inputs, None)

    def _zeros(self) -> np.ndarray:
        return np.zeros((1, 1), dtype=object)

    def _share_input(self, k: int) -> SharedValue:
        return SharedValue(self, self._zeros())

    def add_constant(self, value: SharedValue, c: int) -> SharedValue:
        return SharedValue(self, value.shares.copy())

    def multiply(self, a: SharedValue, b: SharedValue) -> SharedValue:
        self._next_gate()
        return SharedValue(self, self._zeros())


class ProverParties(PartySet):
    """
    All three parties of every repetition, run by the prover.

    :param seeds: seeds[i][j] is party i's seed for repetition j
    :param witness: plain private input values
    :param n_gates: compiled multiplication-gate count
    """

    def __init__(self, seeds: Sequence[Sequence[bytes]], witness: Sequence[int], n_gates: int):
        super().__init__(len(witness), n_gates)
        if len(seeds) != PARTIES:
            raise ValueError("prover needs one seed row per party")
        self.repetitions = len(seeds[0])
        self.witness = [int(x) % P for x in witness]
        self.tapes = _tape_matrix(seeds, self.n_inputs + n_gates)
        self.explicit_inputs: List[np.ndarray] = []
        self.gate_outputs: List[np.ndarray] = []
        self._gate_stack = None
        self._explicit_stack = None

    def _share_input(self, k: int) -> SharedValue:
        s = self.tapes[k].copy()
        s[2] = (self.witness[k] - s[0] - s[1]) % P
        self.explicit_inputs.append(s[2].copy())
        return SharedValue(self, s)

    def add_constant(self, value: SharedValue, c: int) -> SharedValue:
        s = value.shares.copy()
        s[0] = (s[0] + c) % P
        return SharedValue(self, s)

    def multiply(self, a: SharedValue, b: SharedValue) -> SharedValue:
        g = self._next_gate()
        r = self.tapes[self.n_inputs + g]
        a_next = np.roll(a.shares, -1, axis=0)
        b_next = np.roll(b.shares, -1, axis=0)
        z = (a.shares * b.shares + a_next * b.shares + a.shares * b_next
             + r - np.roll(r, -1, axis=0)) % P
        self.gate_outputs.append(z)
        return SharedValue(self, z)

    def explicit_words(self, rep: int) -> List[int]:
        """Party 2's explicit input shares for one repetition."""
        if self._explicit_stack is None:
            self._explicit_stack = np.stack(self.explicit_inputs)
        return [int(v) for v in self._explicit_stack[:, rep]]

    def gate_words(self, party: int, rep: int) -> List[int]:
        """Multiplication outputs of one party in one repetition."""
        if not self.gate_outputs:
            return []
        if self._gate_stack is None:
            self._gate_stack = np.stack(self.gate_outputs)
        return [int(v) for v in self._gate_stack[:, party, rep]]

    def view_words(self, party: int, rep: int) -> List[int]:
        """Everything party `party` saw in repetition `rep` beyond its seed."""
        words = self.explicit_words(rep) if party == 2 else []
        return words + self.gate_words(party, rep)


class VerifierParties(PartySet):
    """
    The two opened parties (e and e+1) of every repetition, re-run by the verifier.

    :param challenges: e for each repetition (0, 1 or 2)
    :param seeds_e: opened seed of party e per repetition
    :param seeds_next: opened seed of party e+1 per repetition
    :param explicit: party 2's input shares per repetition, None where party 2 is hidden
    :param views_next: multiplication outputs of party e+1 per repetition
    """

    def __init__(self,
                 challenges: Sequence[int],
                 seeds_e: Sequence[bytes],
                 seeds_next: Sequence[bytes],
                 explicit: Sequence[Optional[Sequence[int]]],
                 views_next: Sequence[Sequence[int]],
                 n_inputs: int,
                 n_gates: int):
        super().__init__(n_inputs, n_gates)
        self.repetitions = len(challenges)
        self.challenges = list(challenges)
        self.party_e = np.array(self.challenges, dtype=np.int64)
        self.party_next = (self.party_e + 1) % PARTIES
        self.tapes = _tape_matrix([seeds_e, seeds_next], n_inputs + n_gates)

        zeros = [0] * n_inputs
        self.explicit = np.array(
            [list(x) if x is not None else zeros for x in explicit], dtype=object
        ).reshape(self.repetitions, n_inputs).T
        self.views_next = np.array(
            [list(v) for v in views_next], dtype=object
        ).reshape(self.repetitions, n_gates).T
        self.recomputed: List[np.ndarray] = []

    def _share_input(self, k: int) -> SharedValue:
        row_e = np.where(self.party_e == 2, self.explicit[k], self.tapes[k][0])
        row_next = np.where(self.party_next == 2, self.explicit[k], self.tapes[k][1])
        return SharedValue(self, np.stack([row_e, row_next]))

    def add_constant(self, value: SharedValue, c: int) -> SharedValue:
        s = value.shares.copy()
        s[0] = np.where(self.party_e == 0, (s[0] + c) % P, s[0])
        s[1] = np.where(self.party_next == 0, (s[1] + c) % P, s[1])
        return SharedValue(self, s)

    def multiply(self, a: SharedValue, b: SharedValue) -> SharedValue:
        g = self._next_gate()
        r = self.tapes[self.n_inputs + g]
        a_e, a_next = a.shares[0], a.shares[1]
        b_e, b_next = b.shares[0], b.shares[1]
        z_e = (a_e * b_e + a_next * b_e + a_e * b_next + r[0] - r[1]) % P
        self.recomputed.append(z_e)
        return SharedValue(self, np.stack([z_e, self.views_next[g]]))

    def view_words(self, row: int, rep: int) -> List[int]:
        """Reconstructed view of opened party e (row 0) or e+1 (row 1)."""
        party = (self.challenges[rep] + row) % PARTIES
        words = [int(v) for v in self.explicit[:, rep]] if party == 2 else []
        if row == 0:
            gates = [int(z[rep]) for z in self.recomputed]
        else:
            gates = [int(v) for v in self.views_next[:, rep]]
        return words + gates
