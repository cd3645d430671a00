"""
Tests for the three-party share arithmetic used by the proof backend.
"""

import pytest

from commitment import commit_view, new_seed, verify_view
from shares import P, CountingParties, ProverParties, VerifierParties, tape_words

REPS = 4


def _seeds():
    return [[new_seed() for _ in range(REPS)] for _ in range(3)]


def _circuit(values):
    # (x0 * x1 + 7) * x2 * 3 -> two multiplication gates
    x0, x1, x2 = values
    return ((x0 * x1) + 7) * x2 * 3


def _expected(witness):
    x0, x1, x2 = witness
    return ((x0 * x1 + 7) * x2 * 3) % P


class TestTapes:
    """Seed expansion"""

    def test_deterministic_and_reduced(self):
        seed = b"\x01" * 32
        words = tape_words(seed, 10)
        assert words == tape_words(seed, 10)
        assert all(0 <= w < P for w in words)

    def test_prefix_stable(self):
        seed = b"\x02" * 32
        assert tape_words(seed, 5) == tape_words(seed, 8)[:5]


class TestProverParties:
    """Shares held by the three simulated parties"""

    def test_inputs_reconstruct(self):
        witness = [11, 22, P - 1]
        parties = ProverParties(_seeds(), witness, n_gates=0)
        for value, wire in zip(witness, parties.input_values()):
            assert all(int(v) == value for v in wire.shares.sum(axis=0) % P)

    def test_multiplication_reconstructs(self):
        witness = [123456789, 987654321, 5]
        parties = ProverParties(_seeds(), witness, n_gates=2)
        out = _circuit(parties.input_values())
        parties.check_complete()
        assert all(int(v) == _expected(witness) for v in out.shares.sum(axis=0) % P)

    def test_gate_overrun(self):
        parties = ProverParties(_seeds(), [1, 2, 3], n_gates=1)
        with pytest.raises(RuntimeError):
            _circuit(parties.input_values())

    def test_unused_gates_detected(self):
        parties = ProverParties(_seeds(), [1, 2, 3], n_gates=3)
        _circuit(parties.input_values())
        with pytest.raises(RuntimeError):
            parties.check_complete()

    def test_counting_parties(self):
        parties = CountingParties(3)
        _circuit(parties.input_values())
        assert parties.gates_used == 2


class TestVerifierParties:
    """Two opened parties recompute the prover's views"""

    @pytest.mark.parametrize("challenge", [0, 1, 2])
    def test_opened_views_match(self, challenge):
        seeds = _seeds()
        witness = [3, 4, 5]
        prover = ProverParties(seeds, witness, n_gates=2)
        y = _circuit(prover.input_values()).shares

        nxt = (challenge + 1) % 3
        challenges = [challenge] * REPS
        explicit = [prover.explicit_words(j) if 2 in (challenge, nxt) else None for j in range(REPS)]
        views_next = [prover.gate_words(nxt, j) for j in range(REPS)]
        verifier = VerifierParties(challenges, seeds[challenge], seeds[nxt], explicit, views_next,
                                   n_inputs=3, n_gates=2)
        out = _circuit(verifier.input_values())
        verifier.check_complete()

        for j in range(REPS):
            assert int(out.shares[0][j]) == int(y[challenge][j])
            assert int(out.shares[1][j]) == int(y[nxt][j])
            c_e = commit_view(seeds[challenge][j], prover.view_words(challenge, j))
            c_next = commit_view(seeds[nxt][j], prover.view_words(nxt, j))
            assert verify_view(c_e, seeds[challenge][j], verifier.view_words(0, j))
            assert verify_view(c_next, seeds[nxt][j], verifier.view_words(1, j))

    def test_tampered_view_detected(self):
        seeds = _seeds()
        prover = ProverParties(seeds, [3, 4, 5], n_gates=2)
        _circuit(prover.input_values())
        views_next = [prover.gate_words(1, j) for j in range(REPS)]
        views_next[0][0] = (views_next[0][0] + 1) % P
        verifier = VerifierParties([0] * REPS, seeds[0], seeds[1], [None] * REPS, views_next,
                                   n_inputs=3, n_gates=2)
        _circuit(verifier.input_values())
        c_next = commit_view(seeds[1][0], prover.view_words(1, 0))
        assert not verify_view(c_next, seeds[1][0], verifier.view_words(1, 0))
