"""
Tests for the BN254 field and the Poseidon-style hash.
"""

import pytest

import poseidon
from finite_field import BN254, BN254_PRIME, Field, FieldElement, _is_prime


class TestFieldElement:
    """Arithmetic in the BN254 scalar field"""

    def test_reduction(self):
        assert FieldElement(BN254_PRIME + 5).to_int() == 5
        assert FieldElement(-1).to_int() == BN254_PRIME - 1

    def test_inverse(self):
        a = FieldElement(123456789)
        assert (a * a.inv()).to_int() == 1
        assert (FieldElement(10) / 5).to_int() == 2

    def test_inverse_of_zero(self):
        with pytest.raises(ZeroDivisionError):
            FieldElement(0).inv()

    def test_pow_matches_repeated_multiplication(self):
        a = FieldElement(7)
        assert a.pow(5) == a * a * a * a * a

    def test_mixed_int_operands(self):
        a = FieldElement(3)
        assert a + 4 == 7
        assert a * 0 == 0
        assert -a == BN254_PRIME - 3

    def test_primality(self):
        assert _is_prime(BN254_PRIME)
        assert not _is_prime(BN254_PRIME + 1)
        assert not _is_prime(BN254_PRIME * 3)
        with pytest.raises(ValueError):
            Field(15)

    def test_field_helpers(self):
        assert BN254.contains(BN254_PRIME - 1)
        assert not BN254.contains(BN254_PRIME)
        assert BN254.element(BN254_PRIME + 2) == 2


class TestPermutation:
    """Parameter shape of the permutation"""

    def test_constants_shape(self):
        assert len(poseidon.ROUND_CONSTANTS) == poseidon.FULL_ROUNDS + poseidon.PARTIAL_ROUNDS
        assert all(len(row) == poseidon.WIDTH for row in poseidon.ROUND_CONSTANTS)
        assert len(poseidon.MDS) == poseidon.WIDTH

    def test_mds_is_cauchy(self):
        for i in range(poseidon.WIDTH):
            for j in range(poseidon.WIDTH):
                assert (FieldElement(poseidon.MDS[i][j]) * (i + poseidon.WIDTH + j)).to_int() == 1

    def test_wrong_width_rejected(self):
        with pytest.raises(ValueError):
            poseidon.permute([FieldElement(0)] * (poseidon.WIDTH - 1))

    def test_multiplication_count(self):
        assert poseidon.multiplications_per_permutation() == 384


class TestHash:
    """Sponge hash over 1..7 field elements"""

    def test_deterministic(self):
        assert poseidon.hash_ints([1, 2, 3]) == poseidon.hash_ints([1, 2, 3])

    def test_result_in_field(self):
        assert 0 <= poseidon.hash_ints([42]) < BN254_PRIME

    def test_input_sensitivity(self):
        assert poseidon.hash_ints([1, 2, 3]) != poseidon.hash_ints([1, 2, 4])
        assert poseidon.hash_ints([1, 2, 3]) != poseidon.hash_ints([2, 1, 3])

    def test_length_disambiguated(self):
        # zero padding must not make [x] and [x, 0] collide
        assert poseidon.hash_ints([5]) != poseidon.hash_ints([5, 0])

    def test_input_count_bounds(self):
        with pytest.raises(ValueError):
            poseidon.hash_fields([])
        with pytest.raises(ValueError):
            poseidon.hash_fields([FieldElement(1)] * (poseidon.RATE + 1))

    def test_hash_fields_returns_field_element(self):
        out = poseidon.hash_fields([FieldElement(9)])
        assert isinstance(out, FieldElement)
        assert out.to_int() == poseidon.hash_ints([9])
