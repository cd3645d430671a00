"""
finite_field.py

Prime-field arithmetic over the BN254 scalar field, the field every
fingerprint, witness value and share lives in.

Classes:
 - Field: represents GF(p) with prime p, provides helper to create FieldElement.
 - FieldElement: value in GF(p) with arithmetic operators.

FieldElement is the plain evaluation type of the hash and the rotation
relation; the prover evaluates the same code over secret-shared values.
"""

from typing import Optional

# BN254 (alt_bn128) scalar field modulus.
BN254_PRIME = 21888242871839275222246405745257275088548364400416034343698204186575808495617

_WITNESS_BASES = (2, 3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41)


def _is_prime(n: int) -> bool:
    """
    Miller-Rabin with a fixed set of bases.
    Deterministic below 3.3e24, overwhelmingly reliable for the 254-bit moduli used here.
    """
    if n <= 1:
        return False
    for q in _WITNESS_BASES:
        if n % q == 0:
            return n == q
    d, s = n - 1, 0
    while d % 2 == 0:
        d //= 2
        s += 1
    for a in _WITNESS_BASES:
        x = pow(a, d, n)
        if x == 1 or x == n - 1:
            continue
        for _ in range(s - 1):
            x = pow(x, 2, n)
            if x == n - 1:
                break
        else:
            return False
    return True


class FieldElement:
    """
    Represents an element of GF(p).
    """
    __slots__ = ("value", "p")

    def __init__(self, value: int, p: int = BN254_PRIME):
        self.p = int(p)
        self.value = int(value) % self.p

    def _coerce(self, other) -> int:
        if isinstance(other, FieldElement):
            if other.p != self.p:
                raise ValueError(f"mixed moduli: {self.p} and {other.p}")
            return other.value
        return int(other)

    def __add__(self, other):
        return FieldElement(self.value + self._coerce(other), self.p)

    __radd__ = __add__

    def __sub__(self, other):
        return FieldElement(self.value - self._coerce(other), self.p)

    def __rsub__(self, other):
        return FieldElement(self._coerce(other) - self.value, self.p)

    def __mul__(self, other):
        return FieldElement(self.value * self._coerce(other), self.p)

    __rmul__ = __mul__

    def __truediv__(self, other):
        return self * FieldElement(self._coerce(other), self.p).inv()

    def __neg__(self):
        return FieldElement(-self.value, self.p)

    def __eq__(self, other):
        if isinstance(other, FieldElement):
            return self.p == other.p and self.value == other.value
        if isinstance(other, int):
            return self.value == other % self.p
        return NotImplemented

    def __hash__(self):
        return hash((self.value, self.p))

    def __int__(self):
        return self.value

    def __repr__(self):
        return f"FieldElement({self.value} mod {self.p})"

    def inv(self) -> "FieldElement":
        if self.value == 0:
            raise ZeroDivisionError("inverse of zero")
        return FieldElement(pow(self.value, -1, self.p), self.p)

    def pow(self, exponent: int) -> "FieldElement":
        return FieldElement(pow(self.value, exponent, self.p), self.p)

    def to_int(self) -> int:
        return self.value


class Field:
    """
    Factory/namespace for field-related helpers.
    """
    def __init__(self, p: Optional[int] = None):
        """
        If p is None, use the BN254 scalar field.
        """
        if p is None:
            p = BN254_PRIME
        if not _is_prime(p):
            raise ValueError("p must be prime for a proper field")
        self.p = int(p)

    def element(self, value: int) -> FieldElement:
        return FieldElement(value, self.p)

    def contains(self, value: int) -> bool:
        """True when value is already a reduced representative."""
        return 0 <= int(value) < self.p


BN254 = Field(BN254_PRIME)
