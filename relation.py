"""
relation.py

The rotation relation: the predicate a session-rotation proof demonstrates.

  private input : the device's canonical identifiers (as the witness vector)
  public input  : gameId, currentSessionKey, newSessionKey
  public output : gameId, newSessionKey (copied through) and
                  fingerprint = Composer(private input)

`rotation_relation` is a pure function over any field-like value type, so the
same definition is used for plain evaluation and inside the prover.

No ordering between currentSessionKey and newSessionKey is enforced here;
currentSessionKey is bound into the proof statement only.
"""

from dataclasses import dataclass
from typing import Any, Dict, Sequence, Tuple

from finite_field import BN254
from fingerprint import compose_fields, witness_vector
from identifiers import CanonicalIdentifiers

UINT64_LIMIT = 1 << 64


def check_uint64(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < 0 or value >= UINT64_LIMIT:
        raise ValueError(f"{name} out of range: {value}")
    return value


@dataclass(frozen=True)
class RotationPublicInput:
    game_id: int
    current_session_key: int
    new_session_key: int

    def __post_init__(self):
        check_uint64("gameId", self.game_id)
        check_uint64("currentSessionKey", self.current_session_key)
        check_uint64("newSessionKey", self.new_session_key)

    def to_dict(self) -> Dict[str, int]:
        return {
            "gameId": self.game_id,
            "currentSessionKey": self.current_session_key,
            "newSessionKey": self.new_session_key,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RotationPublicInput":
        return cls(
            game_id=int(data["gameId"]),
            current_session_key=int(data["currentSessionKey"]),
            new_session_key=int(data["newSessionKey"]),
        )


@dataclass(frozen=True)
class RotationPublicOutput:
    game_id: int
    new_session_key: int
    fingerprint: int

    def __post_init__(self):
        check_uint64("gameId", self.game_id)
        check_uint64("newSessionKey", self.new_session_key)
        if not BN254.contains(self.fingerprint):
            raise ValueError("fingerprint is not a field element")

    def to_dict(self) -> Dict[str, Any]:
        # fingerprint travels as a decimal string, it exceeds JSON-safe integers
        return {
            "gameId": self.game_id,
            "newSessionKey": self.new_session_key,
            "fingerprint": str(self.fingerprint),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RotationPublicOutput":
        return cls(
            game_id=int(data["gameId"]),
            new_session_key=int(data["newSessionKey"]),
            fingerprint=int(data["fingerprint"]),
        )


def rotation_relation(public_input: RotationPublicInput, witness: Sequence[Any]) -> Tuple[int, int, Any]:
    """
    Evaluate the relation over field-like witness values.

    Returns (gameId, newSessionKey, fingerprint) where the fingerprint has the
    witness' value type.
    """
    return public_input.game_id, public_input.new_session_key, compose_fields(witness)


def evaluate(public_input: RotationPublicInput, private_input: CanonicalIdentifiers) -> RotationPublicOutput:
    """Plain evaluation: the public output an honest prover claims."""
    witness = [BN254.element(v) for v in witness_vector(private_input)]
    game_id, new_key, fp = rotation_relation(public_input, witness)
    return RotationPublicOutput(game_id=game_id, new_session_key=new_key, fingerprint=fp.to_int())


def holds(public_input: RotationPublicInput,
          public_output: RotationPublicOutput,
          private_input: CanonicalIdentifiers) -> bool:
    """True iff the private input satisfies the relation for this public input/output."""
    return evaluate(public_input, private_input) == public_output
