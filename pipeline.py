"""
pipeline.py

Proof pipeline for session rotations.

 - setup()      : compile the rotation relation once per process (cached)
 - prove()      : witness generation + proof for one rotation request
 - serialize()  : JSON payload {publicInput, publicOutput, proof}
 - verify()     : third-party check using public values only

Compilation traces the relation once to fix its shape (inputs and
multiplication gates) and derives a circuit id binding the hash parameters;
proofs are only valid under the context they were made with.
"""

import base64
import hashlib
import json
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import poseidon
from config import DEFAULT_CONFIG
from errors import ProofGenerationFailed, SetupFailed
from fingerprint import PERMUTATIONS_PER_FINGERPRINT, WITNESS_WIDTH, witness_vector
from identifiers import CanonicalIdentifiers
from prover import Prover
from relation import RotationPublicInput, RotationPublicOutput, evaluate, rotation_relation
from shares import CountingParties
from utils import canonical_json
from verifier import Verifier

logger = logging.getLogger(__name__)

MAX_REPETITIONS = 0xFFFF


@dataclass(frozen=True)
class ProvingContext:
    """Compiled relation: shape, soundness parameter and circuit id."""
    repetitions: int
    n_inputs: int
    n_gates: int
    circuit_id: bytes


@dataclass(frozen=True)
class SessionRotationProof:
    public_input: RotationPublicInput
    public_output: RotationPublicOutput
    proof: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "publicInput": self.public_input.to_dict(),
            "publicOutput": self.public_output.to_dict(),
            "proof": base64.b64encode(self.proof).decode("ascii"),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRotationProof":
        return cls(
            public_input=RotationPublicInput.from_dict(data["publicInput"]),
            public_output=RotationPublicOutput.from_dict(data["publicOutput"]),
            proof=base64.b64decode(data["proof"], validate=True),
        )


def _circuit_id(repetitions: int, n_inputs: int, n_gates: int) -> bytes:
    h = hashlib.sha256()
    h.update(poseidon.DOMAIN_TAG)
    for v in (poseidon.WIDTH, poseidon.FULL_ROUNDS, poseidon.PARTIAL_ROUNDS, poseidon.ALPHA,
              repetitions, n_inputs, n_gates):
        h.update(v.to_bytes(8, "big"))
    for row in poseidon.ROUND_CONSTANTS + poseidon.MDS:
        for c in row:
            h.update(c.to_bytes(32, "big"))
    return h.digest()


def compile_context(repetitions: int) -> ProvingContext:
    """
    Compile the rotation relation (uncached).
    """
    repetitions = int(repetitions)
    if not 1 <= repetitions <= MAX_REPETITIONS:
        raise ValueError(f"repetitions must be in 1..{MAX_REPETITIONS}, got {repetitions}")
    parties = CountingParties(WITNESS_WIDTH)
    rotation_relation(RotationPublicInput(0, 0, 0), parties.input_values())
    expected_gates = PERMUTATIONS_PER_FINGERPRINT * poseidon.multiplications_per_permutation()
    if parties.gates_used != expected_gates:
        raise RuntimeError(f"relation traced {parties.gates_used} multiplication gates, expected {expected_gates}")
    return ProvingContext(
        repetitions=repetitions,
        n_inputs=WITNESS_WIDTH,
        n_gates=parties.gates_used,
        circuit_id=_circuit_id(repetitions, WITNESS_WIDTH, parties.gates_used),
    )


_CONTEXT: Optional[ProvingContext] = None
_CONTEXT_LOCK = threading.Lock()


def setup(repetitions: Optional[int] = None) -> ProvingContext:
    """
    Process-wide, idempotent setup. The first call compiles; later calls return
    the cached context.

    :raises SetupFailed: if the relation cannot be compiled
    """
    global _CONTEXT
    with _CONTEXT_LOCK:
        if _CONTEXT is None:
            reps = repetitions if repetitions is not None else DEFAULT_CONFIG["proof_repetitions"]
            started = time.perf_counter()
            try:
                _CONTEXT = compile_context(reps)
            except (ValueError, RuntimeError, ArithmeticError) as exc:
                logger.error("proving context setup failed: %s", exc)
                raise SetupFailed(str(exc)) from exc
            logger.info("proving context ready: gates=%d repetitions=%d circuit=%s (%.2fs)",
                        _CONTEXT.n_gates, _CONTEXT.repetitions, _CONTEXT.circuit_id.hex()[:16],
                        time.perf_counter() - started)
        elif repetitions is not None and repetitions != _CONTEXT.repetitions:
            logger.warning("setup already done with %d repetitions; ignoring request for %d",
                           _CONTEXT.repetitions, repetitions)
        return _CONTEXT


def clear_cached_context() -> None:
    """Drop the cached context, e.g. when a host re-initialises the subsystem."""
    global _CONTEXT
    with _CONTEXT_LOCK:
        _CONTEXT = None


def prove(ctx: ProvingContext,
          public_input: RotationPublicInput,
          private_input: CanonicalIdentifiers,
          expected_fingerprint: Optional[int] = None) -> SessionRotationProof:
    """
    Generate the witness and proof for one rotation request.

    :param expected_fingerprint: fingerprint the caller computed independently; a
                                 mismatch means composer and relation disagree
    :raises ProofGenerationFailed: if the relation cannot be satisfied
    """
    honest = evaluate(public_input, private_input)
    if expected_fingerprint is not None and honest.fingerprint != expected_fingerprint:
        logger.error("relation output disagrees with composer: expected=%s relation=%s game=%s circuit=%s",
                     expected_fingerprint, honest.fingerprint, public_input.game_id, ctx.circuit_id.hex()[:16])
        raise ProofGenerationFailed("relation fingerprint does not match the expected fingerprint")

    started = time.perf_counter()
    try:
        fp, blob = Prover(ctx).make_proof(public_input, witness_vector(private_input))
    except (ValueError, RuntimeError) as exc:
        logger.error("witness generation failed: game=%s circuit=%s: %s",
                     public_input.game_id, ctx.circuit_id.hex()[:16], exc)
        raise ProofGenerationFailed(str(exc)) from exc
    if fp != honest.fingerprint:
        logger.error("shared evaluation disagrees with plain evaluation: game=%s circuit=%s",
                     public_input.game_id, ctx.circuit_id.hex()[:16])
        raise ProofGenerationFailed("shared evaluation does not reconstruct the relation output")

    logger.info("rotation proof created: game=%s new_key=%s bytes=%d (%.2fs)",
                public_input.game_id, public_input.new_session_key, len(blob),
                time.perf_counter() - started)
    return SessionRotationProof(public_input=public_input, public_output=honest, proof=blob)


def serialize(proof: SessionRotationProof) -> bytes:
    """Canonical JSON encoding of the payload handed to the submission transport."""
    return canonical_json(proof.to_dict()).encode("utf-8")


def deserialize(data: bytes) -> SessionRotationProof:
    """
    :raises ValueError: for anything that is not a well-formed payload
    """
    try:
        return SessionRotationProof.from_dict(json.loads(data))
    except (KeyError, TypeError) as exc:
        raise ValueError(f"malformed rotation proof payload: {exc}") from exc


def verify(ctx: ProvingContext,
           public_input: RotationPublicInput,
           public_output: RotationPublicOutput,
           proof_bytes: bytes) -> bool:
    ok, report = Verifier(ctx).verify(public_input, public_output, proof_bytes)
    if not ok:
        logger.info("rotation proof rejected: %s", report)
    return ok


def verify_serialized(ctx: ProvingContext, data: bytes) -> bool:
    """Verify a payload produced by serialize()."""
    try:
        proof = deserialize(data)
    except ValueError as exc:
        logger.info("rotation proof rejected: %s", exc)
        return False
    return verify(ctx, proof.public_input, proof.public_output, proof.proof)
