"""
verifier.py

Verifier for rotation proofs produced by prover.Prover.

Responsibilities:
 - Check the public output copies gameId / newSessionKey from the public input
 - Parse the proof blob against the compiled context (header, round messages, responses)
 - Check every repetition's output shares reconstruct the claimed fingerprint
 - Re-derive the Fiat-Shamir challenges and re-run the two opened parties
 - Check the recomputed views against their commitments and output shares

Returns (accepted, report); malformed input is a rejection, never an exception.
"""

import logging
import struct
from typing import Any, Dict, List, Optional, Tuple

import commitment
from relation import RotationPublicInput, RotationPublicOutput, rotation_relation
from shares import P, PARTIES, VerifierParties
from transcript import (
    HEADER_FORMAT,
    PROOF_MAGIC,
    PROOF_VERSION,
    WORD_BYTES,
    RoundCommitment,
    challenge_digest,
    decode_words,
    derive_challenges,
    statement_digest,
)

logger = logging.getLogger(__name__)


class _BlobReader:
    def __init__(self, data: bytes):
        self.data = data
        self.offset = 0

    def take(self, n: int) -> bytes:
        end = self.offset + n
        if end > len(self.data):
            raise ValueError("proof blob truncated")
        chunk = self.data[self.offset:end]
        self.offset = end
        return chunk

    def words(self, n: int) -> List[int]:
        values = decode_words(self.take(n * WORD_BYTES))
        if any(v >= P for v in values):
            raise ValueError("proof word is not a reduced field element")
        return values

    def finish(self) -> None:
        if self.offset != len(self.data):
            raise ValueError("trailing bytes after proof")


class Verifier:
    """
    Verifier bound to one compiled ProvingContext.
    """

    def __init__(self, context):
        self.context = context

    def verify(self,
               public_input: RotationPublicInput,
               public_output: RotationPublicOutput,
               blob: bytes) -> Tuple[bool, Dict[str, Any]]:
        """
        Verify a proof blob and return (accepted, report).
        """
        report: Dict[str, Any] = {
            "passthrough_ok": False,
            "header_ok": False,
            "outputs_ok": False,
            "commitments_ok": False,
            "repetitions": 0,
        }

        # 1) gameId and newSessionKey are copied through unchanged
        report["passthrough_ok"] = (public_output.game_id == public_input.game_id
                                    and public_output.new_session_key == public_input.new_session_key)
        if not report["passthrough_ok"]:
            return False, report

        try:
            return self._verify_blob(public_input, public_output, bytes(blob), report)
        except (ValueError, RuntimeError, struct.error) as exc:
            logger.debug("rejecting malformed proof: %s", exc)
            report["error"] = str(exc)
            return False, report

    def _verify_blob(self, public_input, public_output, blob, report):
        ctx = self.context
        reader = _BlobReader(blob)

        # 2) header must match the compiled circuit
        magic, version, reps, n_inputs, n_gates = struct.unpack(
            HEADER_FORMAT, reader.take(struct.calcsize(HEADER_FORMAT)))
        report["repetitions"] = reps
        report["header_ok"] = (magic == PROOF_MAGIC and version == PROOF_VERSION
                               and reps == ctx.repetitions
                               and n_inputs == ctx.n_inputs and n_gates == ctx.n_gates)
        if not report["header_ok"]:
            return False, report

        # 3) round messages; every repetition must reconstruct the claimed fingerprint
        rounds: List[RoundCommitment] = []
        for _ in range(reps):
            outputs = tuple(reader.words(PARTIES))
            commits = tuple(reader.take(commitment.COMMITMENT_BYTES) for _ in range(PARTIES))
            rounds.append(RoundCommitment(outputs=outputs, commitments=commits))
        report["outputs_ok"] = all(sum(rc.outputs) % P == public_output.fingerprint for rc in rounds)
        if not report["outputs_ok"]:
            return False, report

        # 4) challenges depend on the statement and all round messages
        statement = statement_digest(ctx.circuit_id, public_input, public_output)
        challenges = derive_challenges(challenge_digest(statement, rounds), reps)

        seeds_e: List[bytes] = []
        seeds_next: List[bytes] = []
        explicit: List[Optional[List[int]]] = []
        views_next: List[List[int]] = []
        for e in challenges:
            nxt = (e + 1) % PARTIES
            seeds_e.append(reader.take(commitment.SEED_BYTES))
            seeds_next.append(reader.take(commitment.SEED_BYTES))
            explicit.append(reader.words(n_inputs) if 2 in (e, nxt) else None)
            views_next.append(reader.words(n_gates))
        reader.finish()

        # 5) re-run the opened parties
        parties = VerifierParties(challenges, seeds_e, seeds_next, explicit, views_next, n_inputs, n_gates)
        _, _, fp_shared = rotation_relation(public_input, parties.input_values())
        parties.check_complete()

        all_ok = True
        for j, (e, rc) in enumerate(zip(challenges, rounds)):
            nxt = (e + 1) % PARTIES
            if int(fp_shared.shares[0][j]) != rc.outputs[e] or int(fp_shared.shares[1][j]) != rc.outputs[nxt]:
                all_ok = False
                break
            if not commitment.verify_view(rc.commitments[e], seeds_e[j], parties.view_words(0, j)):
                all_ok = False
                break
            if not commitment.verify_view(rc.commitments[nxt], seeds_next[j], parties.view_words(1, j)):
                all_ok = False
                break
        report["commitments_ok"] = all_ok
        return all_ok, report
