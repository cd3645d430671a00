"""
prover.py

MPC-in-the-head prover for the rotation relation.

Responsibilities:
 - Split the private witness between three simulated parties per repetition.
 - Evaluate the rotation relation over the shares (shares.ProverParties).
 - Commit to every party view (commitment.commit_view).
 - Derive challenges from the transcript (transcript.derive_challenges) and
   open two of the three parties per repetition.

The output is the reconstructed fingerprint plus the opaque proof blob.
"""

import logging
import struct
import time
from typing import List, Sequence, Tuple

import commitment
from relation import RotationPublicInput, RotationPublicOutput, rotation_relation
from shares import P, PARTIES, ProverParties
from transcript import (
    HEADER_FORMAT,
    PROOF_MAGIC,
    PROOF_VERSION,
    RoundCommitment,
    challenge_digest,
    derive_challenges,
    encode_words,
    statement_digest,
)

logger = logging.getLogger(__name__)


class Prover:
    """
    Produces proofs for one compiled ProvingContext.
    """

    def __init__(self, context):
        self.context = context

    def make_proof(self, public_input: RotationPublicInput, witness: Sequence[int]) -> Tuple[int, bytes]:
        """
        Prove knowledge of `witness` for `public_input`.

        :return: (fingerprint, proof blob)
        :raises RuntimeError: if the witness does not fit the compiled circuit or the
                              shares fail to reconstruct a single output
        """
        ctx = self.context
        if len(witness) != ctx.n_inputs:
            raise RuntimeError(f"witness has {len(witness)} values, circuit expects {ctx.n_inputs}")
        started = time.perf_counter()
        reps = ctx.repetitions

        seeds = [[commitment.new_seed() for _ in range(reps)] for _ in range(PARTIES)]
        parties = ProverParties(seeds, witness, ctx.n_gates)
        game_id, new_key, fp_shared = rotation_relation(public_input, parties.input_values())
        parties.check_complete()

        y = fp_shared.shares
        reconstructed = {int(v) for v in (y[0] + y[1] + y[2]) % P}
        if len(reconstructed) != 1:
            raise RuntimeError("output shares reconstruct to different values across repetitions")
        fingerprint = reconstructed.pop()

        public_output = RotationPublicOutput(game_id=game_id, new_session_key=new_key, fingerprint=fingerprint)
        statement = statement_digest(ctx.circuit_id, public_input, public_output)

        views: List[List[List[int]]] = []
        rounds: List[RoundCommitment] = []
        for j in range(reps):
            rep_views = [parties.view_words(i, j) for i in range(PARTIES)]
            views.append(rep_views)
            rounds.append(RoundCommitment(
                outputs=tuple(int(y[i][j]) for i in range(PARTIES)),
                commitments=tuple(commitment.commit_view(seeds[i][j], rep_views[i]) for i in range(PARTIES)),
            ))

        challenges = derive_challenges(challenge_digest(statement, rounds), reps)

        parts = [struct.pack(HEADER_FORMAT, PROOF_MAGIC, PROOF_VERSION, reps, ctx.n_inputs, ctx.n_gates)]
        for rc in rounds:
            parts.append(encode_words(rc.outputs))
            parts.extend(rc.commitments)
        for j, e in enumerate(challenges):
            nxt = (e + 1) % PARTIES
            parts.append(seeds[e][j])
            parts.append(seeds[nxt][j])
            if 2 in (e, nxt):
                parts.append(encode_words(parties.explicit_words(j)))
            parts.append(encode_words(parties.gate_words(nxt, j)))
        blob = b"".join(parts)

        logger.debug("proof generated: repetitions=%d gates=%d bytes=%d in %.2fs",
                     reps, ctx.n_gates, len(blob), time.perf_counter() - started)
        return fingerprint, blob
