"""
orchestrator.py

Rotation orchestrator: the one component with external I/O.

    canonicalize -> fingerprint (host notified) -> ledger lookup
      -> pick new session key -> setup (cached) + prove off the event loop
      -> serialize -> submit

Retry policy:
 - InvalidFormat / InvalidRequest: terminal, never retried
 - ledger lookup / submission: retried with linear backoff, then
   LedgerUnavailable / SubmissionFailed without further work
 - proof generation / setup errors: terminal, logged with full context
 - the whole rotation has a deadline; expiry raises RotationTimeout (retryable)
"""

import asyncio
import logging
import os
import random
from concurrent.futures import Executor, ProcessPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple

import pipeline
from config import DEFAULT_CONFIG, merge_config
from errors import (
    InvalidFormat,
    InvalidRequest,
    LedgerUnavailable,
    ProofGenerationFailed,
    RotationError,
    RotationTimeout,
    SetupFailed,
    SubmissionFailed,
)
from fingerprint import fingerprint
from identifiers import CanonicalIdentifiers, RawIdentifiers, canonicalize
from pipeline import ProvingContext, SessionRotationProof
from relation import UINT64_LIMIT, RotationPublicInput, check_uint64

logger = logging.getLogger(__name__)


class RotationStatus(Enum):
    """The single terminal status surfaced to the host / UI."""
    SUCCESS = "success"
    SERVER_UNREACHABLE = "failed-to-reach-server"
    INVALID_DEVICE = "invalid-device-state"


@dataclass
class SessionContext:
    """
    Per-device state, created once by the host and passed into every rotation.

    on_device_identified receives the fingerprint as a decimal string each time
    it is computed; it is a one-way notification.
    """
    raw: RawIdentifiers
    on_device_identified: Optional[Callable[[str], None]] = None

    def canonical(self) -> CanonicalIdentifiers:
        return canonicalize(self.raw)

    def identify(self) -> Tuple[CanonicalIdentifiers, int]:
        canonical = self.canonical()
        fp = fingerprint(canonical)
        if self.on_device_identified is not None:
            self.on_device_identified(str(fp))
        return canonical, fp


@dataclass(frozen=True)
class RotationOutcome:
    proof: SessionRotationProof
    payload: bytes
    submitted: bool


@dataclass
class RotationResult:
    status: RotationStatus
    outcome: Optional[RotationOutcome] = None
    error: Optional[str] = None
    attempts: int = 0


def choose_session_key(current: int, low: int, high: int, rng: random.Random) -> int:
    """
    Draw uniformly from [low, high], skipping `current` when the domain allows it.
    Uniqueness across rotations is best-effort only.
    """
    if low > high:
        raise ValueError(f"empty session-key domain [{low}, {high}]")
    if low <= current <= high and high > low:
        key = rng.randint(low, high - 1)
        return key + 1 if key >= current else key
    return rng.randint(low, high)


def rotation_status(exc: BaseException) -> RotationStatus:
    if isinstance(exc, (InvalidFormat, InvalidRequest, ProofGenerationFailed, SetupFailed)):
        return RotationStatus.INVALID_DEVICE
    return RotationStatus.SERVER_UNREACHABLE


def _prove_job(repetitions: int,
               public_input: RotationPublicInput,
               private_input: CanonicalIdentifiers,
               expected_fingerprint: int) -> SessionRotationProof:
    # runs in a worker; each worker process keeps its own cached context
    ctx = pipeline.setup(repetitions)
    return pipeline.prove(ctx, public_input, private_input, expected_fingerprint)


class RotationOrchestrator:
    """
    Typical usage:
        orch = RotationOrchestrator(GraphQLLedger.from_config(cfg),
                                    HttpSubmissionTransport.from_config(cfg), cfg)
        result = await orch.run_rotation(SessionContext(raw), game_id=1)

    :param ledger: object with current_session_key(game_id, fingerprint_decimal) -> int
    :param transport: object with submit(payload_dict); None to skip submission
    :param executor: where proofs run; defaults to a process pool sized to the CPU count
    :param rng: random source for new session keys
    """

    def __init__(self,
                 ledger,
                 transport=None,
                 config: Optional[Dict[str, Any]] = None,
                 executor: Optional[Executor] = None,
                 rng: Optional[random.Random] = None):
        self.ledger = ledger
        self.transport = transport
        self.config = merge_config(DEFAULT_CONFIG, config)
        self.rng = rng or random.SystemRandom()
        self._executor = executor
        self._owns_executor = executor is None
        self._context: Optional[ProvingContext] = None
        self._setup_lock: Optional[asyncio.Lock] = None

    @property
    def repetitions(self) -> int:
        return int(self.config["proof_repetitions"])

    def _get_executor(self) -> Executor:
        if self._executor is None:
            workers = self.config["prover_workers"] or os.cpu_count() or 1
            self._executor = ProcessPoolExecutor(max_workers=workers)
        return self._executor

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    async def ensure_setup(self) -> ProvingContext:
        """
        Run the one-time setup off the event loop; concurrent callers wait for the first.

        :raises SetupFailed: rotations are refused until a later call succeeds
        """
        if self._context is not None:
            return self._context
        if self._setup_lock is None:
            self._setup_lock = asyncio.Lock()
        async with self._setup_lock:
            if self._context is None:
                loop = asyncio.get_running_loop()
                self._context = await loop.run_in_executor(None, pipeline.setup, self.repetitions)
        return self._context

    async def rotate(self,
                     session: SessionContext,
                     game_id: int,
                     new_session_key: Optional[int] = None) -> RotationOutcome:
        """
        One rotation attempt.

        :raises InvalidFormat, InvalidRequest, LedgerUnavailable, SubmissionFailed,
                RotationTimeout, ProofGenerationFailed, SetupFailed
        """
        canonical, fp = session.identify()
        logger.info("rotation requested: game=%s device=%s", game_id, fp)
        try:
            check_uint64("gameId", game_id)
            if new_session_key is not None:
                check_uint64("newSessionKey", new_session_key)
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc
        await self.ensure_setup()
        try:
            return await asyncio.wait_for(
                self._rotate_steps(canonical, fp, game_id, new_session_key),
                timeout=self.config["rotation_timeout"],
            )
        except asyncio.TimeoutError as exc:
            logger.warning("rotation for game=%s timed out after %ss", game_id, self.config["rotation_timeout"])
            raise RotationTimeout(f"rotation exceeded {self.config['rotation_timeout']}s") from exc

    async def _rotate_steps(self,
                            canonical: CanonicalIdentifiers,
                            fp: int,
                            game_id: int,
                            new_session_key: Optional[int]) -> RotationOutcome:
        current = await self._lookup(game_id, str(fp))
        if new_session_key is None:
            new_session_key = choose_session_key(
                current, self.config["session_key_min"], self.config["session_key_max"], self.rng)
        try:
            public_input = RotationPublicInput(
                game_id=game_id, current_session_key=current, new_session_key=new_session_key)
        except ValueError as exc:
            raise InvalidRequest(str(exc)) from exc

        loop = asyncio.get_running_loop()
        try:
            proof = await loop.run_in_executor(
                self._get_executor(), _prove_job, self.repetitions, public_input, canonical, fp)
        except ProofGenerationFailed:
            logger.error("proof generation failed: game=%s current=%s new=%s device=%s repetitions=%d",
                         game_id, current, new_session_key, fp, self.repetitions)
            raise

        payload = pipeline.serialize(proof)
        submitted = False
        if self.transport is not None:
            await self._submit(proof.to_dict())
            submitted = True
        return RotationOutcome(proof=proof, payload=payload, submitted=submitted)

    async def _lookup(self, game_id: int, fp_decimal: str) -> int:
        section = self.config["ledger"]
        attempts = max(1, int(section["max_attempts"]))
        last_exc: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                value = await asyncio.to_thread(self.ledger.current_session_key, game_id, fp_decimal)
                if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < UINT64_LIMIT:
                    raise LedgerUnavailable("ledger returned a session key outside the 64-bit range")
                return value
            except LedgerUnavailable as exc:
                last_exc = exc
                logger.warning("ledger lookup attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt < attempts:
                    await asyncio.sleep(float(section["backoff"]) * attempt)
        raise LedgerUnavailable(f"ledger unreachable after {attempts} attempts") from last_exc

    async def _submit(self, payload: Dict[str, Any]) -> None:
        section = self.config["submission"]
        attempts = max(1, int(section["max_attempts"]))
        last_exc: Optional[Exception] = None
        for attempt in range(1, attempts + 1):
            try:
                await asyncio.to_thread(self.transport.submit, payload)
                return
            except SubmissionFailed as exc:
                last_exc = exc
                logger.warning("proof submission attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt < attempts:
                    await asyncio.sleep(float(section["backoff"]) * attempt)
        raise SubmissionFailed(f"submission failed after {attempts} attempts") from last_exc

    async def run_rotation(self,
                           session: SessionContext,
                           game_id: int,
                           new_session_key: Optional[int] = None) -> RotationResult:
        """
        Rotate with whole-rotation retries and map the outcome to one RotationStatus.
        Errors are summarised without identifiers or proof internals.
        """
        attempts = max(1, int(self.config["max_rotation_attempts"]))
        attempt = 0
        while True:
            attempt += 1
            try:
                outcome = await self.rotate(session, game_id, new_session_key)
                return RotationResult(RotationStatus.SUCCESS, outcome=outcome, attempts=attempt)
            except InvalidFormat as exc:
                logger.error("invalid device state: %s", exc)
                return RotationResult(rotation_status(exc), error=f"invalid {exc.field}", attempts=attempt)
            except InvalidRequest as exc:
                logger.error("invalid rotation request: %s", exc)
                return RotationResult(rotation_status(exc), error="invalid rotation request", attempts=attempt)
            except (ProofGenerationFailed, SetupFailed) as exc:
                logger.error("rotation aborted: %s", exc)
                return RotationResult(rotation_status(exc), error="proof could not be generated", attempts=attempt)
            except RotationError as exc:
                if not exc.retryable or attempt >= attempts:
                    logger.error("rotation failed after %d attempt(s): %s", attempt, exc)
                    return RotationResult(rotation_status(exc), error=type(exc).__name__, attempts=attempt)
                logger.warning("rotation attempt %d/%d failed, retrying: %s", attempt, attempts, exc)
