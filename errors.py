"""
errors.py

Exception hierarchy shared by the canonicalizer, proof pipeline and the
rotation orchestrator.
"""


class DeviceSessionError(Exception):
    """Base class for all errors raised by this project."""


class InvalidFormat(DeviceSessionError, ValueError):
    """
    A raw identifier failed validation. Terminal, never retried.

    `field` is the wire name of the offending identifier (e.g. "cpuId").
    The offending value is deliberately not kept.
    """

    def __init__(self, field: str, reason: str = "invalid format"):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class SetupFailed(DeviceSessionError):
    """The proving context could not be compiled."""


class ProofGenerationFailed(DeviceSessionError):
    """The relation was unsatisfiable for the given inputs (an internal defect)."""


class RotationError(DeviceSessionError):
    """Failure of one rotation attempt."""
    retryable = False


class LedgerUnavailable(RotationError):
    """The session ledger could not be queried."""
    retryable = True


class SubmissionFailed(RotationError):
    """The proof submission transport rejected or could not deliver the proof."""
    retryable = True


class RotationTimeout(RotationError):
    """The whole rotation (lookup + proof + submission) exceeded its deadline."""
    retryable = True


class InvalidRequest(RotationError, ValueError):
    """gameId or session keys fall outside the unsigned 64-bit range. Terminal."""
    retryable = False
