"""
Shared fixtures: the reference device from the end-to-end scenarios and a
small proving context (16 repetitions) so proofs stay fast.
"""

import pytest

import pipeline
from identifiers import RawIdentifiers, canonicalize

TEST_REPETITIONS = 16

SCENARIO_A = {
    "cpuId": "AABBCCDD11223344",
    "systemSerial": "SN123",
    "systemUUID": "123e4567-e89b-12d3-a456-426614174000",
    "baseboardSerial": "BB456",
    "macAddress": ["AA:BB:CC:DD:EE:01", "AA:BB:CC:DD:EE:02"],
    "diskSerial": "DK789",
}


@pytest.fixture(scope="session")
def raw_ids():
    return RawIdentifiers.from_dict(SCENARIO_A)


@pytest.fixture(scope="session")
def canonical_ids(raw_ids):
    return canonicalize(raw_ids)


@pytest.fixture(scope="session")
def proving_context():
    return pipeline.compile_context(TEST_REPETITIONS)


@pytest.fixture
def fresh_setup():
    """Process-wide setup cache pinned to the test repetition count."""
    pipeline.clear_cached_context()
    ctx = pipeline.setup(TEST_REPETITIONS)
    yield ctx
    pipeline.clear_cached_context()


@pytest.fixture
def test_config():
    return {
        "proof_repetitions": TEST_REPETITIONS,
        "rotation_timeout": 60.0,
        "max_rotation_attempts": 2,
        "ledger": {"max_attempts": 3, "backoff": 0.0},
        "submission": {"max_attempts": 3, "backoff": 0.0},
    }
