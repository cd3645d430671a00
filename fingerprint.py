"""
fingerprint.py

Fingerprint composer: deterministic commitment over a device's canonical
identifiers.

    fingerprint = H([cpuId, S(systemSerial), systemUUID, S(baseboardSerial),
                     macAddressPrimary, macAddressSecondary, S(diskSerial)])

where H is poseidon.hash_fields and S hashes a packed serial string. The field
order is a published contract: reordering changes every previously issued
commitment.

The composer is also defined over the 22-value witness vector
(`compose_fields`) so the relation can recompute the identical value over
secret-shared values inside a proof.
"""

from typing import Any, List, Sequence

import poseidon
from finite_field import BN254
from identifiers import SERIAL_MAX_LENGTH, CanonicalIdentifiers

SERIAL_CHUNK_BYTES = 31  # fits below the 254-bit modulus
SERIAL_CHUNKS = -(-SERIAL_MAX_LENGTH // SERIAL_CHUNK_BYTES)
PACKED_SERIAL_WIDTH = 1 + SERIAL_CHUNKS

# 1 cpuId + 3 packed serials + 1 uuid + 2 MACs
WITNESS_WIDTH = 4 + 3 * PACKED_SERIAL_WIDTH

# one sponge call per serial plus the outer hash
PERMUTATIONS_PER_FINGERPRINT = 4


def pack_serial(serial: str) -> List[int]:
    """
    Pack a canonical serial into [length, chunk_0 .. chunk_4].
    Chunks are 31-byte big-endian slices of the ASCII bytes, zero padded.
    """
    data = serial.encode("ascii")
    if not data or len(data) > SERIAL_MAX_LENGTH:
        raise ValueError(f"serial length must be 1..{SERIAL_MAX_LENGTH}")
    padded = data.ljust(SERIAL_CHUNKS * SERIAL_CHUNK_BYTES, b"\x00")
    chunks = [
        int.from_bytes(padded[i:i + SERIAL_CHUNK_BYTES], "big")
        for i in range(0, len(padded), SERIAL_CHUNK_BYTES)
    ]
    return [len(data)] + chunks


def hash_serial(serial: str) -> int:
    return poseidon.hash_ints(pack_serial(serial))


def witness_vector(c: CanonicalIdentifiers) -> List[int]:
    """
    Flatten canonical identifiers into the private witness layout:
    cpuId, pack(systemSerial), systemUUID, pack(baseboardSerial),
    macPrimary, macSecondary, pack(diskSerial).
    """
    return (
        [c.cpu_id]
        + pack_serial(c.system_serial)
        + [c.system_uuid]
        + pack_serial(c.baseboard_serial)
        + [c.mac_address_primary, c.mac_address_secondary]
        + pack_serial(c.disk_serial)
    )


def compose_fields(witness: Sequence[Any]) -> Any:
    """
    Compose the fingerprint from a witness vector of field-like values.
    """
    if len(witness) != WITNESS_WIDTH:
        raise ValueError(f"witness must have {WITNESS_WIDTH} values, got {len(witness)}")
    w = PACKED_SERIAL_WIDTH
    cpu_id = witness[0]
    system_serial = witness[1:1 + w]
    system_uuid = witness[1 + w]
    baseboard_serial = witness[2 + w:2 + 2 * w]
    mac_primary = witness[2 + 2 * w]
    mac_secondary = witness[3 + 2 * w]
    disk_serial = witness[4 + 2 * w:4 + 3 * w]
    return poseidon.hash_fields([
        cpu_id,
        poseidon.hash_fields(list(system_serial)),
        system_uuid,
        poseidon.hash_fields(list(baseboard_serial)),
        mac_primary,
        mac_secondary,
        poseidon.hash_fields(list(disk_serial)),
    ])


def fingerprint(c: CanonicalIdentifiers) -> int:
    """
    Compute the device fingerprint (an element of the BN254 scalar field).
    """
    return compose_fields([BN254.element(v) for v in witness_vector(c)]).to_int()


def fingerprint_decimal(c: CanonicalIdentifiers) -> str:
    """Host-facing form of the fingerprint."""
    return str(fingerprint(c))
