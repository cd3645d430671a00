"""
identifiers.py

Field canonicalizer: validates raw hardware identifier strings reported by a
platform hardware query and normalises them into fixed numeric / canonical-string form.

Canonicalization is case-insensitive and separator-insensitive, so the same
physical device always yields the same CanonicalIdentifiers whatever textual
style the reporting tool used. Pure functions only; no proving-system dependency.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from errors import InvalidFormat

# Longest serial the fingerprint's string hash accepts (see fingerprint.pack_serial).
SERIAL_MAX_LENGTH = 128

_CPUID_RE = re.compile(r"^[0-9A-Fa-f]{16}$")
_UUID_RE = re.compile(
    r"^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$"
)
# six octets, one separator style throughout (":" or "-" or none)
_MAC_RE = re.compile(r"^[0-9A-Fa-f]{2}([:-]?)[0-9A-Fa-f]{2}(?:\1[0-9A-Fa-f]{2}){4}$")
_PRINTABLE_ASCII_RE = re.compile(r"^[\x20-\x7e]+$")


@dataclass
class RawIdentifiers:
    """
    Identifiers as reported by a platform hardware query. Nothing is guaranteed:
    fields may be empty, malformed or None.
    """
    cpu_id: Optional[str] = ""
    system_serial: Optional[str] = ""
    system_uuid: Optional[str] = ""
    baseboard_serial: Optional[str] = ""
    mac_address: List[str] = field(default_factory=list)
    disk_serial: Optional[str] = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawIdentifiers":
        """Build from the camelCase wire form."""
        macs = data.get("macAddress") or []
        if isinstance(macs, str):
            macs = [macs]
        return cls(
            cpu_id=data.get("cpuId", ""),
            system_serial=data.get("systemSerial", ""),
            system_uuid=data.get("systemUUID", ""),
            baseboard_serial=data.get("baseboardSerial", ""),
            mac_address=list(macs),
            disk_serial=data.get("diskSerial", ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cpuId": self.cpu_id,
            "systemSerial": self.system_serial,
            "systemUUID": self.system_uuid,
            "baseboardSerial": self.baseboard_serial,
            "macAddress": list(self.mac_address),
            "diskSerial": self.disk_serial,
        }


@dataclass(frozen=True)
class CanonicalIdentifiers:
    cpu_id: int
    system_serial: str
    system_uuid: int
    baseboard_serial: str
    mac_address_primary: int
    mac_address_secondary: int
    disk_serial: str

    def to_raw(self) -> RawIdentifiers:
        """
        Re-serialise into one canonical textual form. canonicalize(c.to_raw()) == c.
        """
        u = f"{self.system_uuid:032X}"
        return RawIdentifiers(
            cpu_id=f"{self.cpu_id:016X}",
            system_serial=self.system_serial,
            system_uuid=f"{u[:8]}-{u[8:12]}-{u[12:16]}-{u[16:20]}-{u[20:]}",
            baseboard_serial=self.baseboard_serial,
            mac_address=[format_mac(self.mac_address_primary), format_mac(self.mac_address_secondary)],
            disk_serial=self.disk_serial,
        )


def format_mac(value: int) -> str:
    h = f"{value:012X}"
    return ":".join(h[i:i + 2] for i in range(0, 12, 2))


def _text(value: Optional[str]) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        return str(value)
    return value.strip()


def canonical_cpu_id(raw: Optional[str]) -> int:
    text = _text(raw)
    if not _CPUID_RE.match(text):
        raise InvalidFormat("cpuId", "expected 16 hexadecimal characters")
    return int(text.upper(), 16)


def canonical_uuid(raw: Optional[str]) -> int:
    text = _text(raw)
    if not _UUID_RE.match(text):
        raise InvalidFormat("systemUUID", "expected 8-4-4-4-12 hexadecimal groups")
    return int(text.replace("-", "").upper(), 16)


def canonical_mac(raw: Optional[str], field_name: str) -> int:
    text = _text(raw)
    if not _MAC_RE.match(text):
        raise InvalidFormat(field_name, "expected six hexadecimal octets")
    value = int(text.replace(":", "").replace("-", "").upper(), 16)
    # an all-zero MAC means the interface is absent
    if value == 0:
        raise InvalidFormat(field_name, "MAC address must be non-zero")
    return value


def canonical_serial(raw: Optional[str], field_name: str) -> str:
    text = _text(raw)
    if not text:
        raise InvalidFormat(field_name, "serial must not be empty")
    if not _PRINTABLE_ASCII_RE.match(text):
        raise InvalidFormat(field_name, "serial must be printable ASCII")
    if len(text) > SERIAL_MAX_LENGTH:
        raise InvalidFormat(field_name, f"serial longer than {SERIAL_MAX_LENGTH} characters")
    return text.upper()


def canonicalize(raw: RawIdentifiers) -> CanonicalIdentifiers:
    """
    Validate and normalise every field of `raw`.

    :raises InvalidFormat: naming the first offending field
    """
    macs = list(raw.mac_address or [])
    if len(macs) != 2:
        raise InvalidFormat("macAddress", f"expected exactly 2 addresses, got {len(macs)}")
    return CanonicalIdentifiers(
        cpu_id=canonical_cpu_id(raw.cpu_id),
        system_serial=canonical_serial(raw.system_serial, "systemSerial"),
        system_uuid=canonical_uuid(raw.system_uuid),
        baseboard_serial=canonical_serial(raw.baseboard_serial, "baseboardSerial"),
        mac_address_primary=canonical_mac(macs[0], "macAddressPrimary"),
        mac_address_secondary=canonical_mac(macs[1], "macAddressSecondary"),
        disk_serial=canonical_serial(raw.disk_serial, "diskSerial"),
    )
