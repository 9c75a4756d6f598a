"""
Participant identities.

An identity is a 20-byte address written as "0x" followed by 40 hex
characters. Addresses are compared in lowercase. The all-zero address
is the null identity and never names a real participant.
"""

import hashlib
import re
from typing import Any

from grantvault.core.exceptions import InvalidAddressError

NULL_ADDRESS = "0x" + "0" * 40

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def normalize_address(address: str) -> str:
    """Lowercase an address for comparison and storage."""
    return address.strip().lower()


def is_valid_address(address: Any) -> bool:
    """True if `address` is a well-formed address (null included)."""
    return isinstance(address, str) and bool(_ADDRESS_RE.match(normalize_address(address)))


def is_null_address(address: Any) -> bool:
    return isinstance(address, str) and normalize_address(address) == NULL_ADDRESS


def require_address(address: Any, role: str) -> str:
    """
    Return the normalized address, or raise InvalidAddressError.

    `role` names the participant ("funder", "recipient", ...) so the
    failure message says which argument was rejected.
    """
    if not is_valid_address(address) or is_null_address(address):
        raise InvalidAddressError(
            f"Invalid {role} address!",
            details={"role": role, "address": address},
        )
    return normalize_address(address)


def derive_address(*parts: str) -> str:
    """
    Deterministic address from arbitrary labels.

    Takes the last 20 bytes of SHA-256 over the ":"-joined parts.
    Used to give a vault a stable custody address when none is configured.
    """
    digest = hashlib.sha256(":".join(parts).encode("utf-8")).digest()
    return "0x" + digest[-20:].hex()
