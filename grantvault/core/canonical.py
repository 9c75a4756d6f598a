"""
grantvault: Canonical JSON Encoding - RFC 8785 (JCS)

Journal signatures and causal hashes are computed over these bytes only.
Key order, whitespace and number formatting can never change a digest.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib

import jcs


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Values must be JSON primitives. Amounts and unlock times are passed as decimal
    strings because uint256 values do not survive IEEE-754 doubles.
    """
    return jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """Lowercase hex SHA-256 of the canonical form (64 characters)."""
    return hashlib.sha256(canonicalize(obj)).hexdigest()
