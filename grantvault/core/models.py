"""
grantvault/core/models.py

Data model for grants and the grant journal.

Grant
    One locked-fund commitment: funder, recipient, amount, unlock time.
    Frozen. A grant that does not exist is represented by None, never by
    a Grant whose fields happen to be zero.

JournalEntry
    One signed, hash-chained record of a committed vault transition.

Journal contracts
    Signing  bytes_signed = canonicalize(entry.to_signing_dict())
             algorithm    = Ed25519, base64url, no padding
    Chain    causal_hash  = SHA-256(canonicalize(prev.to_chain_dict()))
             first entry  = GENESIS_HASH ("0" * 64)
    Time     YYYY-MM-DDTHH:MM:SS.mmmZ from journal_timestamp()
    Nonce    32 random hex characters, unique per entry
    Amounts  amounts and unlock times are decimal strings inside payloads
"""

import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from grantvault.core.canonical import canonical_hash, canonicalize
from grantvault.core.identity import NULL_ADDRESS
from grantvault.core.time import journal_timestamp


JOURNAL_VERSION = "1.0"
GENESIS_HASH    = "0" * 64

UINT256_MAX = 2**256 - 1

_NONCE_HEX_LENGTH      = 32
_PUBLIC_KEY_HEX_LENGTH = 64

_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"
)


# ─────────────────────────────────────────────────────────────
# Grant
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Grant:
    """An active grant held by the vault."""

    funder:           str
    recipient:        str
    amount:           int
    unlock_timestamp: int

    def is_unlocked(self, now: int) -> bool:
        """Claimable from the unlock second onwards; removable strictly before it."""
        return now >= self.unlock_timestamp

    def as_record(self) -> tuple:
        return (self.funder, self.recipient, self.amount, self.unlock_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "funder":           self.funder,
            "recipient":        self.recipient,
            "amount":           str(self.amount),
            "unlock_timestamp": str(self.unlock_timestamp),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Grant":
        return cls(
            funder=           data["funder"],
            recipient=        data["recipient"],
            amount=           int(data["amount"]),
            unlock_timestamp= int(data["unlock_timestamp"]),
        )


# Zeroed record returned by the public grants() view for absent ids.
EMPTY_GRANT_RECORD = (NULL_ADDRESS, NULL_ADDRESS, 0, 0)


# ─────────────────────────────────────────────────────────────
# Journal vocabulary
# ─────────────────────────────────────────────────────────────

class EventType:
    """The only valid values for JournalEntry.event_type."""
    VAULT_CREATED            = "vault_created"
    GRANT_CREATED            = "grant_created"
    GRANT_REMOVED            = "grant_removed"
    GRANT_CLAIMED            = "grant_claimed"
    ADMINISTRATOR_TRANSFERRED = "administrator_transferred"


_VALID_EVENT_TYPES: Set[str] = {
    EventType.VAULT_CREATED,
    EventType.GRANT_CREATED,
    EventType.GRANT_REMOVED,
    EventType.GRANT_CLAIMED,
    EventType.ADMINISTRATOR_TRANSFERRED,
}


@dataclass
class SchemaValidationResult:
    """
    Result of JournalEntry.validate_schema().

    Returned, not raised. bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "SchemaValidationResult(VALID)"
        return f"SchemaValidationResult(INVALID, errors={self.errors})"


# ─────────────────────────────────────────────────────────────
# JournalEntry
# ─────────────────────────────────────────────────────────────

@dataclass
class JournalEntry:
    """A signed record of one committed vault transition."""

    journal_version:   str
    entry_id:          str
    event_type:        str
    vault_address:     str
    signer_public_key: str
    sequence:          int
    nonce:             str
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    @classmethod
    def create(
        cls,
        event_type:        str,
        vault_address:     str,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["JournalEntry"] = None,
    ) -> "JournalEntry":
        """
        Create an unsigned entry chained to `prev`.

        Call .sign(key_manager) immediately after:
            entry = JournalEntry.create(...).sign(key_manager)
        """
        if event_type not in _VALID_EVENT_TYPES:
            raise ValueError(
                f"Invalid event_type '{event_type}'. "
                f"Valid: {sorted(_VALID_EVENT_TYPES)}"
            )
        if not isinstance(payload, dict):
            raise TypeError(
                f"payload must be dict, got {type(payload).__name__}"
            )
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError(
                f"sequence must be non-negative int, got {sequence!r}"
            )
        if (
            not isinstance(signer_public_key, str)
            or len(signer_public_key) != _PUBLIC_KEY_HEX_LENGTH
        ):
            raise ValueError(
                f"signer_public_key must be a {_PUBLIC_KEY_HEX_LENGTH}-char hex string"
            )

        return cls(
            journal_version=   JOURNAL_VERSION,
            entry_id=          f"gv-{uuid.uuid4()}",
            event_type=        event_type,
            vault_address=     vault_address,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            nonce=             secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=         journal_timestamp(),
            causal_hash=       cls._compute_causal_hash(prev),
            payload=           payload,
            signature=         None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JournalEntry":
        """
        Deserialize a JSONL line dict.

        Trusts persisted data; callers must run validate_schema().
        Raises KeyError when a required field is missing.
        """
        return cls(
            journal_version=   data["journal_version"],
            entry_id=          data["entry_id"],
            event_type=        data["event_type"],
            vault_address=     data["vault_address"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            nonce=             data["nonce"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    def validate_schema(self) -> SchemaValidationResult:
        """Check every field format. Reports all problems, not just the first."""
        errors: List[str] = []

        if self.journal_version != JOURNAL_VERSION:
            errors.append(
                f"journal_version: expected '{JOURNAL_VERSION}', got '{self.journal_version}'"
            )

        if self.event_type not in _VALID_EVENT_TYPES:
            errors.append(
                f"event_type '{self.event_type}' not in valid set: "
                f"{sorted(_VALID_EVENT_TYPES)}"
            )

        if not isinstance(self.entry_id, str) or not self.entry_id.startswith("gv-"):
            errors.append(
                f"entry_id must be a string starting with 'gv-', got {self.entry_id!r}"
            )

        if not isinstance(self.vault_address, str) or not self.vault_address:
            errors.append("vault_address must be a non-empty string")

        if not _is_hex(self.signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            errors.append(
                f"signer_public_key must be exactly {_PUBLIC_KEY_HEX_LENGTH} hex chars"
            )

        if not isinstance(self.sequence, int) or self.sequence < 0:
            errors.append(
                f"sequence must be non-negative int, got {self.sequence!r}"
            )

        if not _is_hex(self.nonce, _NONCE_HEX_LENGTH):
            errors.append(f"nonce must be exactly {_NONCE_HEX_LENGTH} hex chars")

        if not isinstance(self.timestamp, str) or not _TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} does not match wire format "
                f"YYYY-MM-DDTHH:MM:SS.mmmZ"
            )

        if not _is_hex(self.causal_hash, 64):
            errors.append("causal_hash must be 64 hex chars")

        if not isinstance(self.payload, dict):
            errors.append(
                f"payload must be dict, got {type(self.payload).__name__}"
            )

        return SchemaValidationResult(valid=len(errors) == 0, errors=errors)

    def to_signing_dict(self) -> Dict[str, Any]:
        """Every field except the signature."""
        return {
            "causal_hash":       self.causal_hash,
            "entry_id":          self.entry_id,
            "event_type":        self.event_type,
            "journal_version":   self.journal_version,
            "nonce":             self.nonce,
            "payload":           self.payload,
            "sequence":          self.sequence,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
            "vault_address":     self.vault_address,
        }

    def to_chain_dict(self) -> Dict[str, Any]:
        """
        The dict hashed into the next entry's causal_hash.
        Same field set as to_signing_dict(); payload edits break the forward chain.
        """
        return self.to_signing_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Full serialization including signature. JSONL persistence only."""
        d = self.to_signing_dict().copy()
        d["signature"] = self.signature
        return d

    def canonical_bytes_for_signing(self) -> bytes:
        return canonicalize(self.to_signing_dict())

    @staticmethod
    def _compute_causal_hash(prev: Optional["JournalEntry"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return canonical_hash(prev.to_chain_dict())

    def expected_causal_hash_from(self, prev: Optional["JournalEntry"]) -> str:
        return JournalEntry._compute_causal_hash(prev)

    def sign(self, key_manager) -> "JournalEntry":
        """Sign in place and return self."""
        self.signature = key_manager.sign(self.canonical_bytes_for_signing())
        return self

    def verify_signature(self, override_public_key_hex: Optional[str] = None) -> bool:
        """
        Verify against the embedded signer key (or an override).
        False for unsigned entries, tampered fields or wrong keys. Never raises.
        """
        if not self.signature:
            return False

        from grantvault.core.crypto import Ed25519KeyManager

        pubkey_hex = override_public_key_hex or self.signer_public_key
        return Ed25519KeyManager.verify_detached(
            self.canonical_bytes_for_signing(), self.signature, pubkey_hex
        )

    def verify_chain(self, prev: Optional["JournalEntry"]) -> bool:
        return self.causal_hash == self.expected_causal_hash_from(prev)

    def verify_sequence(self, expected: int) -> bool:
        return self.sequence == expected

    def is_signed(self) -> bool:
        return bool(self.signature)


def _is_hex(value: Any, length: int) -> bool:
    if not isinstance(value, str) or len(value) != length:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True
