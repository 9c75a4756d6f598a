"""
grantvault/core/replay.py

Journal replay: verification and state reconstruction.

Verification, per entry in file order:
    1. Schema    → entry.validate_schema()        (checked at load, fail fast)
    2. Sequence  → entry.verify_sequence(i)
    3. Chain     → entry.verify_chain(prev)
    4. Signature → entry.verify_signature()
    5. Nonce     → no two entries share a nonce
    6. Vault     → every entry names the same vault_address

Reconstruction walks the events in order and rebuilds the grant
registry (including the id counter) and the current administrator.
An event sequence the vault could never have produced raises JournalError.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set

from grantvault.core.exceptions import GrantNotFoundError, JournalError
from grantvault.core.models import EventType, Grant, JournalEntry
from grantvault.vault.registry import GrantRegistry


@dataclass
class ChainViolation:
    """A single detected violation in the journal."""
    at_sequence:    int
    entry_id:       str
    violation_type: str   # "chain_break" | "invalid_signature" | "sequence_gap" | "duplicate_nonce" | "vault_mismatch"
    detail:         str


@dataclass
class ReplaySummary:
    """Aggregate result of a full journal verification pass."""
    total_entries:      int
    chain_valid:        bool
    violations:         List[ChainViolation]
    valid_signatures:   int
    invalid_signatures: int
    event_type_counts:  Dict[str, int]
    vault_address:      Optional[str]
    first_timestamp:    Optional[str]
    last_timestamp:     Optional[str]


@dataclass
class RebuiltState:
    """Vault state derived from a journal."""
    vault_address: str
    administrator: str
    registry:      GrantRegistry


class JournalReplay:
    """
    Usage:
        replay = JournalReplay()
        replay.load(Path(".grantvault/journal/journal.jsonl"))
        summary = replay.verify()
        state   = replay.rebuild_state()
    """

    def __init__(self, silent: bool = False):
        self.entries:      List[JournalEntry]   = []
        self.violations:   List[ChainViolation] = []
        self._journal_path: Optional[Path]      = None
        self._silent:      bool                 = silent

    # ── Load ──────────────────────────────────────────────────

    def load(self, journal_path: Path) -> None:
        """
        Load a journal JSONL file.

        Raises:
            FileNotFoundError: journal file does not exist
            ValueError        : malformed JSON, missing field or schema violation
        """
        journal_path = Path(journal_path)
        if journal_path.is_dir():
            journal_path = journal_path / "journal.jsonl"
        if not journal_path.exists():
            raise FileNotFoundError(f"Journal not found: {journal_path}")

        entries: List[JournalEntry] = []
        with open(journal_path, "r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    entry = JournalEntry.from_dict(json.loads(line))
                except json.JSONDecodeError as exc:
                    raise ValueError(f"Invalid JSON at line {line_num}: {exc}") from exc
                except (KeyError, TypeError) as exc:
                    raise ValueError(f"Missing or malformed field {exc} at line {line_num}") from exc

                schema = entry.validate_schema()
                if not schema:
                    raise ValueError(
                        f"Schema violation at line {line_num}: {'; '.join(schema.errors)}"
                    )
                entries.append(entry)

        self.entries       = entries
        self.violations    = []
        self._journal_path = journal_path

        if not self._silent:
            print(f"✅ Loaded {len(entries)} journal entries from {journal_path}")

    # ── Verify ────────────────────────────────────────────────

    def verify(self) -> ReplaySummary:
        violations: List[ChainViolation] = []
        seen_nonces: Set[str] = set()
        counts: Dict[str, int] = {}
        valid_sigs = 0
        vault_address = self.entries[0].vault_address if self.entries else None

        prev: Optional[JournalEntry] = None
        for index, entry in enumerate(self.entries):
            counts[entry.event_type] = counts.get(entry.event_type, 0) + 1

            if not entry.verify_sequence(index):
                violations.append(ChainViolation(
                    at_sequence=entry.sequence,
                    entry_id=entry.entry_id,
                    violation_type="sequence_gap",
                    detail=f"expected sequence {index}, got {entry.sequence}",
                ))

            if not entry.verify_chain(prev):
                violations.append(ChainViolation(
                    at_sequence=entry.sequence,
                    entry_id=entry.entry_id,
                    violation_type="chain_break",
                    detail=(
                        f"causal_hash ...{entry.causal_hash[-12:]} does not match "
                        f"...{entry.expected_causal_hash_from(prev)[-12:]}"
                    ),
                ))

            if entry.verify_signature():
                valid_sigs += 1
            else:
                violations.append(ChainViolation(
                    at_sequence=entry.sequence,
                    entry_id=entry.entry_id,
                    violation_type="invalid_signature",
                    detail="Ed25519 signature does not verify over canonical bytes",
                ))

            if entry.nonce in seen_nonces:
                violations.append(ChainViolation(
                    at_sequence=entry.sequence,
                    entry_id=entry.entry_id,
                    violation_type="duplicate_nonce",
                    detail=f"nonce {entry.nonce} already used",
                ))
            seen_nonces.add(entry.nonce)

            if entry.vault_address != vault_address:
                violations.append(ChainViolation(
                    at_sequence=entry.sequence,
                    entry_id=entry.entry_id,
                    violation_type="vault_mismatch",
                    detail=f"entry names vault {entry.vault_address}, journal is {vault_address}",
                ))

            prev = entry

        self.violations = violations
        return ReplaySummary(
            total_entries=      len(self.entries),
            chain_valid=        not any(
                v.violation_type in ("chain_break", "sequence_gap") for v in violations
            ),
            violations=         violations,
            valid_signatures=   valid_sigs,
            invalid_signatures= len(self.entries) - valid_sigs,
            event_type_counts=  counts,
            vault_address=      vault_address,
            first_timestamp=    self.entries[0].timestamp if self.entries else None,
            last_timestamp=     self.entries[-1].timestamp if self.entries else None,
        )

    # ── Reconstruct ───────────────────────────────────────────

    def rebuild_state(self) -> RebuiltState:
        """
        Replay lifecycle events into a fresh GrantRegistry.

        Does not check signatures; call verify() first when the journal
        is not already trusted.
        """
        if not self.entries:
            raise JournalError("Journal is empty")

        first = self.entries[0]
        if first.event_type != EventType.VAULT_CREATED:
            raise JournalError(
                f"Journal must start with {EventType.VAULT_CREATED}, got {first.event_type}"
            )

        registry = GrantRegistry()
        administrator = first.payload.get("administrator")

        for entry in self.entries[1:]:
            payload = entry.payload
            try:
                if entry.event_type == EventType.GRANT_CREATED:
                    grant_id = registry.insert(Grant.from_dict(payload))
                    if grant_id != payload["grant_id"]:
                        raise JournalError(
                            f"Grant id out of order at sequence {entry.sequence}: "
                            f"expected {grant_id}, journal says {payload['grant_id']}"
                        )
                elif entry.event_type in (EventType.GRANT_REMOVED, EventType.GRANT_CLAIMED):
                    registry.delete(payload["grant_id"])
                elif entry.event_type == EventType.ADMINISTRATOR_TRANSFERRED:
                    administrator = payload["current"]
                elif entry.event_type == EventType.VAULT_CREATED:
                    raise JournalError(
                        f"Second {EventType.VAULT_CREATED} at sequence {entry.sequence}"
                    )
            except (KeyError, ValueError, TypeError) as exc:
                raise JournalError(
                    f"Malformed {entry.event_type} payload at sequence {entry.sequence}: {exc}"
                ) from exc
            except GrantNotFoundError as exc:
                raise JournalError(
                    f"Impossible {entry.event_type} at sequence {entry.sequence}: {exc}"
                ) from exc

        if not administrator:
            raise JournalError("Journal does not name an administrator")

        return RebuiltState(
            vault_address=first.vault_address,
            administrator=administrator,
            registry=registry,
        )

    # ── Export ────────────────────────────────────────────────

    def export_json(self, output_path: Path) -> None:
        """Write the last verification result and all entries as one JSON report."""
        summary = self.verify()
        report = {
            "journal":  str(self._journal_path) if self._journal_path else None,
            "summary":  asdict(summary),
            "entries":  [e.to_dict() for e in self.entries],
        }
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
