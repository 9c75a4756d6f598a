"""
grantvault/core/journal.py

Grant journal writer.

emit() MUST, in this exact order:
  1. Acquire lock
  2. JournalEntry.create(event_type, vault_address, signer_public_key,
                         sequence, payload, prev=last_entry)
  3. entry.sign(key_manager)
  4. Assert chain invariants  : causal_hash, sequence
  5. Append to journal.jsonl
  6. Advance internal state   : only after confirmed write
  7. Return the signed entry

No background threads. No batching. No deferred signing.
"""

import json
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

from grantvault.core.crypto import Ed25519KeyManager
from grantvault.core.exceptions import JournalError
from grantvault.core.identity import normalize_address
from grantvault.core.models import GENESIS_HASH, JOURNAL_VERSION, JournalEntry

JOURNAL_FILENAME = "journal.jsonl"


class VaultJournal:
    """
    Append-only, signed, hash-chained record of vault transitions.

    Chain state:
        _sequence    : next sequence number (0, 1, 2, ...)
        _last_entry  : the last JournalEntry appended (or None)

    Thread-safe via internal lock (single process only).
    State survives process restart by reading the last line on __init__.
    """

    def __init__(
        self,
        key_manager:   Ed25519KeyManager,
        vault_address: str,
        journal_path:  str = ".grantvault/journal",
    ) -> None:
        self.key_manager   = key_manager
        self.vault_address = normalize_address(vault_address)

        self._lock:          threading.Lock         = threading.Lock()
        self._sequence:      int                    = 0
        self._last_entry:    Optional[JournalEntry] = None
        self._restore_error: Optional[str]          = None

        self._journal_dir  = Path(journal_path)
        self._journal_dir.mkdir(parents=True, exist_ok=True)
        self._journal_file = self._journal_dir / JOURNAL_FILENAME

        self._restore_state()

    @property
    def journal_file(self) -> Path:
        return self._journal_file

    @property
    def next_sequence(self) -> int:
        with self._lock:
            return self._sequence

    @property
    def restore_error(self) -> Optional[str]:
        """Why the existing journal could not be resumed, or None when it was (or was empty)."""
        return self._restore_error

    # ── Public API ────────────────────────────────────────────

    def emit(self, event_type: str, payload: Dict[str, Any]) -> JournalEntry:
        """
        Append one signed entry.

        Raises JournalError on any invariant violation or write failure;
        the chain state does not advance in that case. A journal whose
        existing tail could not be restored is never appended to.
        """
        with self._lock:
            if self._restore_error is not None:
                raise JournalError(
                    f"Journal tail could not be restored: {self._restore_error}"
                )
            entry = JournalEntry.create(
                event_type=        event_type,
                vault_address=     self.vault_address,
                signer_public_key= self.key_manager.public_key_hex,
                sequence=          self._sequence,
                payload=           payload,
                prev=              self._last_entry,
            ).sign(self.key_manager)

            self._assert_chain_invariants(entry)
            self._append(entry)

            self._sequence  += 1
            self._last_entry = entry
            return entry

    def verify_chain(self) -> bool:
        """
        Re-read the whole file and check sequence, chain and signature of
        every entry. True if intact (or empty), False on any violation.
        """
        if not self._journal_file.exists():
            return True

        try:
            prev = None
            with open(self._journal_file, "r", encoding="utf-8") as f:
                index = 0
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    entry = JournalEntry.from_dict(json.loads(line))
                    if not (
                        entry.verify_sequence(index)
                        and entry.verify_chain(prev)
                        and entry.verify_signature()
                    ):
                        return False
                    prev = entry
                    index += 1
            return True
        except (OSError, ValueError, KeyError, TypeError):
            return False

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "vault_address":    self.vault_address,
                "next_sequence":    self._sequence,
                "last_entry_id":    (
                    self._last_entry.entry_id if self._last_entry else None
                ),
                "last_causal_hash": (
                    self._last_entry.causal_hash if self._last_entry else GENESIS_HASH
                ),
                "journal_file":     str(self._journal_file),
                "journal_version":  JOURNAL_VERSION,
            }

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Resume sequence and chain head from an existing journal.
        A corrupted last line leaves state at genesis, records restore_error
        and issues a RuntimeWarning.
        """
        if not self._journal_file.exists():
            return

        last_line = None
        with open(self._journal_file, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            entry  = JournalEntry.from_dict(json.loads(last_line))
            schema = entry.validate_schema()
            if not schema:
                raise ValueError(f"Schema violation in last journal line: {schema.errors}")
        except (ValueError, KeyError, TypeError) as exc:
            self._restore_error = str(exc)
            warnings.warn(
                f"VaultJournal: could not restore state from {self._journal_file}: {exc}. "
                "Last line may be corrupted. Call verify_chain() before emitting.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence   = entry.sequence + 1
        self._last_entry = entry

    def _assert_chain_invariants(self, entry: JournalEntry) -> None:
        if not entry.verify_sequence(self._sequence):
            raise JournalError(
                f"Chain invariant violated: sequence mismatch: "
                f"expected={self._sequence}, got={entry.sequence}"
            )
        if not entry.verify_chain(self._last_entry):
            raise JournalError("Chain invariant violated: causal_hash mismatch")

    def _append(self, entry: JournalEntry) -> None:
        try:
            with open(self._journal_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict()) + "\n")
        except OSError as exc:
            raise JournalError(f"Journal write failed - {exc}") from exc

    def __repr__(self) -> str:
        return f"VaultJournal(file={str(self._journal_file)!r}, next_sequence={self._sequence})"
