"""
Grant lifecycle engine.

Three transitions, each one atomic under the vault lock:

    create_grant  Absent → Active   administrator only; funds pulled, then inserted
    remove_grant  Active → Absent   funder only, strictly before unlock; deleted, then refunded
    claim_grant   Active → Absent   recipient only, at or after unlock; deleted, then paid

Creation is transfer-then-mutate: a failed pull leaves the registry
untouched. Finalization is mutate-then-transfer: the grant is absent for
the whole duration of the outgoing transfer, so nothing running inside
that transfer can finalize it a second time. If the outgoing transfer
fails the grant is reinstated and the error propagates.

Transitions are appended to the journal, when one is attached. A
creation that cannot be journaled is undone (grant retracted, funds and
allowance returned) before the JournalError propagates. A finalization
has already paid out by then, so it stands and the error says so.
"""

import logging
import threading
from typing import List, Optional, Tuple

from grantvault.core.exceptions import (
    AlreadyUnlockedError,
    JournalError,
    NotYetUnlockedError,
    UnauthorizedError,
    ValidationError,
)
from grantvault.core.identity import normalize_address, require_address
from grantvault.core.journal import VaultJournal
from grantvault.core.models import EMPTY_GRANT_RECORD, UINT256_MAX, EventType, Grant
from grantvault.core.time import SystemClock
from grantvault.ledger.gateway import TokenGateway
from grantvault.vault.access import AdministratorGate
from grantvault.vault.registry import GrantRegistry

logger = logging.getLogger(__name__)


class GrantVault:
    """
    Escrow vault for time-locked token grants.

    Every public method takes the acting identity explicitly as `caller`.
    """

    def __init__(
        self,
        gateway:       TokenGateway,
        administrator: str,
        clock=None,
        journal:       Optional[VaultJournal] = None,
    ) -> None:
        self._gateway  = gateway
        self._clock    = clock or SystemClock()
        self._journal  = journal
        self._lock     = threading.RLock()
        self._registry = GrantRegistry()
        self._gate     = AdministratorGate(administrator)

        if journal is not None:
            self._attach_journal(journal)

    # ── Properties ────────────────────────────────────────────

    @property
    def address(self) -> str:
        """Custody address the vault holds funds under."""
        return self._gateway.vault_address

    @property
    def clock(self):
        return self._clock

    # ── Lifecycle ─────────────────────────────────────────────

    def create_grant(
        self,
        caller:           str,
        funder:           str,
        recipient:        str,
        amount:           int,
        unlock_timestamp: int,
    ) -> int:
        """
        Lock `amount` from `funder` for `recipient` until `unlock_timestamp`.

        The funder must have approved at least `amount` to the vault address.

        Returns:
            The new grant id.

        Raises:
            UnauthorizedError:          caller is not the administrator
            InvalidAddressError:        funder or recipient is null or malformed
            ValidationError:            amount or unlock_timestamp out of range
            InsufficientFundsError:     funder balance below amount
            InsufficientAllowanceError: vault allowance below amount
            JournalError:               the journal write failed; nothing was created
        """
        with self._lock:
            self._gate.require_administrator(caller)
            funder_norm = require_address(funder, "funder")
            recipient_norm = require_address(recipient, "recipient")
            _require_uint("amount", amount)
            _require_uint("unlock_timestamp", unlock_timestamp)

            self._gateway.pull(funder_norm, self.address, amount)

            grant = Grant(
                funder=funder_norm,
                recipient=recipient_norm,
                amount=amount,
                unlock_timestamp=unlock_timestamp,
            )
            grant_id = self._registry.insert(grant)

            try:
                self._record(
                    EventType.GRANT_CREATED,
                    {"grant_id": grant_id, **grant.to_dict()},
                    committed=False,
                )
            except JournalError:
                self._registry.retract(grant_id)
                self._gateway.refund_pull(funder_norm, amount)
                logger.warning(
                    "Grant creation rolled back",
                    extra={"event": "vault.grant_rolled_back", "grant_id": grant_id},
                )
                raise

            logger.info(
                "Grant created",
                extra={
                    "event": "vault.grant_created",
                    "grant_id": grant_id,
                    "funder": funder_norm,
                    "recipient": recipient_norm,
                    "amount": amount,
                    "unlock_timestamp": unlock_timestamp,
                },
            )
            return grant_id

    def remove_grant(self, caller: str, grant_id: int) -> Grant:
        """
        Refund an active grant to its funder before it unlocks.

        Returns:
            The grant that was removed.

        Raises:
            GrantNotFoundError:   grant absent
            UnauthorizedError:    caller is not the funder
            AlreadyUnlockedError: now >= unlock_timestamp
        """
        with self._lock:
            grant = self._registry.require(grant_id)
            if not _same_identity(caller, grant.funder):
                raise UnauthorizedError(
                    "Only the funder can remove a grant!",
                    details={"grant_id": grant_id, "caller": caller},
                )
            now = self._clock.now()
            if grant.is_unlocked(now):
                raise AlreadyUnlockedError(
                    "The grant has already been unlocked!",
                    details={"grant_id": grant_id, "unlock_timestamp": grant.unlock_timestamp, "now": now},
                )

            self._finalize(grant_id, grant, payee=grant.funder)

            logger.info(
                "Grant removed",
                extra={
                    "event": "vault.grant_removed",
                    "grant_id": grant_id,
                    "funder": grant.funder,
                    "amount": grant.amount,
                },
            )
            self._record(
                EventType.GRANT_REMOVED,
                {"grant_id": grant_id, "funder": grant.funder, "amount": str(grant.amount)},
            )
            return grant

    def claim_grant(self, caller: str, grant_id: int) -> Grant:
        """
        Pay an unlocked grant to its recipient.

        Returns:
            The grant that was claimed.

        Raises:
            GrantNotFoundError:  grant absent
            UnauthorizedError:   caller is not the recipient
            NotYetUnlockedError: now < unlock_timestamp
        """
        with self._lock:
            grant = self._registry.require(grant_id)
            if not _same_identity(caller, grant.recipient):
                raise UnauthorizedError(
                    "Only the recipient can claim a grant!",
                    details={"grant_id": grant_id, "caller": caller},
                )
            now = self._clock.now()
            if not grant.is_unlocked(now):
                raise NotYetUnlockedError(
                    "The grant has not been unlocked yet!",
                    details={"grant_id": grant_id, "unlock_timestamp": grant.unlock_timestamp, "now": now},
                )

            self._finalize(grant_id, grant, payee=grant.recipient)

            logger.info(
                "Grant claimed",
                extra={
                    "event": "vault.grant_claimed",
                    "grant_id": grant_id,
                    "recipient": grant.recipient,
                    "amount": grant.amount,
                },
            )
            self._record(
                EventType.GRANT_CLAIMED,
                {"grant_id": grant_id, "recipient": grant.recipient, "amount": str(grant.amount)},
            )
            return grant

    # ── Administration ────────────────────────────────────────

    def current_administrator(self) -> str:
        with self._lock:
            return self._gate.current_administrator()

    def transfer_administration(self, caller: str, new_administrator: str) -> None:
        with self._lock:
            previous = self._gate.transfer(caller, new_administrator)
            current = self._gate.current_administrator()
            logger.info(
                "Administrator transferred",
                extra={
                    "event": "vault.administrator_transferred",
                    "previous": previous,
                    "current": current,
                },
            )
            self._record(
                EventType.ADMINISTRATOR_TRANSFERRED,
                {"previous": previous, "current": current},
            )

    # ── Views ─────────────────────────────────────────────────

    def get_grant(self, grant_id: int) -> Optional[Grant]:
        """The active grant at `grant_id`, or None when absent."""
        with self._lock:
            return self._registry.get(grant_id)

    def grants(self, grant_id: int) -> Tuple[str, str, int, int]:
        """
        (funder, recipient, amount, unlock_timestamp) for `grant_id`.
        Absent ids read as (NULL_ADDRESS, NULL_ADDRESS, 0, 0).
        """
        grant = self.get_grant(grant_id)
        return grant.as_record() if grant is not None else EMPTY_GRANT_RECORD

    def active_grants(self) -> List[Tuple[int, Grant]]:
        with self._lock:
            return list(self._registry.items())

    @property
    def next_grant_id(self) -> int:
        with self._lock:
            return self._registry.next_id

    def total_locked(self) -> int:
        with self._lock:
            return self._registry.total_locked()

    def custody_balance(self) -> int:
        return self._gateway.custody_balance()

    # ── Internal ──────────────────────────────────────────────

    def _finalize(self, grant_id: int, grant: Grant, payee: str) -> None:
        self._registry.delete(grant_id)
        try:
            self._gateway.push(payee, grant.amount)
        except Exception:
            self._registry.reinstate(grant_id, grant)
            raise

    def _record(self, event_type: str, payload: dict, committed: bool = True) -> None:
        """
        Append a transition to the journal.

        On failure the JournalError details carry the payload and whether
        the transition stands (`committed`) or is being undone by the caller.
        """
        if self._journal is None:
            return
        try:
            self._journal.emit(event_type, payload)
        except Exception as exc:
            logger.error(
                "Journal write failed",
                extra={
                    "event": "vault.journal_failed",
                    "event_type": event_type,
                    "committed": committed,
                },
            )
            raise JournalError(
                f"Failed to journal {event_type}: {exc}",
                details={"event_type": event_type, "committed": committed, **payload},
            ) from exc

    def _attach_journal(self, journal: VaultJournal) -> None:
        if normalize_address(journal.vault_address) != self.address:
            raise JournalError(
                "Journal belongs to a different vault",
                details={"journal_vault": journal.vault_address, "vault": self.address},
            )

        if journal.restore_error is not None:
            raise JournalError(
                "Journal could not be restored; refusing to attach",
                details={
                    "journal_file": str(journal.journal_file),
                    "reason": journal.restore_error,
                },
            )

        if journal.next_sequence == 0:
            self._record(
                EventType.VAULT_CREATED,
                {
                    "vault": self.address,
                    "token": self._gateway.ledger.symbol,
                    "administrator": self._gate.current_administrator(),
                },
                committed=False,
            )
            return

        from grantvault.core.replay import JournalReplay

        replay = JournalReplay(silent=True)
        try:
            replay.load(journal.journal_file)
        except (OSError, ValueError) as exc:
            raise JournalError(f"Cannot restore vault from journal: {exc}") from exc
        summary = replay.verify()
        if summary.violations:
            raise JournalError(
                "Refusing to restore from a journal with violations",
                details={"violations": len(summary.violations)},
            )
        state = replay.rebuild_state()
        if state.vault_address != self.address:
            raise JournalError(
                "Journal was written by a different vault",
                details={"journal_vault": state.vault_address, "vault": self.address},
            )

        custody = self.custody_balance()
        locked  = state.registry.total_locked()
        if custody < locked:
            raise JournalError(
                "Journal grants exceed the vault's custody balance",
                details={"locked": locked, "custody": custody},
            )

        self._registry = state.registry
        self._gate     = AdministratorGate(state.administrator)
        logger.info(
            "Vault state restored from journal",
            extra={
                "event": "vault.restored",
                "active_grants": len(state.registry),
                "next_grant_id": state.registry.next_id,
            },
        )

    def __repr__(self) -> str:
        return (
            f"GrantVault(address={self.address!r}, "
            f"active_grants={len(self._registry)}, "
            f"next_grant_id={self._registry.next_id})"
        )


def _same_identity(caller, expected: str) -> bool:
    return isinstance(caller, str) and normalize_address(caller) == expected


def _require_uint(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{name} must be an int, got {type(value).__name__}",
            details={name: value},
        )
    if not 0 <= value <= UINT256_MAX:
        raise ValidationError(
            f"{name} must be within [0, 2**256 - 1]",
            details={name: value},
        )
