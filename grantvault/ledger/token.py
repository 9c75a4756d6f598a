"""
Fungible token ledger with ERC20 semantics.

Balances, allowances and a Transfer/Approval event log, held in memory.
The vault only consumes this through TokenGateway; it lives here so the
vault has a real ledger to custody funds in.

Rules:
- Balance is checked before allowance in transfer_from.
- An allowance of UINT256_MAX is unlimited and is never decremented.
- Minting is restricted to the ledger owner.
- Every state change runs under one lock.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import ClassVar, Dict, List

from grantvault.core.exceptions import (
    InsufficientAllowanceError,
    InsufficientFundsError,
    UnauthorizedError,
    ValidationError,
)
from grantvault.core.identity import NULL_ADDRESS, normalize_address, require_address
from grantvault.core.models import UINT256_MAX

logger = logging.getLogger(__name__)


@dataclass
class TokenEvent:
    """A Transfer or Approval record."""

    event_type:   str  # "Transfer" or "Approval"
    from_address: str
    to_address:   str
    value:        int


@dataclass
class TokenLedger:
    """
    ERC20-style token.

    All mutating methods take the acting address first, in the place
    msg.sender would have on chain.
    """

    name:     str
    symbol:   str
    owner:    str
    decimals: int = 18

    total_supply: int = 0
    balances:     Dict[str, int] = field(default_factory=dict)
    allowances:   Dict[str, Dict[str, int]] = field(default_factory=dict)
    events:       List[TokenEvent] = field(default_factory=list)

    UINT256_MAX: ClassVar[int] = UINT256_MAX

    def __post_init__(self) -> None:
        self.owner = require_address(self.owner, "owner")
        self._lock = threading.RLock()

    # ==================== View Functions ====================

    def balance_of(self, account: str) -> int:
        with self._lock:
            return self.balances.get(normalize_address(account), 0)

    def allowance(self, owner: str, spender: str) -> int:
        with self._lock:
            return self.allowances.get(normalize_address(owner), {}).get(
                normalize_address(spender), 0
            )

    # ==================== State-Changing Functions ====================

    def mint(self, caller: str, to: str, amount: int) -> bool:
        """Create `amount` new tokens for `to`. Owner only."""
        with self._lock:
            if normalize_address(caller) != self.owner:
                raise UnauthorizedError(
                    "ERC20: caller is not owner",
                    details={"caller": caller},
                )
            to_norm = require_address(to, "recipient")
            self._validate_amount(amount)
            if self.total_supply + amount > UINT256_MAX:
                raise ValidationError("ERC20: total supply exceeds uint256")

            self.total_supply += amount
            self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
            self._emit("Transfer", NULL_ADDRESS, to_norm, amount)

            logger.info(
                "ERC20 mint",
                extra={
                    "event": "erc20.mint",
                    "token": self.symbol,
                    "to": to_norm,
                    "amount": amount,
                    "new_supply": self.total_supply,
                },
            )
            return True

    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        """Move `amount` from the sender's own balance."""
        with self._lock:
            sender_norm = normalize_address(sender)
            recipient_norm = require_address(recipient, "recipient")
            self._validate_amount(amount)

            self._move(sender_norm, recipient_norm, amount)
            return True

    def approve(self, owner: str, spender: str, amount: int) -> bool:
        """Set (not add to) the allowance `spender` may pull from `owner`."""
        with self._lock:
            owner_norm = normalize_address(owner)
            spender_norm = require_address(spender, "spender")
            self._validate_amount(amount)

            self.allowances.setdefault(owner_norm, {})[spender_norm] = amount
            self._emit("Approval", owner_norm, spender_norm, amount)
            return True

    def transfer_from(self, spender: str, from_addr: str, to_addr: str, amount: int) -> bool:
        """
        Move `amount` from `from_addr` to `to_addr` on the strength of an allowance.

        Raises:
            InsufficientFundsError:     from_addr's balance is below amount
            InsufficientAllowanceError: spender's allowance is below amount
        """
        with self._lock:
            spender_norm = normalize_address(spender)
            from_norm = normalize_address(from_addr)
            to_norm = require_address(to_addr, "recipient")
            self._validate_amount(amount)

            from_balance = self.balances.get(from_norm, 0)
            if from_balance < amount:
                raise InsufficientFundsError(
                    "ERC20: insufficient-balance",
                    details={"account": from_norm, "balance": from_balance, "amount": amount},
                )

            current_allowance = self.allowances.get(from_norm, {}).get(spender_norm, 0)
            if current_allowance < amount:
                raise InsufficientAllowanceError(
                    "ERC20: insufficient-allowance",
                    details={
                        "owner": from_norm,
                        "spender": spender_norm,
                        "allowance": current_allowance,
                        "amount": amount,
                    },
                )

            if current_allowance != UINT256_MAX:
                self.allowances[from_norm][spender_norm] = current_allowance - amount

            self._move(from_norm, to_norm, amount)
            return True

    # ==================== Internals ====================

    def _move(self, from_norm: str, to_norm: str, amount: int) -> None:
        from_balance = self.balances.get(from_norm, 0)
        if from_balance < amount:
            raise InsufficientFundsError(
                "ERC20: insufficient-balance",
                details={"account": from_norm, "balance": from_balance, "amount": amount},
            )

        self.balances[from_norm] = from_balance - amount
        self.balances[to_norm] = self.balances.get(to_norm, 0) + amount
        self._emit("Transfer", from_norm, to_norm, amount)

        logger.debug(
            "ERC20 transfer",
            extra={
                "event": "erc20.transfer",
                "token": self.symbol,
                "from": from_norm,
                "to": to_norm,
                "amount": amount,
            },
        )

    def _validate_amount(self, amount: int) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(f"ERC20: amount must be int, got {type(amount).__name__}")
        if amount < 0:
            raise ValidationError("ERC20: amount cannot be negative")
        if amount > UINT256_MAX:
            raise ValidationError("ERC20: amount exceeds uint256")

    def _emit(self, event_type: str, from_addr: str, to_addr: str, value: int) -> None:
        self.events.append(
            TokenEvent(
                event_type=event_type,
                from_address=from_addr,
                to_address=to_addr,
                value=value,
            )
        )
