"""
Narrow token-movement interface consumed by the vault.

The vault never touches balances directly. It can only:
    pull(from, to, amount)    : allowance-based transfer with the vault as spender
    push(to, amount)          : transfer out of the vault's own balance
    refund_pull(from, amount) : hand back a pull and the allowance it consumed
Ledger errors propagate unmodified.
"""

from grantvault.core.identity import normalize_address
from grantvault.core.models import UINT256_MAX
from grantvault.ledger.token import TokenLedger


class TokenGateway:
    """Binds a TokenLedger to the address the vault custodies funds under."""

    def __init__(self, ledger: TokenLedger, vault_address: str) -> None:
        self.ledger        = ledger
        self.vault_address = normalize_address(vault_address)

    def pull(self, from_addr: str, to_addr: str, amount: int) -> None:
        self.ledger.transfer_from(self.vault_address, from_addr, to_addr, amount)

    def push(self, to_addr: str, amount: int) -> None:
        self.ledger.transfer(self.vault_address, to_addr, amount)

    def refund_pull(self, from_addr: str, amount: int) -> None:
        """
        Undo a pull into the vault: return the tokens and re-grant the
        allowance the pull spent. Unlimited allowances were never spent.
        """
        self.ledger.transfer(self.vault_address, from_addr, amount)
        allowance = self.ledger.allowance(from_addr, self.vault_address)
        if allowance != UINT256_MAX:
            self.ledger.approve(
                from_addr,
                self.vault_address,
                min(allowance + amount, UINT256_MAX),
            )

    def custody_balance(self) -> int:
        return self.ledger.balance_of(self.vault_address)

    def __repr__(self) -> str:
        return (
            f"TokenGateway(token={self.ledger.symbol!r}, "
            f"vault_address={self.vault_address!r})"
        )
