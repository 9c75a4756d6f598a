"""
grantvault Token Ledger

The fungible-token collaborator the vault custodies funds in, and the
pull/push gateway through which the vault moves them.
"""

from grantvault.ledger.gateway import TokenGateway
from grantvault.ledger.token import TokenEvent, TokenLedger

__all__ = ["TokenLedger", "TokenEvent", "TokenGateway"]
