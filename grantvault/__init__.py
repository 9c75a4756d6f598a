"""
grantvault/__init__.py

grantvault: escrow vault for time-locked token grants.

An administrator locks a funder's tokens for a recipient until an
unlock time. Before unlock the funder may take them back; from unlock
onwards the recipient may claim them. Exactly one of the two ever
happens. Every committed transition can be recorded in a signed,
hash-chained journal and replayed later.
"""

__version__         = "0.3.0"
__journal_version__ = "1.0"

from grantvault.core.exceptions import (
    AlreadyUnlockedError,
    ConfigError,
    GrantNotFoundError,
    GrantVaultError,
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidAddressError,
    JournalError,
    NotYetUnlockedError,
    UnauthorizedError,
    ValidationError,
)
from grantvault.core.identity import NULL_ADDRESS
from grantvault.core.models import EMPTY_GRANT_RECORD, GENESIS_HASH, EventType, Grant
from grantvault.core.time import ManualClock, SystemClock
from grantvault.core.crypto import Ed25519KeyManager
from grantvault.core.journal import VaultJournal
from grantvault.ledger import TokenGateway, TokenLedger
from grantvault.vault import GrantVault
from grantvault.runtime import VaultConfig, VaultContext

__all__ = [
    # Vault
    "GrantVault",
    "Grant",
    "EventType",
    # Ledger
    "TokenLedger",
    "TokenGateway",
    # Journal
    "VaultJournal",
    "Ed25519KeyManager",
    # Runtime
    "VaultConfig",
    "VaultContext",
    "ManualClock",
    "SystemClock",
    # Errors
    "GrantVaultError",
    "ValidationError",
    "InvalidAddressError",
    "UnauthorizedError",
    "GrantNotFoundError",
    "AlreadyUnlockedError",
    "NotYetUnlockedError",
    "InsufficientFundsError",
    "InsufficientAllowanceError",
    "JournalError",
    "ConfigError",
    # Constants
    "NULL_ADDRESS",
    "EMPTY_GRANT_RECORD",
    "GENESIS_HASH",
]
