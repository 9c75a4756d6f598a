"""
Runtime context for a configured vault.

The token ledger lives in memory only. A context built on an existing
journal that still holds active grants must be given the ledger that
backs them (`token=`); a fresh ledger has no custody balance and the
vault refuses to restore onto it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from grantvault.core.crypto import Ed25519KeyManager
from grantvault.core.identity import derive_address
from grantvault.core.journal import VaultJournal
from grantvault.ledger.gateway import TokenGateway
from grantvault.ledger.token import TokenLedger
from grantvault.runtime.config import VaultConfig, load_config
from grantvault.vault.engine import GrantVault


@dataclass
class VaultContext:
    """Everything a running vault needs, wired together."""

    config:      VaultConfig
    token:       TokenLedger
    gateway:     TokenGateway
    vault:       GrantVault
    journal:     Optional[VaultJournal]
    key_manager: Optional[Ed25519KeyManager]

    @classmethod
    def from_config(
        cls,
        config: VaultConfig,
        clock=None,
        token:  Optional[TokenLedger] = None,
    ) -> "VaultContext":
        """
        Build ledger, gateway, journal and vault from a VaultConfig.

        `token` reuses an existing ledger instead of creating an empty one.
        """
        vault_address = config.vault_address or derive_address(
            "grantvault", config.token_symbol, config.administrator
        )

        if token is None:
            token = TokenLedger(
                name=     config.token_name,
                symbol=   config.token_symbol,
                owner=    config.token_owner or config.administrator,
                decimals= config.token_decimals,
            )
        gateway = TokenGateway(token, vault_address)

        key_manager = None
        journal = None
        if config.journal_enabled:
            key_manager = _load_or_create_key(config.key_file)
            journal = VaultJournal(
                key_manager=   key_manager,
                vault_address= vault_address,
                journal_path=  str(config.journal_path),
            )

        vault = GrantVault(
            gateway=       gateway,
            administrator= config.administrator,
            clock=         clock,
            journal=       journal,
        )

        return cls(
            config=      config,
            token=       token,
            gateway=     gateway,
            vault=       vault,
            journal=     journal,
            key_manager= key_manager,
        )

    @classmethod
    def from_yaml(
        cls,
        config_file: Path,
        clock=None,
        token:       Optional[TokenLedger] = None,
    ) -> "VaultContext":
        return cls.from_config(load_config(config_file), clock=clock, token=token)

    def __repr__(self) -> str:
        return (
            f"VaultContext("
            f"vault={self.vault.address!r}, "
            f"token={self.token.symbol!r}, "
            f"journal={'on' if self.journal else 'off'})"
        )


def _load_or_create_key(key_file: Path) -> Ed25519KeyManager:
    key_file = Path(key_file)
    if key_file.exists():
        return Ed25519KeyManager.from_file(key_file)
    key_manager = Ed25519KeyManager.generate()
    key_manager.save(key_file)
    return key_manager
