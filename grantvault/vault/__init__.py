"""
grantvault Vault

Escrow of time-locked token grants.

Critical Invariants:
- A grant id is issued once and never reoccupied
- At most one of remove/claim ever succeeds for a grant
- Locked amounts never exceed the vault's custody balance
- No failure path moves funds or mutates the registry

Design Philosophy:
- Explicit caller on every call (no ambient sender)
- One lock around every transition
- Transfer-then-insert on creation, delete-then-transfer on finalization
"""

from grantvault.vault.access import AdministratorGate
from grantvault.vault.engine import GrantVault
from grantvault.vault.registry import GrantRegistry

__all__ = ["GrantVault", "GrantRegistry", "AdministratorGate"]
