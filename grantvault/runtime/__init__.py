"""
grantvault Runtime - configuration and wiring.
"""

from grantvault.runtime.config import VaultConfig, load_config
from grantvault.runtime.context import VaultContext

__all__ = [
    "VaultConfig",
    "VaultContext",
    "load_config",
]
