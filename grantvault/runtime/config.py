"""
Vault configuration.

Loaded from YAML, then overridden from the environment:

    GRANTVAULT_JOURNAL_PATH   journal directory
    GRANTVAULT_KEY_FILE       journal signing key (PEM)
    GRANTVAULT_JOURNAL        "on" / "off"
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from grantvault.core.exceptions import ConfigError, InvalidAddressError
from grantvault.core.identity import require_address

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY  = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class VaultConfig:
    administrator:   str
    vault_address:   Optional[str] = None
    token_name:      str           = "token"
    token_symbol:    str           = "TKN"
    token_decimals:  int           = 18
    token_owner:     Optional[str] = None
    journal_enabled: bool          = True
    journal_path:    Path          = Path(".grantvault/journal")
    key_file:        Path          = Path(".grantvault/keys/journal.pem")

    @classmethod
    def from_yaml(cls, config_file: Path) -> "VaultConfig":
        """Load configuration from a YAML file."""
        config_file = Path(config_file)
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        with open(config_file, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultConfig":
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a mapping")

        vault   = _section(data, "vault")
        token   = _section(data, "token")
        journal = _section(data, "journal")

        if "administrator" not in vault:
            raise ConfigError("vault.administrator is required")

        try:
            administrator = require_address(vault["administrator"], "administrator")
            vault_address = (
                require_address(vault["address"], "vault")
                if vault.get("address") else None
            )
            token_owner = (
                require_address(token["owner"], "token owner")
                if token.get("owner") else None
            )
        except InvalidAddressError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc

        decimals = token.get("decimals", 18)
        if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
            raise ConfigError(f"token.decimals must be a non-negative int, got {decimals!r}")

        return cls(
            administrator=   administrator,
            vault_address=   vault_address,
            token_name=      str(token.get("name", "token")),
            token_symbol=    str(token.get("symbol", "TKN")),
            token_decimals=  decimals,
            token_owner=     token_owner,
            journal_enabled= bool(journal.get("enabled", True)),
            journal_path=    Path(journal.get("path", ".grantvault/journal")),
            key_file=        Path(journal.get("key_file", ".grantvault/keys/journal.pem")),
        )

    def with_env(self, environ: Optional[Mapping[str, str]] = None) -> "VaultConfig":
        """Return a copy with GRANTVAULT_* environment overrides applied."""
        env = os.environ if environ is None else environ
        changes: Dict[str, Any] = {}

        if env.get("GRANTVAULT_JOURNAL_PATH"):
            changes["journal_path"] = Path(env["GRANTVAULT_JOURNAL_PATH"])
        if env.get("GRANTVAULT_KEY_FILE"):
            changes["key_file"] = Path(env["GRANTVAULT_KEY_FILE"])
        if env.get("GRANTVAULT_JOURNAL"):
            flag = env["GRANTVAULT_JOURNAL"].strip().lower()
            if flag in _TRUTHY:
                changes["journal_enabled"] = True
            elif flag in _FALSY:
                changes["journal_enabled"] = False
            else:
                raise ConfigError(f"GRANTVAULT_JOURNAL must be on/off, got {flag!r}")

        return replace(self, **changes) if changes else self


def load_config(config_file: Path) -> VaultConfig:
    """YAML file plus environment overrides."""
    return VaultConfig.from_yaml(config_file).with_env()


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section must be a mapping")
    return section
