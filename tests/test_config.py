"""
tests/test_config.py

VaultConfig loading (YAML + environment) and VaultContext wiring.

Run:
    pytest tests/test_config.py -v
"""

from pathlib import Path

import pytest
import yaml

from grantvault.core.exceptions import ConfigError, JournalError
from grantvault.core.identity import is_valid_address
from grantvault.core.time import ManualClock
from grantvault.runtime import VaultConfig, VaultContext, load_config


ADMIN     = "0x" + "a" * 40
FUNDER    = "0x" + "f" * 40
RECIPIENT = "0x" + "e" * 40
VAULT     = "0x" + "9" * 40


def write_config(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "grantvault.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def config_data(tmp_path):
    return {
        "vault": {"administrator": ADMIN, "address": VAULT},
        "token": {"name": "Grant Token", "symbol": "GRT", "decimals": 6},
        "journal": {
            "enabled": True,
            "path": str(tmp_path / "journal"),
            "key_file": str(tmp_path / "keys" / "journal.pem"),
        },
    }


class TestVaultConfig:

    def test_from_yaml(self, tmp_path, config_data):
        config = VaultConfig.from_yaml(write_config(tmp_path, config_data))
        assert config.administrator == ADMIN
        assert config.vault_address == VAULT
        assert config.token_symbol == "GRT"
        assert config.token_decimals == 6
        assert config.journal_path == tmp_path / "journal"

    def test_defaults(self):
        config = VaultConfig.from_dict({"vault": {"administrator": ADMIN}})
        assert config.vault_address is None
        assert config.token_name == "token"
        assert config.token_symbol == "TKN"
        assert config.token_decimals == 18
        assert config.journal_enabled is True
        assert config.journal_path == Path(".grantvault/journal")

    def test_administrator_required(self):
        with pytest.raises(ConfigError, match="administrator is required"):
            VaultConfig.from_dict({"vault": {}})

    def test_null_administrator_rejected(self):
        with pytest.raises(ConfigError):
            VaultConfig.from_dict({"vault": {"administrator": "0x" + "0" * 40}})

    def test_bad_decimals_rejected(self):
        with pytest.raises(ConfigError):
            VaultConfig.from_dict({"vault": {"administrator": ADMIN}, "token": {"decimals": -1}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ConfigError):
            VaultConfig.from_dict({"vault": ["nope"]})

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            VaultConfig.from_yaml(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("vault: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            VaultConfig.from_yaml(path)


class TestEnvironmentOverrides:

    def test_overrides_apply(self, tmp_path):
        config = VaultConfig.from_dict({"vault": {"administrator": ADMIN}}).with_env({
            "GRANTVAULT_JOURNAL_PATH": str(tmp_path / "elsewhere"),
            "GRANTVAULT_KEY_FILE":     str(tmp_path / "k.pem"),
            "GRANTVAULT_JOURNAL":      "off",
        })
        assert config.journal_path == tmp_path / "elsewhere"
        assert config.key_file == tmp_path / "k.pem"
        assert config.journal_enabled is False

    def test_no_overrides_returns_same_config(self):
        config = VaultConfig.from_dict({"vault": {"administrator": ADMIN}})
        assert config.with_env({}) is config

    def test_bad_journal_flag(self):
        config = VaultConfig.from_dict({"vault": {"administrator": ADMIN}})
        with pytest.raises(ConfigError):
            config.with_env({"GRANTVAULT_JOURNAL": "maybe"})

    def test_load_config_reads_process_env(self, tmp_path, config_data, monkeypatch):
        monkeypatch.setenv("GRANTVAULT_JOURNAL", "0")
        config = load_config(write_config(tmp_path, config_data))
        assert config.journal_enabled is False


class TestVaultContext:

    def test_wires_a_working_vault(self, tmp_path, config_data):
        config = VaultConfig.from_yaml(write_config(tmp_path, config_data))
        ctx = VaultContext.from_config(config, clock=ManualClock(100))

        assert ctx.vault.address == VAULT
        assert ctx.token.symbol == "GRT"
        assert ctx.token.owner == ADMIN
        assert ctx.journal is not None
        assert (tmp_path / "keys" / "journal.pem").exists()

        ctx.token.mint(ADMIN, FUNDER, 100)
        ctx.token.approve(FUNDER, ctx.vault.address, 100)
        gid = ctx.vault.create_grant(ADMIN, FUNDER, RECIPIENT, 100, 200)
        assert ctx.vault.grants(gid) == (FUNDER, RECIPIENT, 100, 200)
        assert ctx.journal.next_sequence == 2

    def test_key_is_reused_across_contexts(self, tmp_path, config_data):
        config = VaultConfig.from_dict(config_data)
        first = VaultContext.from_config(config)
        second_config = VaultConfig.from_dict({
            **config_data,
            "journal": {**config_data["journal"], "path": str(tmp_path / "journal2")},
        })
        second = VaultContext.from_config(second_config)
        assert first.key_manager.public_key_hex == second.key_manager.public_key_hex

    def test_journal_disabled(self, tmp_path):
        config = VaultConfig.from_dict({
            "vault": {"administrator": ADMIN},
            "journal": {"enabled": False, "key_file": str(tmp_path / "k.pem")},
        })
        ctx = VaultContext.from_config(config)
        assert ctx.journal is None
        assert ctx.key_manager is None
        assert not (tmp_path / "k.pem").exists()
        assert is_valid_address(ctx.vault.address)
        assert "journal=off" in repr(ctx)

    def test_derived_address_is_stable(self):
        config = VaultConfig.from_dict({
            "vault": {"administrator": ADMIN},
            "journal": {"enabled": False},
        })
        assert VaultContext.from_config(config).vault.address == \
            VaultContext.from_config(config).vault.address


class TestVaultContextRestart:

    def _first_run(self, tmp_path, config_data):
        config_file = write_config(tmp_path, config_data)
        ctx = VaultContext.from_yaml(config_file, clock=ManualClock(100))
        ctx.token.mint(ADMIN, FUNDER, 100)
        ctx.token.approve(FUNDER, ctx.vault.address, 100)
        gid = ctx.vault.create_grant(ADMIN, FUNDER, RECIPIENT, 60, 200)
        return config_file, ctx, gid

    def test_restart_with_same_ledger_resumes_grants(self, tmp_path, config_data):
        config_file, ctx, gid = self._first_run(tmp_path, config_data)

        restarted = VaultContext.from_yaml(config_file, clock=ManualClock(200), token=ctx.token)
        assert restarted.token is ctx.token
        assert restarted.vault.grants(gid) == (FUNDER, RECIPIENT, 60, 200)
        assert restarted.vault.next_grant_id == 1
        assert restarted.journal.next_sequence == 2

        restarted.vault.claim_grant(RECIPIENT, gid)
        assert ctx.token.balance_of(RECIPIENT) == 60
        assert restarted.journal.next_sequence == 3

    def test_restart_with_fresh_ledger_refused_while_grants_active(self, tmp_path, config_data):
        config_file, _, _ = self._first_run(tmp_path, config_data)

        with pytest.raises(JournalError, match="custody"):
            VaultContext.from_yaml(config_file)

    def test_restart_with_fresh_ledger_after_grants_settle(self, tmp_path, config_data):
        config_file, ctx, gid = self._first_run(tmp_path, config_data)
        ctx.vault.remove_grant(FUNDER, gid)

        restarted = VaultContext.from_yaml(config_file)
        assert restarted.token is not ctx.token
        assert restarted.vault.active_grants() == []
        assert restarted.vault.next_grant_id == 1
        assert restarted.vault.current_administrator() == ADMIN
