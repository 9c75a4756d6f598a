"""
tests/test_token_ledger.py

TokenLedger behaviour: minting, transfers, approvals, allowance-based
transfers and the Transfer/Approval event log.

Run:
    pytest tests/test_token_ledger.py -v
"""

import pytest

from grantvault.core.exceptions import (
    InsufficientAllowanceError,
    InsufficientFundsError,
    InvalidAddressError,
    UnauthorizedError,
    ValidationError,
)
from grantvault.core.identity import NULL_ADDRESS
from grantvault.ledger import TokenGateway, TokenLedger


OWNER   = "0x" + "a" * 40
ALICE   = "0x" + "1" * 40
BOB     = "0x" + "2" * 40
SPENDER = "0x" + "3" * 40


@pytest.fixture
def token():
    return TokenLedger(name="token", symbol="TKN", owner=OWNER)


@pytest.fixture
def funded(token):
    token.mint(OWNER, ALICE, 1_000)
    return token


class TestMetadata:

    def test_name_symbol_decimals(self, token):
        assert token.name == "token"
        assert token.symbol == "TKN"
        assert token.decimals == 18

    def test_starts_empty(self, token):
        assert token.total_supply == 0
        assert token.balance_of(ALICE) == 0
        assert token.events == []

    def test_owner_is_normalized(self):
        t = TokenLedger(name="t", symbol="T", owner="0x" + "A" * 40)
        assert t.owner == OWNER

    def test_null_owner_rejected(self):
        with pytest.raises(InvalidAddressError):
            TokenLedger(name="t", symbol="T", owner=NULL_ADDRESS)


class TestMint:

    def test_mint_credits_balance_and_supply(self, token):
        assert token.mint(OWNER, ALICE, 500) is True
        assert token.balance_of(ALICE) == 500
        assert token.total_supply == 500

    def test_mint_emits_transfer_from_null(self, token):
        token.mint(OWNER, ALICE, 7)
        ev = token.events[-1]
        assert (ev.event_type, ev.from_address, ev.to_address, ev.value) == (
            "Transfer", NULL_ADDRESS, ALICE, 7
        )

    def test_only_owner_can_mint(self, token):
        with pytest.raises(UnauthorizedError, match="ERC20: caller is not owner"):
            token.mint(ALICE, ALICE, 1)
        assert token.total_supply == 0

    def test_supply_cannot_exceed_uint256(self, token):
        token.mint(OWNER, ALICE, TokenLedger.UINT256_MAX)
        with pytest.raises(ValidationError):
            token.mint(OWNER, BOB, 1)


class TestTransfer:

    def test_transfer_moves_balance(self, funded):
        funded.transfer(ALICE, BOB, 300)
        assert funded.balance_of(ALICE) == 700
        assert funded.balance_of(BOB) == 300
        assert funded.total_supply == 1_000

    def test_transfer_insufficient_balance(self, funded):
        with pytest.raises(InsufficientFundsError, match="ERC20: insufficient-balance"):
            funded.transfer(ALICE, BOB, 1_001)
        assert funded.balance_of(ALICE) == 1_000

    def test_transfer_to_null_rejected(self, funded):
        with pytest.raises(InvalidAddressError):
            funded.transfer(ALICE, NULL_ADDRESS, 1)

    @pytest.mark.parametrize("amount", [-1, 1.5, "10", True])
    def test_bad_amounts_rejected(self, funded, amount):
        with pytest.raises(ValidationError):
            funded.transfer(ALICE, BOB, amount)

    def test_zero_transfer_allowed(self, funded):
        assert funded.transfer(ALICE, BOB, 0) is True
        assert funded.balance_of(BOB) == 0


class TestApproveAndTransferFrom:

    def test_approve_sets_allowance_and_emits(self, funded):
        funded.approve(ALICE, SPENDER, 250)
        assert funded.allowance(ALICE, SPENDER) == 250
        ev = funded.events[-1]
        assert ev.event_type == "Approval"
        assert (ev.from_address, ev.to_address, ev.value) == (ALICE, SPENDER, 250)

    def test_approve_overwrites(self, funded):
        funded.approve(ALICE, SPENDER, 250)
        funded.approve(ALICE, SPENDER, 10)
        assert funded.allowance(ALICE, SPENDER) == 10

    def test_transfer_from_decrements_allowance(self, funded):
        funded.approve(ALICE, SPENDER, 400)
        funded.transfer_from(SPENDER, ALICE, BOB, 150)
        assert funded.allowance(ALICE, SPENDER) == 250
        assert funded.balance_of(ALICE) == 850
        assert funded.balance_of(BOB) == 150

    def test_transfer_from_without_allowance(self, funded):
        with pytest.raises(InsufficientAllowanceError, match="ERC20: insufficient-allowance"):
            funded.transfer_from(SPENDER, ALICE, BOB, 1)

    def test_balance_checked_before_allowance(self, funded):
        # No allowance AND not enough balance: the balance error wins.
        with pytest.raises(InsufficientFundsError):
            funded.transfer_from(SPENDER, ALICE, BOB, 5_000)

    def test_max_allowance_is_not_decremented(self, funded):
        funded.approve(ALICE, SPENDER, TokenLedger.UINT256_MAX)
        funded.transfer_from(SPENDER, ALICE, BOB, 600)
        assert funded.allowance(ALICE, SPENDER) == TokenLedger.UINT256_MAX

    def test_failed_transfer_from_changes_nothing(self, funded):
        funded.approve(ALICE, SPENDER, 10)
        with pytest.raises(InsufficientAllowanceError):
            funded.transfer_from(SPENDER, ALICE, BOB, 11)
        assert funded.allowance(ALICE, SPENDER) == 10
        assert funded.balance_of(ALICE) == 1_000
        assert funded.balance_of(BOB) == 0

    def test_addresses_compared_case_insensitively(self, funded):
        funded.approve("0x" + "A" * 40, SPENDER, 5)
        assert funded.allowance(OWNER, SPENDER) == 5


class TestGateway:

    def test_pull_uses_vault_as_spender(self, funded):
        vault = "0x" + "9" * 40
        gw = TokenGateway(funded, vault)
        funded.approve(ALICE, vault, 100)
        gw.pull(ALICE, vault, 100)
        assert gw.custody_balance() == 100
        assert funded.allowance(ALICE, vault) == 0

    def test_push_pays_out_of_custody(self, funded):
        vault = "0x" + "9" * 40
        gw = TokenGateway(funded, vault)
        funded.transfer(ALICE, vault, 40)
        gw.push(BOB, 15)
        assert gw.custody_balance() == 25
        assert funded.balance_of(BOB) == 15

    def test_push_beyond_custody_raises(self, funded):
        gw = TokenGateway(funded, "0x" + "9" * 40)
        with pytest.raises(InsufficientFundsError):
            gw.push(BOB, 1)

    def test_refund_pull_returns_tokens_and_allowance(self, funded):
        vault = "0x" + "9" * 40
        gw = TokenGateway(funded, vault)
        funded.approve(ALICE, vault, 100)
        before = funded.balance_of(ALICE)
        gw.pull(ALICE, vault, 60)
        gw.refund_pull(ALICE, 60)
        assert gw.custody_balance() == 0
        assert funded.balance_of(ALICE) == before
        assert funded.allowance(ALICE, vault) == 100

    def test_refund_pull_leaves_unlimited_allowance(self, funded):
        vault = "0x" + "9" * 40
        gw = TokenGateway(funded, vault)
        funded.approve(ALICE, vault, TokenLedger.UINT256_MAX)
        gw.pull(ALICE, vault, 60)
        gw.refund_pull(ALICE, 60)
        assert funded.allowance(ALICE, vault) == TokenLedger.UINT256_MAX
