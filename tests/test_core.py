"""
tests/test_core.py

Building blocks: identities, clocks, the grant registry and the
administrator gate.

Run:
    pytest tests/test_core.py -v
"""

import pytest

from grantvault.core.exceptions import GrantNotFoundError, InvalidAddressError, UnauthorizedError
from grantvault.core.identity import (
    NULL_ADDRESS,
    derive_address,
    is_null_address,
    is_valid_address,
    require_address,
)
from grantvault.core.models import Grant
from grantvault.core.time import ManualClock, journal_timestamp
from grantvault.vault import AdministratorGate, GrantRegistry


ADMIN = "0x" + "a" * 40
OTHER = "0x" + "b" * 40


def grant(amount=10):
    return Grant(funder="0x" + "1" * 40, recipient="0x" + "2" * 40, amount=amount, unlock_timestamp=5)


class TestIdentity:

    def test_valid_and_null(self):
        assert is_valid_address(ADMIN)
        assert is_valid_address(NULL_ADDRESS)
        assert is_null_address(NULL_ADDRESS)
        assert not is_valid_address("0x" + "g" * 40)

    def test_require_address_names_the_role(self):
        with pytest.raises(InvalidAddressError, match="Invalid recipient address!") as exc:
            require_address(NULL_ADDRESS, "recipient")
        assert exc.value.details["role"] == "recipient"

    def test_require_address_normalizes(self):
        assert require_address("  0x" + "A" * 40 + " ", "funder") == ADMIN

    def test_derive_address(self):
        derived = derive_address("grantvault", "TKN", ADMIN)
        assert is_valid_address(derived)
        assert derived == derive_address("grantvault", "TKN", ADMIN)
        assert derived != derive_address("grantvault", "XYZ", ADMIN)


class TestClock:

    def test_manual_clock(self):
        clock = ManualClock(10)
        assert clock.advance(5) == 15
        clock.set(20)
        assert clock.now() == 20

    def test_manual_clock_never_goes_back(self):
        clock = ManualClock(10)
        with pytest.raises(ValueError):
            clock.set(9)
        with pytest.raises(ValueError):
            clock.advance(-1)

    def test_journal_timestamp_format(self):
        ts = journal_timestamp()
        assert len(ts) == 24
        assert ts.endswith("Z")
        assert ts[19] == "."


class TestGrantRegistry:

    def test_insert_assigns_sequential_ids(self):
        reg = GrantRegistry()
        assert [reg.insert(grant()) for _ in range(3)] == [0, 1, 2]
        assert reg.next_id == 3
        assert len(reg) == 3

    def test_require_missing(self):
        with pytest.raises(GrantNotFoundError, match="The grant does not exist!"):
            GrantRegistry().require(0)

    def test_delete_and_reinstate(self):
        reg = GrantRegistry()
        gid = reg.insert(grant(7))
        removed = reg.delete(gid)
        assert gid not in reg
        reg.reinstate(gid, removed)
        assert reg.get(gid) == grant(7)
        assert reg.next_id == 1

    def test_reinstate_rejects_unissued_or_active(self):
        reg = GrantRegistry()
        gid = reg.insert(grant())
        with pytest.raises(ValueError):
            reg.reinstate(gid, grant())
        with pytest.raises(ValueError):
            reg.reinstate(5, grant())

    def test_only_plain_int_ids_resolve(self):
        reg = GrantRegistry()
        reg.insert(grant())
        reg.insert(grant())
        assert reg.get(True) is None
        assert reg.get([1]) is None
        with pytest.raises(GrantNotFoundError):
            reg.require(True)
        with pytest.raises(GrantNotFoundError):
            reg.delete({"id": 1})
        assert len(reg) == 2

    def test_retract_releases_latest_id(self):
        reg = GrantRegistry()
        reg.insert(grant(1))
        gid = reg.insert(grant(2))
        assert reg.retract(gid) == grant(2)
        assert reg.next_id == 1
        assert reg.insert(grant(3)) == gid

    def test_retract_rejects_older_or_finalized_ids(self):
        reg = GrantRegistry()
        first = reg.insert(grant())
        second = reg.insert(grant())
        with pytest.raises(ValueError):
            reg.retract(first)
        reg.delete(second)
        with pytest.raises(ValueError):
            reg.retract(second)
        assert reg.next_id == 2

    def test_total_locked(self):
        reg = GrantRegistry()
        reg.insert(grant(3))
        reg.insert(grant(4))
        assert reg.total_locked() == 7
        assert reg.active_ids() == [0, 1]


class TestAdministratorGate:

    def test_require(self):
        gate = AdministratorGate(ADMIN)
        gate.require_administrator(ADMIN.upper().replace("0X", "0x"))
        with pytest.raises(UnauthorizedError, match="Ownable: caller is not the owner"):
            gate.require_administrator(OTHER)
        with pytest.raises(UnauthorizedError):
            gate.require_administrator(None)

    def test_transfer_returns_previous(self):
        gate = AdministratorGate(ADMIN)
        assert gate.transfer(ADMIN, OTHER) == ADMIN
        assert gate.current_administrator() == OTHER
        with pytest.raises(UnauthorizedError):
            gate.transfer(ADMIN, ADMIN)

    def test_null_administrator_rejected(self):
        with pytest.raises(InvalidAddressError):
            AdministratorGate(NULL_ADDRESS)
