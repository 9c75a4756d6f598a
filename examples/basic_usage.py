"""
grantvault: Basic Usage Example

Demonstrates:
- Wiring a token ledger, vault and journal
- Creating, removing and claiming grants
- Replaying the journal
"""

import tempfile

from grantvault import Ed25519KeyManager, GrantVault, ManualClock, TokenGateway, TokenLedger, VaultJournal
from grantvault.core.replay import JournalReplay

ADMIN     = "0x" + "a" * 40
FUNDER    = "0x" + "f" * 40
RECIPIENT = "0x" + "e" * 40
VAULT     = "0x" + "9" * 40


def main():
    print("=" * 60)
    print("grantvault: Basic Usage Example")
    print("=" * 60)
    print()

    journal_dir = tempfile.mkdtemp(prefix="grantvault-")
    clock = ManualClock(1_700_000_000)

    # 1️⃣ Token and vault
    token = TokenLedger(name="token", symbol="TKN", owner=ADMIN)
    token.mint(ADMIN, FUNDER, 100)
    token.approve(FUNDER, VAULT, 100)

    journal = VaultJournal(Ed25519KeyManager.generate(), VAULT, journal_path=journal_dir)
    vault = GrantVault(TokenGateway(token, VAULT), ADMIN, clock=clock, journal=journal)
    print(f"1️⃣ {vault}")

    # 2️⃣ Funder changes their mind before unlock
    gid = vault.create_grant(ADMIN, FUNDER, RECIPIENT, 30, clock.now() + 60)
    vault.remove_grant(FUNDER, gid)
    print(f"2️⃣ grant {gid} removed, funder balance = {token.balance_of(FUNDER)}")

    # 3️⃣ Recipient claims after unlock
    gid = vault.create_grant(ADMIN, FUNDER, RECIPIENT, 30, clock.now() + 60)
    clock.advance(60)
    vault.claim_grant(RECIPIENT, gid)
    print(f"3️⃣ grant {gid} claimed, recipient balance = {token.balance_of(RECIPIENT)}")
    print(f"   grants({gid}) = {vault.grants(gid)}")

    # 4️⃣ Replay
    replay = JournalReplay()
    replay.load(journal.journal_file)
    summary = replay.verify()
    print(f"4️⃣ journal: {summary.total_entries} entries, {len(summary.violations)} violations")
    print(f"   verify from the shell: grantvault verify {journal_dir}")


if __name__ == "__main__":
    main()
