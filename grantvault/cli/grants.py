"""
grantvault/cli/grants.py

grantvault grants: list active grants from a journal.

Usage:
    grantvault grants <journal>
    grantvault grants <journal> --format json
    grantvault grants <journal> --funder 0x... --recipient 0x...

Exit codes:
    0  Listed (possibly nothing)
    2  Journal could not be loaded, verified or replayed
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click

from grantvault.cli._output import Color, emit_error, row_info
from grantvault.core.exceptions import JournalError
from grantvault.core.identity import normalize_address
from grantvault.core.replay import JournalReplay

_ROOT_KEY = "grantvault_grants"


@click.command(name="grants")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option("--funder", default=None, metavar="ADDR", help="Only grants funded by ADDR.")
@click.option("--recipient", default=None, metavar="ADDR", help="Only grants payable to ADDR.")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def grants_command(
    journal:   str,
    fmt:       str,
    funder:    Optional[str],
    recipient: Optional[str],
    no_color:  bool,
) -> None:
    """
    Replay a journal and list the grants that are still active.

    A journal with any violation is refused.
    """
    Color.configure(not no_color)
    fmt = fmt.lower()

    replay = JournalReplay(silent=True)
    try:
        replay.load(Path(journal))
        summary = replay.verify()
        if summary.violations:
            raise JournalError(
                f"journal has {len(summary.violations)} violation(s); "
                "run `grantvault verify` for details"
            )
        state = replay.rebuild_state()
    except (FileNotFoundError, ValueError, JournalError) as e:
        emit_error(_ROOT_KEY, str(e), fmt)
        sys.exit(2)

    rows = [
        (grant_id, grant)
        for grant_id, grant in state.registry.items()
        if (funder is None or grant.funder == normalize_address(funder))
        and (recipient is None or grant.recipient == normalize_address(recipient))
    ]

    if fmt == "json":
        click.echo(json.dumps({
            _ROOT_KEY: {
                "vault_address": state.vault_address,
                "administrator": state.administrator,
                "next_grant_id": state.registry.next_id,
                "total_locked":  str(state.registry.total_locked()),
                "grants": [{"grant_id": gid, **g.to_dict()} for gid, g in rows],
            }
        }, indent=2))
        return

    click.echo()
    click.echo(row_info("Vault",         state.vault_address))
    click.echo(row_info("Administrator", state.administrator))
    click.echo(row_info("Active",        f"{len(state.registry)} of {state.registry.next_id} created"))
    click.echo(row_info("Locked",        f"{state.registry.total_locked():,}"))
    click.echo()

    if not rows:
        click.echo("  (no matching grants)")
        click.echo()
        return

    click.echo(Color.bold(f"  {'id':>5}  {'funder':<42}  {'recipient':<42}  {'amount':>20}  unlock"))
    for grant_id, grant in rows:
        click.echo(
            f"  {grant_id:>5}  {grant.funder:<42}  {grant.recipient:<42}  "
            f"{grant.amount:>20,}  {grant.unlock_timestamp}"
        )
    click.echo()
