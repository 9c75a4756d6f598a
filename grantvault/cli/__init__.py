"""
grantvault/cli/__init__.py

grantvault CLI: root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    grantvault = "grantvault.cli:cli"
"""

import click

from grantvault.cli.grants import grants_command
from grantvault.cli.verify import verify_command


@click.group()
@click.version_option(package_name="grantvault")
def cli() -> None:
    """
    grantvault: grant journal tools.

    \b
    Commands:
      verify    Verify a grant journal: chain, signatures, schema.
      grants    List the grants still active according to a journal.

    \b
    Quick start:
      grantvault verify .grantvault/journal
      grantvault verify journal.jsonl --format json
      grantvault grants .grantvault/journal --recipient 0xabc...
    """
    pass


cli.add_command(verify_command)
cli.add_command(grants_command)
