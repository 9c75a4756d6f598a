"""
grantvault/cli/verify.py

grantvault verify: grant journal verification
==============================================

Usage:
    grantvault verify <journal>                       Human output (default)
    grantvault verify <journal> --format json         Machine-readable JSON
    grantvault verify <journal> --format compact      One-line pipeline output
    grantvault verify <journal> --export report.json  Export full audit report
    grantvault verify <journal> --quiet               Exit code only
    grantvault verify <journal> --no-color            Disable ANSI

<journal> is a journal.jsonl file or the directory holding one.

Exit codes:
    0  Journal fully valid  (schema + sequence + chain + signatures + nonces)
    1  Journal has violations
    2  Error  (file missing, malformed JSON, schema failure at load)
"""

import json
import sys
import time
from pathlib import Path
from typing import Optional, Tuple

import click

from grantvault.cli._output import Color, emit_error, row_fail, row_info, row_ok
from grantvault.core.canonical import canonical_hash
from grantvault.core.replay import JournalReplay, ReplaySummary

_ROOT_KEY = "grantvault_verify"


def _compute_head_hash(replay: JournalReplay) -> Tuple[Optional[str], Optional[int]]:
    """
    (head_hash, head_sequence) of the journal, or (None, None) if empty.

    head_hash is the causal_hash the next entry would carry, i.e. a
    commitment to the whole journal suitable for external anchoring.
    """
    if not replay.entries:
        return None, None
    last = replay.entries[-1]
    return canonical_hash(last.to_chain_dict()), last.sequence


@click.command(name="verify")
@click.argument("journal", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json", "compact"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default), json (CI/automation), compact (pipelines).",
)
@click.option(
    "--export",
    "export_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Export full audit report to a JSON file.",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=valid, 1=invalid, 2=error).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def verify_command(
    journal:     str,
    fmt:         str,
    export_path: Optional[str],
    quiet:       bool,
    no_color:    bool,
) -> None:
    """
    Verify a grant journal: chain integrity, signatures, schema.

    \b
    Examples:
      grantvault verify .grantvault/journal
      grantvault verify journal.jsonl --format json
      grantvault verify journal.jsonl --quiet && echo "clean"
    """
    Color.configure(not no_color)
    fmt = fmt.lower()

    journal_path = Path(journal)
    replay  = JournalReplay(silent=True)
    t_start = time.perf_counter()

    try:
        replay.load(journal_path)
    except (FileNotFoundError, ValueError) as e:
        emit_error(_ROOT_KEY, str(e), fmt, quiet)
        sys.exit(2)

    head_hash, head_sequence = _compute_head_hash(replay)
    summary   = replay.verify()
    t_elapsed = time.perf_counter() - t_start
    valid     = not summary.violations

    if export_path:
        try:
            replay.export_json(Path(export_path))
        except OSError as e:
            if not quiet and fmt == "human":
                click.echo(Color.yellow(f"\n  ⚠️   Export failed: {e}"), err=True)

    if quiet:
        sys.exit(0 if valid else 1)

    if fmt == "json":
        _output_json(summary, journal_path, t_elapsed, head_hash, head_sequence, valid, export_path)
    elif fmt == "compact":
        _output_compact(summary, journal_path, t_elapsed, valid)
    else:
        _output_human(summary, journal_path, t_elapsed, head_hash, head_sequence, valid, export_path)

    sys.exit(0 if valid else 1)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    head_hash:     Optional[str],
    head_sequence: Optional[int],
    valid:         bool,
    export_path:   Optional[str],
) -> None:
    BAR_HEAVY = "═" * 68
    BAR_LIGHT = "─" * 68
    total = summary.total_entries

    click.echo()
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo(Color.bold(  "  grantvault  ·  Journal Verification"))
    click.echo(Color.bold(f"  {BAR_HEAVY}"))
    click.echo()

    click.echo(row_info("Journal", str(journal_path)))
    click.echo(row_info("Entries", f"{total:,}"))
    click.echo(row_info("Vault",   summary.vault_address or "-"))
    click.echo()

    def _of(kind: str):
        return [v for v in summary.violations if v.violation_type == kind]

    chain_v, seq_v = _of("chain_break"), _of("sequence_gap")
    nonce_v, vault_v = _of("duplicate_nonce"), _of("vault_mismatch")

    if not chain_v:
        click.echo(row_ok("Chain", "intact: all causal hashes valid"))
    else:
        click.echo(row_fail("Chain", Color.red(f"{len(chain_v)} break(s) detected")))

    if summary.invalid_signatures == 0:
        click.echo(row_ok("Signatures", f"{summary.valid_signatures:,} / {total:,} valid"))
    else:
        click.echo(row_fail(
            "Signatures",
            f"{summary.valid_signatures:,} valid  "
            + Color.red(f"{summary.invalid_signatures:,} INVALID"),
        ))

    if not seq_v:
        click.echo(row_ok("Sequence", f"0 → {total - 1:,}  (no gaps)" if total else "empty journal"))
    else:
        click.echo(row_fail("Sequence", Color.red(f"{len(seq_v)} gap(s) detected")))

    if not nonce_v:
        click.echo(row_ok("Nonces", "unique"))
    else:
        click.echo(row_fail("Nonces", Color.red(f"{len(nonce_v)} duplicate(s)")))

    if not vault_v:
        click.echo(row_ok("Vault", "single vault"))
    else:
        click.echo(row_fail("Vault", Color.red(f"{len(vault_v)} foreign entr(ies)")))

    click.echo()

    if summary.first_timestamp:
        click.echo(row_info("First entry", f"{summary.first_timestamp}  " + Color.dim("[seq 0]")))
    if summary.last_timestamp:
        click.echo(row_info("Last entry", f"{summary.last_timestamp}  " + Color.dim(f"[seq {total - 1:,}]")))

    if head_hash and head_sequence is not None:
        short = head_hash[:16] + "..." + head_hash[-8:]
        click.echo(row_info("Chain Head", Color.cyan(short) + Color.dim(f"  [seq {head_sequence}]")))

    if summary.event_type_counts:
        counts_str = "  ".join(
            f"{Color.cyan(k)}: {v:,}"
            for k, v in sorted(summary.event_type_counts.items())
        )
        click.echo(row_info("Event types", counts_str))

    click.echo(row_info("Verified", f"{elapsed:.3f}s"))
    if export_path:
        click.echo(row_info("Exported", export_path))
    click.echo()

    if summary.violations:
        click.echo(f"  {BAR_LIGHT}")
        for v in summary.violations:
            type_col = Color.yellow(f"{v.violation_type:<18}")
            click.echo(f"  {Color.red(str(v.at_sequence)):>6}  {type_col}  {v.detail}")
        click.echo(f"  {BAR_LIGHT}")
        click.echo()

    click.echo(f"  {BAR_LIGHT}")
    if valid:
        click.echo(Color.green(Color.bold(
            "  ✅  VALID  ·  0 violations  ·  journal integrity confirmed"
        )))
    else:
        click.echo(Color.red(Color.bold(
            f"  ❌  INVALID  ·  {len(summary.violations)} violation(s)  ·  journal integrity compromised"
        )))
    click.echo(f"  {BAR_LIGHT}")
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    summary:       ReplaySummary,
    journal_path:  Path,
    elapsed:       float,
    head_hash:     Optional[str],
    head_sequence: Optional[int],
    valid:         bool,
    export_path:   Optional[str],
) -> None:
    out = {
        _ROOT_KEY: {
            "journal":             str(journal_path),
            "vault_address":       summary.vault_address,
            "total_entries":       summary.total_entries,
            "valid":               valid,
            "chain_valid":         summary.chain_valid,
            "chain_head_hash":     head_hash,
            "chain_head_sequence": head_sequence,
            "valid_signatures":    summary.valid_signatures,
            "invalid_signatures":  summary.invalid_signatures,
            "violation_count":     len(summary.violations),
            "event_type_counts":   summary.event_type_counts,
            "first_timestamp":     summary.first_timestamp,
            "last_timestamp":      summary.last_timestamp,
            "elapsed_seconds":     round(elapsed, 3),
            "export_path":         export_path,
            "violations": [
                {
                    "at_sequence":    v.at_sequence,
                    "entry_id":       v.entry_id,
                    "violation_type": v.violation_type,
                    "detail":         v.detail,
                }
                for v in summary.violations
            ],
        }
    }
    click.echo(json.dumps(out, indent=2))


# ── Compact output ────────────────────────────────────────────────────────────

def _output_compact(
    summary:      ReplaySummary,
    journal_path: Path,
    elapsed:      float,
    valid:        bool,
) -> None:
    """
    Single-line output for shell pipelines and audit logs.

        VALID    journal.jsonl   12 entries  0 violations  0.004s
    """
    status  = "VALID" if valid else "INVALID"
    name    = journal_path.name
    entries = summary.total_entries
    vcount  = len(summary.violations)

    if valid:
        line = (
            Color.green(f"{status:<8}")
            + f"  {name:<30}  {entries:>10,} entries  0 violations  {elapsed:.3f}s"
        )
    else:
        line = (
            Color.red(f"{status:<8}")
            + f"  {name:<30}  {entries:>10,} entries  "
            + Color.red(f"{vcount} violation(s)")
            + f"  {elapsed:.3f}s"
        )
    click.echo(line)
