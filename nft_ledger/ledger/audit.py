"""
Event Journal Audit Tool — independent chain integrity verification.

Connects directly to the journal database, recomputes every hash in the
chain, and rebuilds current token holders from the recorded transfers.

Usage:
    python -m nft_ledger.ledger.audit
    python -m nft_ledger.ledger.audit --database-url sqlite:///journal.db
    python -m nft_ledger.ledger.audit --verbose
"""

from __future__ import annotations

import argparse
import sys
import time
from collections import Counter

from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from nft_ledger.config import settings
from nft_ledger.ledger.journal import EventJournal

console = Console()


def run_audit(database_url: str, verbose: bool = False) -> bool:
    """
    Run a full hash chain integrity audit.

    Args:
        database_url: SQLAlchemy connection string.
        verbose: Print every journal entry if True.

    Returns:
        True if the chain is valid, False otherwise.
    """
    console.print("\n[bold blue]═══ NFT Ledger Journal Audit ═══[/bold blue]\n")

    journal = EventJournal(database_url)

    count = journal.get_event_count()
    console.print(f"  Events in journal: [bold]{count}[/bold]")

    console.print("  Verifying hash chain...", end=" ")
    start_time = time.time()
    is_valid, entries_verified, message = journal.verify_chain()
    elapsed = time.time() - start_time

    if is_valid:
        console.print("[bold green]✓ VALID[/bold green]")
        console.print(f"  Entries verified: [bold]{entries_verified}[/bold]")
        console.print(f"  Verification time: {elapsed:.3f}s")
    else:
        console.print("[bold red]✗ INVALID[/bold red]")
        console.print(f"  Failure at entry: {entries_verified}")
        console.print(f"  Reason: {message}")

    owners = journal.replay_ownership()
    holdings = Counter(owners.values())
    console.print(f"  Tokens in circulation: [bold]{len(owners)}[/bold]")

    if holdings:
        holders = Table(title="Holders")
        holders.add_column("Principal", style="yellow")
        holders.add_column("Balance", style="cyan", justify="right")
        for principal, balance in holdings.most_common():
            holders.add_row(principal, str(balance))
        console.print(holders)

    if verbose:
        console.print("\n[bold]Detailed Entry Listing:[/bold]")
        table = Table(show_lines=True)
        table.add_column("Seq", style="cyan", width=6)
        table.add_column("Type", style="green", width=22)
        table.add_column("Token", width=8)
        table.add_column("Hash (first 16)", style="dim", width=18)
        table.add_column("Recorded", width=22)

        for entry in journal.get_events(limit=max(count, 1)):
            table.add_row(
                str(entry.sequence_number),
                entry.event_type,
                str(entry.token_id) if entry.token_id is not None else "—",
                entry.entry_hash[:16] + "...",
                str(entry.recorded_at)[:19],
            )
        console.print(table)

    console.print("\n[bold blue]═══ Audit Complete ═══[/bold blue]\n")
    return is_valid


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="NFT Ledger event journal integrity auditor"
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy connection string (defaults to .env settings)",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show detailed entry listing",
    )
    args = parser.parse_args(argv)

    db_url = args.database_url or settings.database_url
    if not db_url:
        console.print("[red]No journal database configured (NFT_LEDGER_DATABASE_URL)[/red]")
        sys.exit(2)
    try:
        is_valid = run_audit(db_url, verbose=args.verbose)
    except SQLAlchemyError as exc:
        console.print(f"[red]Cannot read journal at {db_url}: {exc.__class__.__name__}[/red]")
        sys.exit(2)
    sys.exit(0 if is_valid else 1)


if __name__ == "__main__":
    main()
