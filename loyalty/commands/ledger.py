"""
CLI Commands for ledger audits.

The ledger is the source of truth for balances. `reconcile` only reports
drift; fixing a balance is a manual adjustment so it lands in the ledger
too.

# Nightly audit
0 2 * * * cd /app && flask ledger reconcile
"""
import click
from flask.cli import with_appcontext
from ..services.ledger_service import LedgerService


@click.group('ledger')
def ledger_cli():
    """Ledger audit commands."""
    pass


@ledger_cli.command('reconcile')
@click.option('--profile-id', type=int, multiple=True, help='Only check these members')
@with_appcontext
def reconcile(profile_id):
    """Report members whose balance differs from their ledger sum."""
    mismatches = LedgerService().reconcile(list(profile_id) or None)

    if not mismatches:
        click.echo("All balances match the ledger")
        return

    click.echo(f"Found {len(mismatches)} mismatched balances:")
    for m in mismatches:
        click.echo(
            f"  profile {m['profile_id']} {m['currency']}: stored {m['stored_balance']}, "
            f"ledger {m['ledger_balance']} (diff {m['difference']:+d})"
        )
    raise SystemExit(1)


def init_app(app):
    """Register ledger commands with Flask app."""
    app.cli.add_command(ledger_cli)
