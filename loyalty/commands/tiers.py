"""
CLI Commands for tier maintenance.

Run `flask tiers recalculate` after editing tier_settings so stored tiers
match the new thresholds.
"""
import click
from flask.cli import with_appcontext
from ..services.tier_service import TierService, validate_tier_settings


@click.group('tiers')
def tiers_cli():
    """Tier maintenance commands."""
    pass


@tiers_cli.command('show')
@with_appcontext
def show_tiers():
    """Print the effective tier settings."""
    for tier in TierService().settings_summary():
        upper = tier['max_points'] if tier['max_points'] is not None else 'unbounded'
        click.echo(f"  {tier['tier']:<10} {tier['min_points']:>8} - {upper}")


@tiers_cli.command('validate')
@with_appcontext
def validate_tiers():
    """Check tier ranges are contiguous and non-overlapping."""
    problems = validate_tier_settings(TierService().settings)
    if not problems:
        click.echo("Tier settings OK")
        return
    for problem in problems:
        click.echo(f"  ! {problem}")
    raise SystemExit(1)


@tiers_cli.command('recalculate')
@click.option('--dry-run', is_flag=True, help='Preview without saving')
@with_appcontext
def recalculate_tiers(dry_run):
    """Re-derive every member's tier from their points."""
    result = TierService().recalculate_all(dry_run=dry_run)

    click.echo(f"{'[DRY RUN] ' if dry_run else ''}Checked: {result['checked']} members")
    click.echo(f"  Changed: {result['changed']}")
    for change in result['changes']:
        click.echo(f"    profile {change['profile_id']}: {change['old_tier']} -> {change['new_tier']}")


def init_app(app):
    """Register tier commands with Flask app."""
    app.cli.add_command(tiers_cli)
