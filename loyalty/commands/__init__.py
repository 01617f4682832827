"""
CLI Commands for the loyalty portal.

Usage:
    flask tiers validate                 # Check tier ranges for gaps/overlaps
    flask tiers recalculate [--dry-run]  # Re-derive every member's tier
    flask tiers show                     # Print effective tier settings

    flask ledger reconcile               # Report balances that differ from the ledger
    flask ledger reconcile --profile-id 12
"""
from .tiers import init_app as init_tier_commands
from .ledger import init_app as init_ledger_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_tier_commands(app)
    init_ledger_commands(app)
