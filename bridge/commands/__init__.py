"""
CLI Commands for the membership bridge.

Usage:
    flask bridge process-order 12345               # Reprocess an order
    flask bridge cancel --certificate-code X1Y2Z3W4  # Cancel by certificate code
    flask bridge webhook-toggle --disable          # Pause webhook processing
    flask bridge logs --limit 50                   # Tail the activity log
"""
from .bridge import init_app as init_bridge_commands


def init_app(app):
    """Register all CLI commands with the Flask app."""
    init_bridge_commands(app)
