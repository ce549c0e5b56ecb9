"""
CLI Commands for operators.

flask bridge process-order 12345
flask bridge cancel --order-id 12345
flask bridge cancel --certificate-code AB12CD34
flask bridge webhook-toggle --disable
flask bridge logs --limit 20
"""
import json

import click
from flask.cli import with_appcontext

from ..services.reconciliation import CancellationContext
from ..services.registry import get_services
from ..utils.exceptions import BridgeError

CLI_CANCEL_ACTION = 'cli.cancel'
CLI_CANCEL_REASON = 'Manual cancellation (CLI)'


def _echo_result(result):
    click.echo(json.dumps(result, indent=2, default=str))


@click.group('bridge')
def bridge_cli():
    """Acuity -> PassKit bridge commands."""
    pass


@bridge_cli.command('process-order')
@click.argument('order_id')
@with_appcontext
def process_order(order_id):
    """(Re)process an Acuity order into a PassKit member."""
    try:
        result = get_services().reconciliation.process_new_membership_order(order_id)
    except BridgeError as e:
        raise click.ClickException(e.message)
    _echo_result(result)


@bridge_cli.command('cancel')
@click.option('--order-id', help='Acuity order id')
@click.option('--certificate-code', help='8 character certificate code')
@with_appcontext
def cancel(order_id, certificate_code):
    """Cancel a PassKit membership by order id or certificate code."""
    if not order_id and not certificate_code:
        raise click.UsageError('Pass --order-id or --certificate-code')

    reconciliation = get_services().reconciliation
    try:
        if certificate_code:
            result = reconciliation.cancel_membership_by_certificate_code(
                certificate_code,
                CancellationContext(source_action=CLI_CANCEL_ACTION, reason=CLI_CANCEL_REASON)
            )
        else:
            result = reconciliation.process_membership_cancellation(
                order_id, source_action=CLI_CANCEL_ACTION, reason=CLI_CANCEL_REASON
            )
    except BridgeError as e:
        raise click.ClickException(e.message)
    _echo_result(result)


@bridge_cli.command('webhook-toggle')
@click.option('--enable/--disable', default=None, help='Set state (omit to show it)')
@with_appcontext
def webhook_toggle(enable):
    """Show or change webhook processing."""
    toggle = get_services().webhook_toggle
    if enable is None:
        click.echo(f"Webhook processing: {'enabled' if toggle.is_enabled() else 'disabled'}")
        return

    enabled, persistence = toggle.set_enabled(enable)
    click.echo(f"Webhook processing {'enabled' if enabled else 'disabled'} ({persistence})")


@bridge_cli.command('logs')
@click.option('--limit', type=int, default=20, help='Entries to show (default: 20)')
@with_appcontext
def logs(limit):
    """Show recent activity log entries."""
    entries = get_services().activity_log.entries(limit)
    if not entries:
        click.echo('No activity recorded')
        return

    for entry in reversed(entries):
        line = f"[{entry.get('timestamp')}] [{str(entry.get('level', '')).upper()}] {entry.get('message')}"
        if entry.get('data') is not None:
            line += f" {json.dumps(entry['data'], default=str)}"
        click.echo(line)


def init_app(app):
    """Register CLI commands with the Flask app."""
    app.cli.add_command(bridge_cli)
