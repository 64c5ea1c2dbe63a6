# hookwise/cli.py
import json
from datetime import timedelta

import click
from flask import current_app
from flask.cli import AppGroup, with_appcontext

from . import db as store
from .delivery import deliver_webhook
from .extensions import db
from .models import Webhook, utcnow

webhooks_cli = AppGroup("webhooks", help="Manage automation webhooks.")


@webhooks_cli.command("create")
@click.argument("automation_id")
def create_command(automation_id):
    """Create a webhook for AUTOMATION_ID and print its URL and secret."""
    webhook = store.create_webhook(automation_id, current_app.config["WEBHOOK_BASE_URL"])
    click.echo(json.dumps(webhook.to_dict(include_secret=True), indent=2))


@webhooks_cli.command("deactivate")
@click.argument("webhook_id", type=int)
def deactivate_command(webhook_id):
    """Stop accepting deliveries for WEBHOOK_ID (the row is kept)."""
    if store.set_webhook_active(webhook_id, False) is None:
        raise click.ClickException(f"webhook {webhook_id} not found")
    click.echo(f"webhook {webhook_id} deactivated")


@webhooks_cli.command("activate")
@click.argument("webhook_id", type=int)
def activate_command(webhook_id):
    if store.set_webhook_active(webhook_id, True) is None:
        raise click.ClickException(f"webhook {webhook_id} not found")
    click.echo(f"webhook {webhook_id} activated")


@webhooks_cli.command("delete")
@click.argument("webhook_id", type=int)
def delete_command(webhook_id):
    """Delete WEBHOOK_ID and its delivery logs."""
    if not store.delete_webhook(webhook_id):
        raise click.ClickException(f"webhook {webhook_id} not found")
    click.echo(f"webhook {webhook_id} deleted")


@webhooks_cli.command("list")
@click.option("--automation-id", default=None)
def list_command(automation_id):
    query = db.select(Webhook).order_by(Webhook.id)
    if automation_id:
        query = query.where(Webhook.automation_id == automation_id)
    for webhook in db.session.execute(query).scalars():
        click.echo(json.dumps(webhook.to_dict()))


@webhooks_cli.command("deliver")
@click.argument("webhook_id", type=int)
@click.option("--payload", default=None, help="JSON body; a test event when omitted.")
@click.option("--retries", type=int, default=None)
@click.option("--unsigned", is_flag=True)
def deliver_command(webhook_id, payload, retries, unsigned):
    """Send a signed delivery to WEBHOOK_ID's URL, retrying failures."""
    webhook = db.session.get(Webhook, webhook_id)
    if webhook is None:
        raise click.ClickException(f"webhook {webhook_id} not found")
    try:
        body = json.loads(payload) if payload else {"event": "test_webhook", "timestamp": utcnow().isoformat()}
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--payload")

    result = deliver_webhook(
        webhook.webhook_url,
        body,
        secret=None if unsigned else webhook.secret,
        webhook_id=webhook.id,
        max_retries=current_app.config["DELIVERY_MAX_RETRIES"] if retries is None else retries,
        timeout=current_app.config["DELIVERY_TIMEOUT"],
    )
    click.echo(json.dumps(result.to_dict(), indent=2))
    if not result.success:
        raise SystemExit(1)


@webhooks_cli.command("stats")
@click.option("--webhook-id", type=int, default=None)
@click.option("--hours", type=int, default=None, help="Only deliveries from the last N hours.")
def stats_command(webhook_id, hours):
    since = utcnow() - timedelta(hours=hours) if hours else None
    click.echo(json.dumps(store.delivery_stats(webhook_id, since=since), indent=2))


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all tables (use `flask db upgrade` once migrations exist)."""
    db.create_all()
    click.echo("database initialized")


def register_commands(app):
    app.cli.add_command(webhooks_cli)
    app.cli.add_command(init_db_command)
