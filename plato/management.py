"""
Management commands for scheduled jobs and outbox maintenance
"""
from datetime import date

import click
from flask.cli import AppGroup

from .services.domain_event_dispatcher import DomainEventDispatcher
from .services.production_planning import WeeklyPlanGenerator, sync_pending_plan_events
from .services.recurring_orders import RecurringOrderService

production_cli = AppGroup('production', help='Production planning jobs')


def _parse_day(value):
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise click.BadParameter('expected YYYY-MM-DD', param_hint='--today')


@production_cli.command('generate-recurring')
@click.option('--today', help='Evaluate due dates as of this day (YYYY-MM-DD)')
def generate_recurring_command(today):
    """Generate every recurring order that is due"""
    summary = RecurringOrderService.generate_due_orders(_parse_day(today))
    click.echo(
        f"✅ Generated {summary['generated']} order(s), "
        f"skipped {summary['skipped']}, cancelled {summary['cancelled']}"
    )
    for error in summary['errors']:
        click.echo(f"❌ Order #{error['order_id']}: {error['error']}", err=True)


@production_cli.command('generate-weekly-plans')
@click.option('--today', help='Plan the week containing this day (YYYY-MM-DD)')
def generate_weekly_plans_command(today):
    """Create this week's production plan for companies that have none"""
    summary = WeeklyPlanGenerator.generate_all(_parse_day(today))
    click.echo(f"✅ Created {summary['plans_created']} plan(s): {summary['plan_ids']}")
    for error in summary['errors']:
        click.echo(f"❌ Company #{error['company_id']}: {error['error']}", err=True)


@production_cli.command('sync-pending')
@click.option('--limit', default=100, show_default=True, help='Maximum plan events to retry')
def sync_pending_command(limit):
    """Retry order status sync for plan saves that did not finish"""
    summary = sync_pending_plan_events(limit=limit)
    click.echo(
        f"✅ Retried {summary['processed']} plan event(s); "
        f"promoted {summary['promoted']} order(s), {summary['failed']} failure(s)"
    )


@production_cli.command('dispatch-events')
@click.option('--batch-size', default=100, show_default=True)
@click.option('--loop/--once', default=False, help='Keep polling until interrupted')
@click.option('--poll-interval', default=5.0, show_default=True)
def dispatch_events_command(batch_size, loop, poll_interval):
    """Deliver pending domain events to the configured webhook"""
    dispatcher = DomainEventDispatcher(batch_size=batch_size)
    if loop:
        dispatcher.run_forever(poll_interval=poll_interval, batch_size=batch_size)
        return
    metrics = dispatcher.dispatch_pending_events()
    click.echo(
        f"✅ Processed {metrics['processed']} event(s): "
        f"{metrics['succeeded']} delivered, {metrics['failed']} failed"
    )


def register_commands(app):
    """Register CLI commands"""
    app.cli.add_command(production_cli)
