from datetime import date

from plato.extensions import db
from plato.models import OrderStatus, ProductionPlan, RecurringStatus, WholesaleOrder
from tests.factories import make_customer, make_order, make_recipe


def test_generate_recurring_command(runner, test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    root = make_order(
        test_company, cafe, [(rye, 12)],
        delivery_date=date(2024, 1, 1), is_recurring=True, recurring_interval='weekly',
        recurring_status=RecurringStatus.ACTIVE, next_recurrence_date=date(2024, 1, 8),
    )

    result = runner.invoke(args=['production', 'generate-recurring', '--today', '2024-01-10'])

    assert result.exit_code == 0
    assert 'Generated 1 order(s)' in result.output
    db.session.expire_all()
    assert db.session.get(WholesaleOrder, root.id).generated_orders.count() == 1


def test_generate_recurring_rejects_bad_date(runner):
    result = runner.invoke(args=['production', 'generate-recurring', '--today', 'yesterday'])

    assert result.exit_code != 0
    assert 'YYYY-MM-DD' in result.output


def test_generate_weekly_plans_command(runner, test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    make_order(test_company, cafe, [(rye, 10)], status=OrderStatus.CONFIRMED, delivery_date=date(2024, 1, 9))

    result = runner.invoke(args=['production', 'generate-weekly-plans', '--today', '2024-01-10'])

    assert result.exit_code == 0
    assert 'Created 1 plan(s)' in result.output
    assert ProductionPlan.query.count() == 1


def test_sync_pending_command_with_nothing_to_do(runner, test_company):
    result = runner.invoke(args=['production', 'sync-pending'])

    assert result.exit_code == 0
    assert 'Retried 0 plan event(s)' in result.output


def test_dispatch_events_once(runner, test_company):
    result = runner.invoke(args=['production', 'dispatch-events', '--once'])

    assert result.exit_code == 0
    assert 'Processed 0 event(s)' in result.output
