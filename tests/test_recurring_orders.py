from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.dialects import postgresql

from plato.errors import InvalidStateError, NotFoundError
from plato.extensions import db
from plato.models import DomainEvent, OrderStatus, RecurringStatus, WholesaleOrder
from plato.services.recurring_orders import RecurringOrderService, add_months, advance_date
from tests.factories import make_customer, make_order, make_recipe


def _recurring_root(company, customer, recipe, *, interval='weekly', delivery_date=date(2024, 1, 1), **fields):
    fields.setdefault('recurring_status', RecurringStatus.ACTIVE)
    return make_order(
        company,
        customer,
        [(recipe, 24, Decimal('3.50'))],
        status=OrderStatus.CONFIRMED,
        delivery_date=delivery_date,
        is_recurring=True,
        recurring_interval=interval,
        **fields,
    )


def _order_count():
    return WholesaleOrder.query.count()


@pytest.mark.parametrize(
    'base, interval, days, expected',
    [
        (date(2024, 1, 1), 'weekly', None, date(2024, 1, 8)),
        (date(2024, 1, 1), 'biweekly', None, date(2024, 1, 15)),
        (date(2024, 1, 15), 'monthly', None, date(2024, 2, 15)),
        (date(2024, 1, 31), 'monthly', None, date(2024, 2, 29)),
        (date(2023, 12, 31), 'monthly', None, date(2024, 1, 31)),
        (date(2024, 1, 1), 'custom', 10, date(2024, 1, 11)),
        (date(2024, 1, 1), 'quarterly', 90, date(2024, 3, 31)),
        (date(2024, 1, 1), 'custom', None, None),
        (date(2024, 1, 1), 'custom', 0, None),
        (date(2024, 1, 1), None, None, None),
    ],
)
def test_advance_date(base, interval, days, expected):
    assert advance_date(base, interval, days) == expected


def test_add_months_clamps_to_month_end():
    assert add_months(date(2023, 1, 31), 1) == date(2023, 2, 28)
    assert add_months(date(2024, 3, 31), 1) == date(2024, 4, 30)


def test_weekly_generation_copies_parent(test_company, test_user):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    parent = _recurring_root(test_company, cafe, rye)

    child = RecurringOrderService.generate_next_order(
        company_id=test_company.id, parent_order_id=parent.id, user_id=test_user.id
    )

    assert child.delivery_date == date(2024, 1, 8)
    assert child.parent_order_id == parent.id
    assert child.is_recurring is False
    assert child.status == OrderStatus.PENDING
    assert child.customer_id == cafe.id
    assert child.notes == f'Auto-generated from recurring order #{parent.id}'
    assert [(i.recipe_id, i.quantity, str(i.price)) for i in child.items] == [(rye.id, 24, '3.50')]

    db.session.expire_all()
    assert db.session.get(WholesaleOrder, parent.id).next_recurrence_date == date(2024, 1, 15)
    event = DomainEvent.query.filter_by(event_name='wholesale_order.recurring_generated').one()
    assert event.entity_id == child.id


def test_monthly_generation_clamps(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    parent = _recurring_root(test_company, cafe, rye, interval='monthly', delivery_date=date(2024, 1, 31))

    child = RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=parent.id)

    assert child.delivery_date == date(2024, 2, 29)
    assert db.session.get(WholesaleOrder, parent.id).next_recurrence_date == date(2024, 3, 29)


def test_missing_delivery_date_uses_today(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    parent = _recurring_root(test_company, cafe, rye, interval='biweekly', delivery_date=None)

    child = RecurringOrderService.generate_next_order(
        company_id=test_company.id, parent_order_id=parent.id, today=date(2024, 5, 1)
    )

    assert child.delivery_date == date(2024, 5, 15)


def test_generation_is_not_idempotent(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    parent = _recurring_root(test_company, cafe, rye)

    first = RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=parent.id)
    second = RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=parent.id)

    assert first.id != second.id
    assert parent.generated_orders.count() == 2


def test_non_recurring_parent_is_rejected(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    order = make_order(test_company, cafe, [(rye, 1)], delivery_date=date(2024, 1, 1))
    before = _order_count()

    with pytest.raises(InvalidStateError):
        RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=order.id)

    assert _order_count() == before


def test_unknown_interval_is_rejected(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    parent = _recurring_root(test_company, cafe, rye, interval='custom')
    before = _order_count()

    with pytest.raises(InvalidStateError):
        RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=parent.id)

    assert _order_count() == before
    assert db.session.get(WholesaleOrder, parent.id).next_recurrence_date is None


def test_generated_child_cannot_generate(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    parent = _recurring_root(test_company, cafe, rye)
    child = RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=parent.id)

    with pytest.raises(InvalidStateError):
        RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=child.id)


def test_other_company_order_is_not_found(test_company, other_company):
    rye = make_recipe(other_company)
    cafe = make_customer(other_company)
    parent = _recurring_root(other_company, cafe, rye)

    with pytest.raises(NotFoundError):
        RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=parent.id)
    with pytest.raises(NotFoundError):
        RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=98765)


def test_due_sweep_generates_and_advances(test_company, other_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    due = _recurring_root(test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8))
    not_yet = _recurring_root(test_company, cafe, rye, next_recurrence_date=date(2024, 1, 20))
    paused = _recurring_root(
        test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8), recurring_status=RecurringStatus.PAUSED
    )
    legacy = _recurring_root(other_company, cafe.id, rye.id, next_recurrence_date=date(2024, 1, 9), recurring_status=None)

    summary = RecurringOrderService.generate_due_orders(today=date(2024, 1, 10))

    assert summary == {'generated': 2, 'skipped': 0, 'cancelled': 0, 'errors': []}
    db.session.expire_all()
    assert db.session.get(WholesaleOrder, due.id).next_recurrence_date == date(2024, 1, 15)
    assert db.session.get(WholesaleOrder, legacy.id).next_recurrence_date == date(2024, 1, 16)
    assert db.session.get(WholesaleOrder, not_yet.id).generated_orders.count() == 0
    assert db.session.get(WholesaleOrder, paused.id).generated_orders.count() == 0

    child = db.session.get(WholesaleOrder, due.id).generated_orders.one()
    assert child.delivery_date == date(2024, 1, 8)
    assert child.notes.startswith(f'Auto-generated from recurring order #{due.id}')


def test_due_sweep_does_not_double_book(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    root = _recurring_root(test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8))
    # A child for the same date already exists, e.g. from an interrupted run
    make_order(test_company, cafe, [(rye, 24)], status=OrderStatus.PENDING,
               delivery_date=date(2024, 1, 8), parent_order_id=root.id)

    summary = RecurringOrderService.generate_due_orders(today=date(2024, 1, 8))

    assert summary['skipped'] == 1
    assert summary['generated'] == 0
    db.session.expire_all()
    parent = db.session.get(WholesaleOrder, root.id)
    assert parent.generated_orders.count() == 1
    assert parent.next_recurrence_date == date(2024, 1, 15)


def test_due_sweep_cancels_after_end_date(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    root = _recurring_root(
        test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8), recurring_end_date=date(2024, 1, 5)
    )

    summary = RecurringOrderService.generate_due_orders(today=date(2024, 1, 8))

    assert summary['cancelled'] == 1
    db.session.expire_all()
    parent = db.session.get(WholesaleOrder, root.id)
    assert parent.recurring_status == RecurringStatus.CANCELLED
    assert parent.generated_orders.count() == 0
    assert DomainEvent.query.filter_by(event_name='wholesale_order.recurring_ended').count() == 1


def test_due_sweep_collects_errors(test_company):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    broken = _recurring_root(test_company, cafe, rye, interval='custom', next_recurrence_date=date(2024, 1, 8))
    healthy = _recurring_root(test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8))

    summary = RecurringOrderService.generate_due_orders(today=date(2024, 1, 8))

    assert summary['generated'] == 1
    assert [e['order_id'] for e in summary['errors']] == [broken.id]
    assert db.session.get(WholesaleOrder, healthy.id).generated_orders.count() == 1


def test_list_recurring_orders_returns_roots_with_counts(test_company, other_company):
    rye = make_recipe(test_company, 'Rye')
    cafe = make_customer(test_company, 'Cafe')
    deli = make_customer(test_company, 'Deli')
    cafe_root = _recurring_root(test_company, cafe, rye)
    deli_root = _recurring_root(test_company, deli, rye)
    make_order(test_company, cafe, [(rye, 1)])
    _recurring_root(other_company, cafe.id, rye.id)
    RecurringOrderService.generate_next_order(company_id=test_company.id, parent_order_id=cafe_root.id)

    listed = RecurringOrderService.list_recurring_orders(company_id=test_company.id)

    assert {o['id']: o['generated_count'] for o in listed} == {cafe_root.id: 1, deli_root.id: 0}
    cafe_payload = next(o for o in listed if o['id'] == cafe_root.id)
    assert cafe_payload['customer']['name'] == 'Cafe'
    assert cafe_payload['items'][0]['recipe']['name'] == 'Rye'
    assert cafe_payload['items'][0]['price'] == '3.50'

    only_deli = RecurringOrderService.list_recurring_orders(company_id=test_company.id, customer_id=deli.id)
    assert [o['id'] for o in only_deli] == [deli_root.id]


def test_root_lock_statement_skips_locked_rows():
    sql = str(RecurringOrderService.locked_root_stmt(7).compile(dialect=postgresql.dialect()))

    assert 'FOR UPDATE SKIP LOCKED' in sql


def test_sweep_rechecks_roots_after_locking(test_company, monkeypatch):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    root = _recurring_root(test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8))
    # An overlapping sweep already handled the root after this sweep listed it
    root.next_recurrence_date = date(2024, 1, 15)
    db.session.commit()
    monkeypatch.setattr(RecurringOrderService, '_due_root_ids', staticmethod(lambda: [root.id]))

    summary = RecurringOrderService.generate_due_orders(today=date(2024, 1, 10))

    assert summary == {'generated': 0, 'skipped': 0, 'cancelled': 0, 'errors': []}
    assert db.session.get(WholesaleOrder, root.id).generated_orders.count() == 0


def test_sweep_passes_over_roots_held_by_another_sweep(test_company, monkeypatch):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    root = _recurring_root(test_company, cafe, rye, next_recurrence_date=date(2024, 1, 8))
    original = RecurringOrderService.locked_root_stmt
    # A locked row is invisible to SKIP LOCKED; model that as no row at all
    monkeypatch.setattr(
        RecurringOrderService, 'locked_root_stmt', staticmethod(lambda root_id: original(root_id + 100000))
    )

    summary = RecurringOrderService.generate_due_orders(today=date(2024, 1, 10))

    assert summary['generated'] == 0
    assert summary['errors'] == []
    db.session.expire_all()
    assert db.session.get(WholesaleOrder, root.id).next_recurrence_date == date(2024, 1, 8)
