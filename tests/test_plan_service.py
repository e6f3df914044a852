from datetime import date

import pytest

from plato.errors import ForbiddenError, InvalidInputError, NotFoundError
from plato.extensions import db
from plato.models import (
    DomainEvent,
    ProductionAllocation,
    ProductionItem,
    ProductionJobAssignment,
    ProductionPlan,
)
from plato.services.job_assignments import JobAssignmentService
from plato.services.production_planning import PlanService, allocation_summary, serialize_plan
from tests.factories import customer_allocation, make_customer, make_recipe, plan_item


def _save(company, items, **overrides):
    params = {
        'company_id': company.id,
        'name': 'Week 1',
        'start_date': '2024-01-01',
        'end_date': '2024-01-07',
        'items': items,
    }
    params.update(overrides)
    return PlanService.save_plan(**params)


def test_saved_items_match_submission_order(test_company, test_user):
    rye = make_recipe(test_company, 'Rye')
    baguette = make_recipe(test_company, 'Baguette')
    cafe = make_customer(test_company)

    plan = _save(
        test_company,
        [
            plan_item(baguette, 40, [customer_allocation(cafe, 30), {'destination': 'retail', 'quantity': 10}]),
            plan_item(rye, 12, notes='seeded'),
        ],
        user_id=test_user.id,
    )

    reloaded = db.session.get(ProductionPlan, plan.id)
    assert [(i.recipe_id, i.quantity, i.priority) for i in reloaded.items] == [
        (baguette.id, 40, 0),
        (rye.id, 12, 1),
    ]
    assert reloaded.items[1].notes == 'seeded'
    assert reloaded.start_date == date(2024, 1, 1)
    assert reloaded.created_by == test_user.id

    allocations = reloaded.items[0].allocations
    assert [(a.destination, a.customer_id, a.quantity) for a in allocations] == [
        ('wholesale', cafe.id, 30),
        ('retail', None, 10),
    ]


def test_serialized_plan_is_hydrated(test_company):
    rye = make_recipe(test_company, 'Rye', yield_quantity=8)
    cafe = make_customer(test_company, 'Corner Cafe')
    plan = _save(test_company, [plan_item(rye, 16, [customer_allocation(cafe, 20)]), plan_item(9999, 1)])

    payload = serialize_plan(plan)

    assert payload['items'][0]['recipe']['name'] == 'Rye'
    assert payload['items'][0]['allocations'][0]['customer']['name'] == 'Corner Cafe'
    # Dangling recipe reference is tolerated
    assert payload['items'][1]['recipe'] is None
    assert payload['allocation_summary'][0]['over_allocated'] is True
    assert payload['allocation_summary'][0]['unallocated'] == -4


def test_replace_discards_previous_items(test_company):
    rye = make_recipe(test_company, 'Rye')
    baguette = make_recipe(test_company, 'Baguette')
    cafe = make_customer(test_company)
    plan = _save(test_company, [plan_item(rye, 5, [customer_allocation(cafe, 5)])])

    replaced = _save(
        test_company,
        [plan_item(baguette, 20)],
        plan_id=plan.id,
        name='Week 1 (revised)',
    )

    assert replaced.id == plan.id
    assert replaced.name == 'Week 1 (revised)'
    assert [i.recipe_id for i in replaced.items] == [baguette.id]
    assert ProductionItem.query.count() == 1
    assert ProductionAllocation.query.count() == 0


def test_save_writes_outbox_event(test_company):
    rye = make_recipe(test_company)
    plan = _save(test_company, [plan_item(rye, 5)])

    event = DomainEvent.query.filter_by(event_name='production_plan.saved').one()
    assert event.entity_id == plan.id
    assert event.properties['created'] is True
    # Nothing to promote, so the sync pass completes immediately
    assert event.is_processed is True


def test_delete_cascades_items_allocations_and_assignments(test_company, test_member):
    rye = make_recipe(test_company)
    cafe = make_customer(test_company)
    plan = _save(test_company, [plan_item(rye, 5, [customer_allocation(cafe, 5)])])
    JobAssignmentService.assign(
        company_id=test_company.id,
        production_item_id=plan.items[0].id,
        membership_id=test_member.id,
        assigned_date='2024-01-02',
    )

    PlanService.delete_plan(company_id=test_company.id, plan_id=plan.id)

    assert ProductionPlan.query.count() == 0
    assert ProductionItem.query.count() == 0
    assert ProductionAllocation.query.count() == 0
    assert ProductionJobAssignment.query.count() == 0


@pytest.mark.parametrize(
    'overrides, field',
    [
        ({'name': '  '}, 'name'),
        ({'start_date': None}, 'start_date'),
        ({'end_date': '01/07/2024'}, 'end_date'),
        ({'start_date': '2024-01-08'}, 'end_date'),
        ({'start_date': '2024-01-01oops'}, 'start_date'),
        ({'end_date': '2024-01-07T25:00'}, 'end_date'),
    ],
)
def test_invalid_header_is_rejected(test_company, overrides, field):
    rye = make_recipe(test_company)

    with pytest.raises(InvalidInputError) as exc:
        _save(test_company, [plan_item(rye, 5)], **overrides)

    assert exc.value.details.get('field') == field
    assert ProductionPlan.query.count() == 0


@pytest.mark.parametrize(
    'items',
    [
        [],
        [{'quantity': 3}],
        [{'recipe_id': 1, 'quantity': 'lots'}],
        [{'recipe_id': 1, 'quantity': -1}],
        [{'recipe_id': 1, 'quantity': 'nan'}],
        [{'recipe_id': 1, 'quantity': float('inf')}],
        [{'recipe_id': 1, 'quantity': 2, 'allocations': [{'destination': 'retail', 'quantity': '-inf'}]}],
        [{'recipe_id': 1.5, 'quantity': 2}],
        [{'recipe_id': 0, 'quantity': 2}],
        [{'recipe_id': 1, 'quantity': 1, 'allocations': [{'quantity': 1}]}],
    ],
)
def test_invalid_items_are_rejected(test_company, items):
    with pytest.raises(InvalidInputError):
        _save(test_company, items)
    assert ProductionPlan.query.count() == 0
    assert DomainEvent.query.count() == 0


def test_datetime_strings_keep_their_date(test_company):
    rye = make_recipe(test_company)

    plan = _save(
        test_company, [plan_item(rye, 5)], start_date='2024-01-01T08:30:00', end_date='2024-01-07 17:00'
    )

    assert (plan.start_date, plan.end_date) == (date(2024, 1, 1), date(2024, 1, 7))


def test_failed_replace_leaves_plan_untouched(test_company):
    rye = make_recipe(test_company)
    plan = _save(test_company, [plan_item(rye, 5)])

    with pytest.raises(InvalidInputError):
        _save(test_company, [{'recipe_id': rye.id, 'quantity': 'x'}], plan_id=plan.id)

    db.session.expire_all()
    assert [i.quantity for i in db.session.get(ProductionPlan, plan.id).items] == [5]


def test_editing_missing_plan_is_not_found(test_company):
    rye = make_recipe(test_company)
    with pytest.raises(NotFoundError):
        _save(test_company, [plan_item(rye, 5)], plan_id=4242)


def test_other_company_plan_is_forbidden(test_company, other_company):
    rye = make_recipe(other_company)
    foreign = _save(other_company, [plan_item(rye, 5)])

    with pytest.raises(ForbiddenError):
        _save(test_company, [plan_item(rye, 1)], plan_id=foreign.id)
    with pytest.raises(ForbiddenError):
        PlanService.delete_plan(company_id=test_company.id, plan_id=foreign.id)

    assert db.session.get(ProductionPlan, foreign.id).items[0].quantity == 5


def test_list_plans_newest_window_first(test_company, other_company):
    rye = make_recipe(test_company)
    _save(test_company, [plan_item(rye, 1)], name='Early')
    _save(test_company, [plan_item(rye, 1)], name='Late', start_date='2024-02-01', end_date='2024-02-07')
    _save(other_company, [plan_item(rye, 1)], name='Foreign')

    names = [p.name for p in PlanService.list_plans(company_id=test_company.id)]

    assert names == ['Late', 'Early']


def test_item_completion_toggle(test_company, test_user, other_company):
    rye = make_recipe(test_company)
    plan = _save(test_company, [plan_item(rye, 5)])
    item_id = plan.items[0].id

    item = PlanService.set_item_completed(
        company_id=test_company.id, item_id=item_id, completed=True, user_id=test_user.id
    )
    assert item.completed is True
    assert item.completed_by == test_user.id
    assert item.completed_at is not None

    item = PlanService.set_item_completed(company_id=test_company.id, item_id=item_id, completed=False)
    assert item.completed is False
    assert item.completed_at is None

    with pytest.raises(NotFoundError):
        PlanService.set_item_completed(company_id=other_company.id, item_id=item_id, completed=True)


def test_allocation_summary_reports_gap(test_company):
    rye = make_recipe(test_company)
    plan = _save(test_company, [plan_item(rye, 10, [{'destination': 'retail', 'quantity': 4}])])

    summary = allocation_summary(plan)

    assert summary == [
        {
            'item_id': plan.items[0].id,
            'recipe_id': rye.id,
            'quantity': 10.0,
            'allocated': 4.0,
            'unallocated': 6.0,
            'over_allocated': False,
        }
    ]
