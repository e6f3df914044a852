"""Job assignment ledger: who works on which production item on which day."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import ProductionItem, ProductionJobAssignment, ProductionPlan
from ..utils.error_messages import ErrorMessages as EM
from ..utils.timezone_utils import TimezoneUtils
from ..utils.validation_helpers import parse_date, parse_id
from . import directory
from .event_emitter import JOB_ASSIGNED, EventEmitter

logger = logging.getLogger(__name__)


class JobAssignmentService:

    @staticmethod
    def _load_item(company_id: int, item_id: int) -> ProductionItem:
        item = db.session.get(ProductionItem, item_id)
        if item is None or item.plan is None or item.plan.company_id != company_id:
            raise NotFoundError(EM.ITEM_NOT_FOUND, production_item_id=item_id)
        return item

    @staticmethod
    def _existing(item_id: int, membership_id: int, assigned_date: date) -> Optional[ProductionJobAssignment]:
        return ProductionJobAssignment.query.filter_by(
            production_item_id=item_id,
            membership_id=membership_id,
            assigned_date=assigned_date,
        ).first()

    @classmethod
    def assign(
        cls,
        *,
        company_id: int,
        production_item_id: Any,
        membership_id: Any,
        assigned_date: Any,
        notes: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> ProductionJobAssignment:
        """Record one staff member on one item for one day.

        An existing (item, member, date) triple is reported as a conflict and
        left untouched.
        """
        item_id = parse_id(production_item_id, "production_item_id")
        member_id = parse_id(membership_id, "membership_id")
        work_date = parse_date(assigned_date, "assigned_date")

        cls._load_item(company_id, item_id)
        membership = directory.get_company_membership(company_id, member_id)
        if membership is None:
            raise NotFoundError(EM.MEMBERSHIP_NOT_FOUND, membership_id=member_id)

        conflict = ConflictError(
            EM.ASSIGNMENT_EXISTS.format(date=work_date.isoformat()),
            production_item_id=item_id,
            membership_id=member_id,
            assigned_date=work_date.isoformat(),
        )
        if cls._existing(item_id, member_id, work_date) is not None:
            raise conflict

        assignment = ProductionJobAssignment(
            production_item_id=item_id,
            membership_id=member_id,
            assigned_date=work_date,
            notes=notes or None,
        )
        try:
            db.session.add(assignment)
            db.session.flush()
            EventEmitter.emit(
                JOB_ASSIGNED,
                {
                    "assignment_id": assignment.id,
                    "production_item_id": item_id,
                    "membership_id": member_id,
                    "assigned_date": work_date.isoformat(),
                },
                company_id=company_id,
                user_id=user_id,
                entity_type="production_job_assignment",
                entity_id=assignment.id,
                auto_commit=False,
            )
            db.session.commit()
        except IntegrityError:
            # Lost a race with a concurrent insert of the same triple
            db.session.rollback()
            raise conflict
        except Exception:
            db.session.rollback()
            logger.exception("Failed to assign membership %s to item %s", member_id, item_id)
            raise

        logger.info("Assigned membership %s to production item %s on %s", member_id, item_id, work_date)
        return assignment

    @staticmethod
    def list_assignments(
        *,
        company_id: int,
        membership_id: Any = None,
        production_item_id: Any = None,
        assigned_date: Any = None,
    ) -> List[ProductionJobAssignment]:
        query = (
            ProductionJobAssignment.query.join(ProductionItem, ProductionJobAssignment.production_item)
            .join(ProductionPlan, ProductionItem.plan)
            .filter(ProductionPlan.company_id == company_id)
        )

        membership_id = parse_id(membership_id, "membership_id", required=False)
        if membership_id is not None:
            query = query.filter(ProductionJobAssignment.membership_id == membership_id)
        production_item_id = parse_id(production_item_id, "production_item_id", required=False)
        if production_item_id is not None:
            query = query.filter(ProductionJobAssignment.production_item_id == production_item_id)
        assigned_date = parse_date(assigned_date, "assigned_date", required=False)
        if assigned_date is not None:
            query = query.filter(ProductionJobAssignment.assigned_date == assigned_date)

        return query.order_by(
            ProductionJobAssignment.assigned_date.desc(),
            ProductionJobAssignment.id.desc(),
        ).all()

    @staticmethod
    def unassign(*, company_id: int, assignment_id: Any) -> bool:
        assignment_id = parse_id(assignment_id, "assignment_id")
        assignment = db.session.get(ProductionJobAssignment, assignment_id)
        if (
            assignment is None
            or assignment.production_item is None
            or assignment.production_item.plan.company_id != company_id
        ):
            raise NotFoundError(EM.ASSIGNMENT_NOT_FOUND, assignment_id=assignment_id)

        db.session.delete(assignment)
        db.session.commit()
        return True


def serialize_assignments(assignments: List[ProductionJobAssignment]) -> List[Dict[str, Any]]:
    """Hydrate a page of assignments with one recipe lookup per company."""
    recipe_ids_by_company: Dict[int, set] = {}
    for assignment in assignments:
        plan = assignment.production_item.plan
        recipe_ids_by_company.setdefault(plan.company_id, set()).add(assignment.production_item.recipe_id)
    recipes_by_company = {
        company_id: directory.recipe_summaries(company_id, recipe_ids)
        for company_id, recipe_ids in recipe_ids_by_company.items()
    }
    return [
        serialize_assignment(
            assignment,
            recipes=recipes_by_company.get(assignment.production_item.plan.company_id, {}),
        )
        for assignment in assignments
    ]


def serialize_assignment(
    assignment: ProductionJobAssignment,
    *,
    recipes: Optional[Dict[int, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    item = assignment.production_item
    plan = item.plan
    if recipes is None:
        recipes = directory.recipe_summaries(plan.company_id, {item.recipe_id})
    recipe = recipes.get(item.recipe_id)
    return {
        "id": assignment.id,
        "production_item_id": assignment.production_item_id,
        "membership_id": assignment.membership_id,
        "assigned_date": assignment.assigned_date.isoformat(),
        "notes": assignment.notes,
        "created_at": TimezoneUtils.isoformat(assignment.created_at),
        "membership": directory.membership_summary(assignment.membership),
        "production_item": {
            "id": item.id,
            "quantity": item.quantity,
            "completed": bool(item.completed),
            "recipe": {"id": recipe["id"], "name": recipe["name"]} if recipe else None,
            "plan": {"id": plan.id, "name": plan.name},
        },
    }
