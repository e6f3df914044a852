from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError

from ...errors import ForbiddenError, InvalidInputError, NotFoundError
from ...extensions import db
from ...models import ProductionItem, ProductionPlan
from ...utils.error_messages import ErrorMessages as EM
from ...utils.validation_helpers import parse_date, parse_id, parse_quantity, require_text
from ..event_emitter import PRODUCTION_PLAN_DELETED, PRODUCTION_PLAN_SAVED, EventEmitter
from .allocation import build_allocation, normalize_allocations
from .order_sync import process_plan_event

logger = logging.getLogger(__name__)


class PlanService:
    """Plan store: full-replace saves, cascading deletes, company-scoped reads."""

    @staticmethod
    def _load_owned_plan(company_id: int, plan_id: Any) -> ProductionPlan:
        plan_id = parse_id(plan_id, "plan_id")
        plan = db.session.get(ProductionPlan, plan_id)
        if plan is None:
            raise NotFoundError(EM.PLAN_NOT_FOUND, plan_id=plan_id)
        if plan.company_id != company_id:
            raise ForbiddenError(EM.PLAN_FORBIDDEN, plan_id=plan_id)
        return plan

    @staticmethod
    def normalize_items(raw_items: Sequence[Mapping[str, Any]] | None) -> List[Dict[str, Any]]:
        if not raw_items:
            raise InvalidInputError(EM.ITEMS_REQUIRED, field="items")

        normalized = []
        for index, raw in enumerate(raw_items, start=1):
            if not isinstance(raw, Mapping):
                raise InvalidInputError(EM.ITEM_INVALID.format(index=index, reason="expected an object"))
            try:
                recipe_id = parse_id(raw.get("recipe_id"), "recipe_id")
                quantity = parse_quantity(raw.get("quantity"), "quantity")
            except InvalidInputError as exc:
                raise InvalidInputError(EM.ITEM_INVALID.format(index=index, reason=exc.message)) from exc

            normalized.append(
                {
                    "recipe_id": recipe_id,
                    "quantity": quantity,
                    "notes": raw.get("notes") or None,
                    "allocations": normalize_allocations(raw.get("allocations"), item_index=index),
                }
            )
        return normalized

    @classmethod
    def save_plan(
        cls,
        *,
        company_id: int,
        plan_id: Optional[int] = None,
        name: Any,
        start_date: Any,
        end_date: Any,
        notes: Optional[str] = None,
        items: Sequence[Mapping[str, Any]] | None,
        user_id: Optional[int] = None,
    ) -> ProductionPlan:
        """Create a plan, or replace every item of an existing one.

        All validation and ownership checks run before anything is written. The
        replace and its ``production_plan.saved`` outbox event commit together;
        order status synchronization then runs best-effort on the committed plan.
        """
        if company_id is None:
            raise NotFoundError(EM.COMPANY_NOT_FOUND)

        clean_name = require_text(name, "name")
        window_start: date = parse_date(start_date, "start_date")
        window_end: date = parse_date(end_date, "end_date")
        if window_start > window_end:
            raise InvalidInputError(EM.DATE_WINDOW_INVALID, field="end_date")
        normalized = cls.normalize_items(items)

        plan = cls._load_owned_plan(company_id, plan_id) if plan_id is not None else None
        is_new = plan is None

        try:
            if is_new:
                plan = ProductionPlan(company_id=company_id, created_by=user_id)
                db.session.add(plan)
            else:
                # Full replace: allocations and job assignments go with the items.
                plan.items.clear()
                db.session.flush()

            plan.name = clean_name
            plan.start_date = window_start
            plan.end_date = window_end
            plan.notes = notes or None

            for priority, data in enumerate(normalized):
                item = ProductionItem(
                    recipe_id=data["recipe_id"],
                    quantity=data["quantity"],
                    priority=priority,
                    notes=data["notes"],
                )
                item.allocations = [build_allocation(a) for a in data["allocations"]]
                plan.items.append(item)

            db.session.flush()
            event = EventEmitter.emit(
                PRODUCTION_PLAN_SAVED,
                {
                    "plan_id": plan.id,
                    "created": is_new,
                    "item_count": len(normalized),
                    "customer_ids": sorted(plan.allocated_customer_ids),
                    "start_date": window_start.isoformat(),
                    "end_date": window_end.isoformat(),
                },
                company_id=company_id,
                user_id=user_id,
                entity_type="production_plan",
                entity_id=plan.id,
                auto_commit=False,
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to save production plan (plan_id=%s)", plan_id)
            raise

        logger.info(
            "%s production plan %s with %s item(s)",
            "Created" if is_new else "Replaced",
            plan.id,
            len(normalized),
        )
        process_plan_event(event)
        return plan

    @classmethod
    def delete_plan(cls, *, company_id: int, plan_id: Any, user_id: Optional[int] = None) -> bool:
        plan = cls._load_owned_plan(company_id, plan_id)
        deleted_id = plan.id
        item_count = len(plan.items)
        assignment_count = sum(len(item.assignments) for item in plan.items)

        try:
            db.session.delete(plan)
            EventEmitter.emit(
                PRODUCTION_PLAN_DELETED,
                {
                    "plan_id": deleted_id,
                    "item_count": item_count,
                    "assignment_count": assignment_count,
                },
                company_id=company_id,
                user_id=user_id,
                entity_type="production_plan",
                entity_id=deleted_id,
                auto_commit=False,
            )
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Failed to delete production plan %s", deleted_id)
            raise

        if assignment_count:
            logger.info(
                "Deleted production plan %s together with %s job assignment(s)",
                deleted_id,
                assignment_count,
            )
        return True

    @classmethod
    def get_plan(cls, *, company_id: int, plan_id: Any) -> ProductionPlan:
        return cls._load_owned_plan(company_id, plan_id)

    @staticmethod
    def list_plans(
        *,
        company_id: int,
        window_start: Optional[date] = None,
        window_end: Optional[date] = None,
    ) -> List[ProductionPlan]:
        query = ProductionPlan.for_company(company_id)
        if window_start is not None:
            query = query.filter(ProductionPlan.end_date >= window_start)
        if window_end is not None:
            query = query.filter(ProductionPlan.start_date <= window_end)
        return query.order_by(ProductionPlan.start_date.desc(), ProductionPlan.id.desc()).all()

    @staticmethod
    def set_item_completed(
        *,
        company_id: int,
        item_id: Any,
        completed: bool,
        user_id: Optional[int] = None,
    ) -> ProductionItem:
        item_id = parse_id(item_id, "item_id")
        item = db.session.get(ProductionItem, item_id)
        if item is None or item.plan.company_id != company_id:
            raise NotFoundError(EM.ITEM_NOT_FOUND, item_id=item_id)

        if completed:
            item.mark_completed(user_id)
        else:
            item.mark_incomplete()
        db.session.commit()
        return item
