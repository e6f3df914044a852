"""Recurring wholesale orders.

Synopsis:
A recurring order is a template ("root") that stamps out ordinary pending
orders on a schedule. Staff can generate the next one by hand; a daily sweep
generates every root whose ``next_recurrence_date`` has arrived.

Glossary:
- Root: order with ``is_recurring`` set and no parent.
- Child: generated order; never recurring itself, points back at its root.
- Pointer: the root's ``next_recurrence_date``.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.sql import Select

from ..errors import InvalidStateError, NotFoundError
from ..extensions import db
from ..models import (
    OrderStatus,
    RecurringInterval,
    RecurringStatus,
    WholesaleOrder,
    WholesaleOrderItem,
)
from ..utils.error_messages import ErrorMessages as EM
from ..utils.timezone_utils import TimezoneUtils
from ..utils.validation_helpers import parse_id
from . import directory
from .event_emitter import RECURRING_ORDER_ENDED, RECURRING_ORDER_GENERATED, EventEmitter

logger = logging.getLogger(__name__)

_FIXED_STEPS = {
    RecurringInterval.WEEKLY: timedelta(days=7),
    RecurringInterval.BIWEEKLY: timedelta(days=14),
}


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping to the last day of the target month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def advance_date(base: date, interval: Optional[str], interval_days: Optional[int]) -> Optional[date]:
    """Apply one recurrence step, or return None when no step can be resolved."""
    if interval in _FIXED_STEPS:
        return base + _FIXED_STEPS[interval]
    if interval == RecurringInterval.MONTHLY:
        return add_months(base, 1)
    if interval_days is not None and interval_days > 0:
        return base + timedelta(days=interval_days)
    return None


class RecurringOrderService:
    """Generates child orders from recurring roots."""

    @staticmethod
    def _copy_items(parent: WholesaleOrder) -> List[WholesaleOrderItem]:
        return [
            WholesaleOrderItem(
                recipe_id=item.recipe_id,
                quantity=item.quantity,
                price=item.price,
                notes=item.notes,
            )
            for item in parent.items
        ]

    @classmethod
    def _build_child(cls, parent: WholesaleOrder, delivery_date: date, notes: str, user_id=None) -> WholesaleOrder:
        child = WholesaleOrder(
            company_id=parent.company_id,
            customer_id=parent.customer_id,
            delivery_date=delivery_date,
            status=OrderStatus.PENDING,
            notes=notes,
            is_recurring=False,
            parent_order_id=parent.id,
            created_by=user_id,
        )
        child.items = cls._copy_items(parent)
        db.session.add(child)
        return child

    @staticmethod
    def _emit_generated(parent: WholesaleOrder, child: WholesaleOrder, *, trigger: str, user_id=None) -> None:
        EventEmitter.emit(
            RECURRING_ORDER_GENERATED,
            {
                "parent_order_id": parent.id,
                "order_id": child.id,
                "customer_id": child.customer_id,
                "delivery_date": child.delivery_date.isoformat(),
                "next_recurrence_date": parent.next_recurrence_date.isoformat()
                if parent.next_recurrence_date
                else None,
                "item_count": len(child.items),
                "trigger": trigger,
            },
            company_id=parent.company_id,
            user_id=user_id,
            entity_type="wholesale_order",
            entity_id=child.id,
            auto_commit=False,
        )

    @classmethod
    def generate_next_order(
        cls,
        *,
        company_id: int,
        parent_order_id: Any,
        today: Optional[date] = None,
        user_id: Optional[int] = None,
    ) -> WholesaleOrder:
        """Create the next child of a recurring root and advance its pointer.

        Not idempotent: every call creates another child. The child and the
        pointer update commit together.
        """
        parent_order_id = parse_id(parent_order_id, "order_id")
        parent = db.session.get(WholesaleOrder, parent_order_id)
        if parent is None or parent.company_id != company_id:
            raise NotFoundError(EM.ORDER_NOT_FOUND, order_id=parent_order_id)
        if parent.is_generated:
            raise InvalidStateError(
                EM.ORDER_IS_GENERATED.format(order_id=parent.id, parent_id=parent.parent_order_id),
                order_id=parent.id,
            )
        if not parent.is_recurring:
            raise InvalidStateError(EM.ORDER_NOT_RECURRING.format(order_id=parent.id), order_id=parent.id)

        if parent.delivery_date is not None:
            base = parent.delivery_date
        else:
            base = today or TimezoneUtils.company_today(directory.get_company(parent.company_id))

        delivery_date = advance_date(base, parent.recurring_interval, parent.recurring_interval_days)
        if delivery_date is None:
            raise InvalidStateError(EM.ORDER_INTERVAL_UNKNOWN.format(order_id=parent.id), order_id=parent.id)

        try:
            child = cls._build_child(
                parent,
                delivery_date,
                EM.RECURRING_GENERATED_NOTE.format(order_id=parent.id),
                user_id=user_id,
            )
            parent.next_recurrence_date = advance_date(
                delivery_date, parent.recurring_interval, parent.recurring_interval_days
            )
            db.session.flush()
            cls._emit_generated(parent, child, trigger="manual", user_id=user_id)
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception("Failed to generate next order for recurring order %s", parent_order_id)
            raise

        logger.info(
            "Generated order %s from recurring order %s for delivery %s",
            child.id,
            parent.id,
            delivery_date,
        )
        return child

    @staticmethod
    def _due_root_ids() -> List[int]:
        stmt = (
            select(WholesaleOrder.id)
            .where(
                WholesaleOrder.is_recurring.is_(True),
                WholesaleOrder.parent_order_id.is_(None),
                WholesaleOrder.next_recurrence_date.isnot(None),
                or_(
                    WholesaleOrder.recurring_status == RecurringStatus.ACTIVE,
                    WholesaleOrder.recurring_status.is_(None),
                ),
            )
            .order_by(WholesaleOrder.next_recurrence_date.asc(), WholesaleOrder.id.asc())
        )
        return list(db.session.execute(stmt).scalars())

    @staticmethod
    def locked_root_stmt(root_id: int) -> Select:
        """Row lock held until the root's transaction ends; busy roots are skipped."""
        return (
            select(WholesaleOrder)
            .where(WholesaleOrder.id == root_id)
            .with_for_update(skip_locked=True)
            .execution_options(populate_existing=True)
        )

    @staticmethod
    def _still_due(root: WholesaleOrder, today: date) -> bool:
        return (
            root.next_recurrence_date is not None
            and root.next_recurrence_date <= today
            and root.recurring_status in (RecurringStatus.ACTIVE, None)
        )

    @classmethod
    def _sweep_root(cls, root: WholesaleOrder, today: date) -> str:
        """Process one due root inside the current transaction; returns the outcome."""
        if root.recurring_end_date is not None and root.recurring_end_date < today:
            root.recurring_status = RecurringStatus.CANCELLED
            EventEmitter.emit(
                RECURRING_ORDER_ENDED,
                {"order_id": root.id, "recurring_end_date": root.recurring_end_date.isoformat()},
                company_id=root.company_id,
                entity_type="wholesale_order",
                entity_id=root.id,
                auto_commit=False,
            )
            return "cancelled"

        delivery_date = root.next_recurrence_date
        next_pointer = advance_date(delivery_date, root.recurring_interval, root.recurring_interval_days)
        if next_pointer is None:
            raise InvalidStateError(EM.ORDER_INTERVAL_UNKNOWN.format(order_id=root.id), order_id=root.id)

        already_generated = root.generated_orders.filter(
            WholesaleOrder.delivery_date == delivery_date
        ).first()
        root.next_recurrence_date = next_pointer
        if already_generated is not None:
            logger.warning(
                "Recurring order %s already has child %s for %s; advancing pointer only",
                root.id,
                already_generated.id,
                delivery_date,
            )
            return "skipped"

        notes = EM.RECURRING_GENERATED_NOTE.format(order_id=root.id)
        if root.notes:
            notes = f"{notes} - {root.notes}"
        child = cls._build_child(root, delivery_date, notes, user_id=root.created_by)
        db.session.flush()
        cls._emit_generated(root, child, trigger="schedule")
        return "generated"

    @classmethod
    def generate_due_orders(cls, today: Optional[date] = None) -> Dict[str, Any]:
        """Sweep every company's due recurring roots, one transaction per root."""
        summary: Dict[str, Any] = {"generated": 0, "skipped": 0, "cancelled": 0, "errors": []}
        company_today: Dict[int, date] = {}

        for root_id in cls._due_root_ids():
            try:
                root = db.session.execute(cls.locked_root_stmt(root_id)).scalar_one_or_none()
                if root is None:
                    # Locked by a concurrent sweep
                    db.session.rollback()
                    continue
                if today is not None:
                    root_today = today
                else:
                    if root.company_id not in company_today:
                        company_today[root.company_id] = TimezoneUtils.company_today(
                            directory.get_company(root.company_id)
                        )
                    root_today = company_today[root.company_id]
                # Re-check under the lock; another sweep may have advanced the pointer
                if not cls._still_due(root, root_today):
                    db.session.rollback()
                    continue

                outcome = cls._sweep_root(root, root_today)
                db.session.commit()
            except Exception as exc:
                db.session.rollback()
                logger.exception("Recurring sweep failed for order %s", root_id)
                summary["errors"].append({"order_id": root_id, "error": str(exc)})
                continue
            summary[outcome] += 1

        if summary["generated"] or summary["cancelled"]:
            logger.info(
                "Recurring sweep: generated=%s skipped=%s cancelled=%s errors=%s",
                summary["generated"],
                summary["skipped"],
                summary["cancelled"],
                len(summary["errors"]),
            )
        return summary

    @staticmethod
    def list_recurring_orders(*, company_id: int, customer_id: Any = None) -> List[Dict[str, Any]]:
        query = WholesaleOrder.for_company(company_id).filter(
            WholesaleOrder.is_recurring.is_(True),
            WholesaleOrder.parent_order_id.is_(None),
        )
        customer_id = parse_id(customer_id, "customer_id", required=False)
        if customer_id is not None:
            query = query.filter(WholesaleOrder.customer_id == customer_id)
        roots = query.order_by(
            WholesaleOrder.recurring_status.asc(),
            WholesaleOrder.next_recurrence_date.asc(),
            WholesaleOrder.created_at.desc(),
        ).all()
        if not roots:
            return []

        counts = dict(
            db.session.query(WholesaleOrder.parent_order_id, func.count(WholesaleOrder.id))
            .filter(WholesaleOrder.parent_order_id.in_([root.id for root in roots]))
            .group_by(WholesaleOrder.parent_order_id)
            .all()
        )
        recipes = directory.recipe_summaries(
            company_id, {item.recipe_id for root in roots for item in root.items}
        )
        customers = directory.customer_summaries(company_id, {root.customer_id for root in roots})
        return [
            serialize_order(root, recipes=recipes, customers=customers, generated_count=counts.get(root.id, 0))
            for root in roots
        ]


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_order(
    order: WholesaleOrder,
    *,
    recipes: Optional[Dict[int, Dict[str, Any]]] = None,
    customers: Optional[Dict[int, Dict[str, Any]]] = None,
    generated_count: Optional[int] = None,
) -> Dict[str, Any]:
    if recipes is None:
        recipes = directory.recipe_summaries(order.company_id, {item.recipe_id for item in order.items})
    if customers is None:
        customers = directory.customer_summaries(order.company_id, {order.customer_id})
    payload = {
        "id": order.id,
        "company_id": order.company_id,
        "customer_id": order.customer_id,
        "customer": customers.get(order.customer_id),
        "status": order.status,
        "delivery_date": _iso(order.delivery_date),
        "notes": order.notes,
        "is_recurring": bool(order.is_recurring),
        "recurring_interval": order.recurring_interval,
        "recurring_interval_days": order.recurring_interval_days,
        "recurring_status": order.recurring_status,
        "recurring_end_date": _iso(order.recurring_end_date),
        "next_recurrence_date": _iso(order.next_recurrence_date),
        "parent_order_id": order.parent_order_id,
        "items": [
            {
                "id": item.id,
                "recipe_id": item.recipe_id,
                "recipe": recipes.get(item.recipe_id),
                "quantity": item.quantity,
                "price": str(item.price) if item.price is not None else None,
                "notes": item.notes,
            }
            for item in order.items
        ],
    }
    if generated_count is not None:
        payload["generated_count"] = generated_count
    return payload
