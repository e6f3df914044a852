"""Order status synchronization after a production plan save.

Synopsis:
A saved plan tells fulfillment that work has started on matching confirmed
wholesale orders. The pass is driven by the ``production_plan.saved`` outbox
event written in the plan's transaction: it runs right after the commit, and any
event left unprocessed (crash, partial failure) is retried by
``sync_pending_plan_events``.

Glossary:
- Candidate: confirmed order of an allocated customer delivering inside the window.
- Promotion: one-way ``confirmed -> in_production`` transition.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from flask import current_app, has_app_context
from sqlalchemy import select

from ...extensions import db
from ...models import DomainEvent, OrderStatus, ProductionPlan, WholesaleOrder
from ..event_emitter import ORDER_IN_PRODUCTION, PRODUCTION_PLAN_SAVED, EventEmitter

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    plan_id: int
    candidates: int = 0
    promoted: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class OrderStatusSynchronizer:
    """Promotes confirmed orders that a production plan now covers."""

    def __init__(self, plan: ProductionPlan):
        self.plan = plan

    def candidate_orders(self) -> List[WholesaleOrder]:
        customer_ids = self.plan.allocated_customer_ids
        if not customer_ids:
            return []
        return (
            WholesaleOrder.query.filter(
                WholesaleOrder.company_id == self.plan.company_id,
                WholesaleOrder.customer_id.in_(sorted(customer_ids)),
                WholesaleOrder.status == OrderStatus.CONFIRMED,
                WholesaleOrder.delivery_date >= self.plan.start_date,
                WholesaleOrder.delivery_date <= self.plan.end_date,
            )
            .order_by(WholesaleOrder.id.asc())
            .all()
        )

    @staticmethod
    def qualifies(order: WholesaleOrder, recipe_ids: set, customer_ids: set) -> bool:
        # Customer-level match: the allocation may sit on any item of the plan.
        shares_recipe = any(item.recipe_id in recipe_ids for item in order.items)
        return shares_recipe and order.customer_id in customer_ids

    def run(self) -> SyncResult:
        result = SyncResult(plan_id=self.plan.id)
        candidates = self.candidate_orders()
        result.candidates = len(candidates)
        if not candidates:
            return result

        recipe_ids = self.plan.recipe_ids
        customer_ids = self.plan.allocated_customer_ids

        for order in candidates:
            if not self.qualifies(order, recipe_ids, customer_ids):
                continue
            order_id = order.id
            try:
                with db.session.begin_nested():
                    self._promote(order)
            except Exception:
                logger.exception(
                    "Failed to promote order %s for production plan %s; skipping",
                    order_id,
                    self.plan.id,
                )
                result.failed.append(order_id)
            else:
                result.promoted.append(order_id)

        if result.promoted:
            logger.info(
                "Production plan %s moved %s order(s) to in_production: %s",
                self.plan.id,
                len(result.promoted),
                result.promoted,
            )
        return result

    def _promote(self, order: WholesaleOrder) -> None:
        order.status = OrderStatus.IN_PRODUCTION
        EventEmitter.emit(
            ORDER_IN_PRODUCTION,
            {
                "order_id": order.id,
                "customer_id": order.customer_id,
                "delivery_date": order.delivery_date.isoformat() if order.delivery_date else None,
                "plan_id": self.plan.id,
            },
            company_id=order.company_id,
            entity_type="wholesale_order",
            entity_id=order.id,
            auto_commit=False,
        )
        db.session.flush()


def _max_attempts() -> int:
    if has_app_context():
        return int(current_app.config.get("DOMAIN_EVENT_MAX_ATTEMPTS", 6) or 0)
    return 6


def _record_attempt(event: DomainEvent, *, failed_order_ids: List[int], error: Optional[str] = None) -> None:
    event.delivery_attempts = (event.delivery_attempts or 0) + 1
    props = dict(event.properties or {})
    props["failed_order_ids"] = failed_order_ids
    if error:
        props["last_error"] = error
    event.properties = props

    max_attempts = _max_attempts()
    if max_attempts and event.delivery_attempts >= max_attempts:
        logger.error(
            "Order sync for plan event %s exceeded %s attempts; giving up",
            event.id,
            max_attempts,
        )
        event.mark_processed(sync_errors=["max_retry_exceeded"])


def process_plan_event(event: DomainEvent) -> Optional[SyncResult]:
    """Run the synchronizer for one ``production_plan.saved`` event; never raises."""
    try:
        plan = db.session.get(ProductionPlan, event.entity_id)
        if plan is None:
            event.mark_processed(sync_skipped="plan_missing")
            db.session.commit()
            return None
        result = OrderStatusSynchronizer(plan).run()
    except Exception as exc:
        db.session.rollback()
        logger.exception("Order sync pass failed for plan event %s", event.id)
        try:
            _record_attempt(event, failed_order_ids=[], error=str(exc))
            db.session.commit()
        except Exception:
            db.session.rollback()
            logger.exception("Could not record order sync failure for event %s", event.id)
        return None

    try:
        if result.ok:
            event.mark_processed(promoted_order_ids=result.promoted)
        else:
            _record_attempt(event, failed_order_ids=result.failed)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("Failed to commit order sync results for plan %s", result.plan_id)
        return None
    return result


def sync_pending_plan_events(limit: int = 100) -> dict:
    """Retry order sync for plan saves whose pass never completed."""
    stmt = (
        select(DomainEvent)
        .where(
            DomainEvent.event_name == PRODUCTION_PLAN_SAVED,
            DomainEvent.is_processed.is_(False),
        )
        .order_by(DomainEvent.id.asc())
        .limit(max(1, limit))
    )
    events = db.session.execute(stmt).scalars().all()

    summary = {"processed": 0, "promoted": 0, "failed": 0}
    for event in events:
        summary["processed"] += 1
        result = process_plan_event(event)
        if result is None:
            if not event.is_processed:
                summary["failed"] += 1
            continue
        summary["promoted"] += len(result.promoted)
        summary["failed"] += len(result.failed)
    return summary
