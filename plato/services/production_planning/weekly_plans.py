"""Weekly production plan generation.

Synopsis:
Builds one Monday-Sunday plan per company from the wholesale orders due that
week. Order lines are grouped by recipe, each customer's ordered quantity
becomes a ``wholesale`` allocation, and the item quantity is the number of
batches needed to cover the total. A week that already overlaps any plan is
left alone, so the job can run more than once.
"""

from __future__ import annotations

import logging
import math
from collections import OrderedDict
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

from ...extensions import db
from ...models import Company, OrderStatus, ProductionPlan, WholesaleOrder
from ...utils.timezone_utils import TimezoneUtils
from .. import directory
from .allocation import DEFAULT_CUSTOMER_DESTINATION
from .plan_service import PlanService

logger = logging.getLogger(__name__)

PLANNABLE_STATUSES = (OrderStatus.PENDING, OrderStatus.CONFIRMED)


def week_bounds(day: date) -> Tuple[date, date]:
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


class WeeklyPlanGenerator:
    """Generates the current week's plan for companies that have none."""

    @staticmethod
    def _week_has_plan(company_id: int, week_start: date, week_end: date) -> bool:
        return (
            ProductionPlan.query.filter(
                ProductionPlan.company_id == company_id,
                ProductionPlan.start_date <= week_end,
                ProductionPlan.end_date >= week_start,
            ).first()
            is not None
        )

    @staticmethod
    def _orders_due(company_id: int, week_start: date, week_end: date) -> List[WholesaleOrder]:
        return (
            WholesaleOrder.query.filter(
                WholesaleOrder.company_id == company_id,
                WholesaleOrder.status.in_(PLANNABLE_STATUSES),
                WholesaleOrder.delivery_date >= week_start,
                WholesaleOrder.delivery_date <= week_end,
            )
            .order_by(WholesaleOrder.delivery_date.asc(), WholesaleOrder.id.asc())
            .all()
        )

    @staticmethod
    def build_items(company_id: int, orders: List[WholesaleOrder]) -> List[Dict[str, Any]]:
        # recipe_id -> customer_id -> ordered quantity, in first-seen order
        demand: "OrderedDict[int, OrderedDict[int, float]]" = OrderedDict()
        for order in orders:
            for line in order.items:
                per_customer = demand.setdefault(line.recipe_id, OrderedDict())
                per_customer[order.customer_id] = per_customer.get(order.customer_id, 0.0) + float(line.quantity or 0)

        recipes = directory.recipe_summaries(company_id, demand.keys())
        items = []
        for recipe_id, per_customer in demand.items():
            recipe = recipes.get(recipe_id)
            if recipe is None:
                logger.warning("Skipping recipe %s in weekly plan: recipe no longer exists", recipe_id)
                continue

            total = sum(per_customer.values())
            yield_quantity = float(recipe["yield_quantity"] or 0) or 1.0
            items.append(
                {
                    "recipe_id": recipe_id,
                    "quantity": math.ceil(total / yield_quantity),
                    "allocations": [
                        {
                            "destination": DEFAULT_CUSTOMER_DESTINATION,
                            "customer_id": customer_id,
                            "quantity": quantity,
                        }
                        for customer_id, quantity in per_customer.items()
                    ],
                }
            )
        return items

    @classmethod
    def generate_for_company(cls, company: Company, today: Optional[date] = None) -> Optional[ProductionPlan]:
        today = today or TimezoneUtils.company_today(company)
        week_start, week_end = week_bounds(today)

        if cls._week_has_plan(company.id, week_start, week_end):
            logger.debug("Company %s already has a plan for week of %s", company.id, week_start)
            return None

        orders = cls._orders_due(company.id, week_start, week_end)
        if not orders:
            return None

        items = cls.build_items(company.id, orders)
        if not items:
            return None

        plan = PlanService.save_plan(
            company_id=company.id,
            name=f"Auto-Generated Week {week_start.strftime('%b')} {week_start.day}, {week_start.year}",
            start_date=week_start,
            end_date=week_end,
            notes=f"Automatically generated from {len(orders)} wholesale order(s)",
            items=items,
        )
        logger.info("Generated weekly plan %s for company %s (%s item(s))", plan.id, company.id, len(items))
        return plan

    @classmethod
    def generate_all(cls, today: Optional[date] = None) -> Dict[str, Any]:
        """Run for every active company; one company's failure does not stop the rest."""
        summary: Dict[str, Any] = {"plans_created": 0, "plan_ids": [], "errors": []}
        companies = Company.query.filter_by(is_active=True).order_by(Company.id.asc()).all()
        for company in companies:
            try:
                plan = cls.generate_for_company(company, today)
            except Exception as exc:
                db.session.rollback()
                logger.exception("Weekly plan generation failed for company %s", company.id)
                summary["errors"].append({"company_id": company.id, "error": str(exc)})
                continue
            if plan is not None:
                summary["plans_created"] += 1
                summary["plan_ids"].append(plan.id)
        return summary
