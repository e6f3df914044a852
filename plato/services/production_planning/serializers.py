from __future__ import annotations

from typing import Any, Dict, Optional

from ...models import ProductionAllocation, ProductionItem, ProductionPlan
from ...utils.timezone_utils import TimezoneUtils
from .. import directory
from .allocation import allocation_summary


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_allocation(allocation: ProductionAllocation, customers: Dict[int, Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "id": allocation.id,
        "destination": allocation.destination,
        "customer_id": allocation.customer_id,
        "customer": customers.get(allocation.customer_id),
        "quantity": allocation.quantity,
        "notes": allocation.notes,
    }


def serialize_item(
    item: ProductionItem,
    recipes: Dict[int, Dict[str, Any]],
    customers: Dict[int, Dict[str, Any]],
) -> Dict[str, Any]:
    return {
        "id": item.id,
        "plan_id": item.plan_id,
        "recipe_id": item.recipe_id,
        "recipe": recipes.get(item.recipe_id),
        "quantity": item.quantity,
        "priority": item.priority,
        "notes": item.notes,
        "completed": bool(item.completed),
        "completed_by": item.completed_by,
        "completed_at": TimezoneUtils.isoformat(item.completed_at),
        "allocations": [serialize_allocation(a, customers) for a in item.allocations],
    }


def serialize_plan(plan: ProductionPlan, *, include_summary: bool = True) -> Dict[str, Any]:
    """Fully hydrated plan: items with recipe summaries, allocations with customers."""
    recipes = directory.recipe_summaries(plan.company_id, plan.recipe_ids)
    customers = directory.customer_summaries(plan.company_id, plan.allocated_customer_ids)
    payload = {
        "id": plan.id,
        "company_id": plan.company_id,
        "name": plan.name,
        "start_date": _iso(plan.start_date),
        "end_date": _iso(plan.end_date),
        "notes": plan.notes,
        "created_by": plan.created_by,
        "created_at": TimezoneUtils.isoformat(plan.created_at),
        "updated_at": TimezoneUtils.isoformat(plan.updated_at),
        "items": [serialize_item(item, recipes, customers) for item in plan.items],
    }
    if include_summary:
        payload["allocation_summary"] = allocation_summary(plan)
    return payload


def serialize_item_status(item: ProductionItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "plan_id": item.plan_id,
        "completed": bool(item.completed),
        "completed_by": item.completed_by,
        "completed_at": TimezoneUtils.isoformat(item.completed_at),
    }
