"""Allocation model helpers.

An allocation earmarks part of an item's output for a destination (wholesale,
retail, internal, waste, or a named customer). The total allocated for an item
is not required to match the item quantity; ``allocation_summary`` reports the
gap so callers can surface it, but nothing rejects it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Sequence

from ...models import ProductionAllocation, ProductionPlan
from ...utils.error_messages import ErrorMessages as EM
from ...utils.validation_helpers import parse_id, parse_quantity
from ...errors import InvalidInputError

DEFAULT_CUSTOMER_DESTINATION = "wholesale"


def normalize_allocations(raw_allocations: Sequence[Mapping[str, Any]] | None, *, item_index: int) -> List[Dict[str, Any]]:
    normalized = []
    for alloc_index, raw in enumerate(raw_allocations or [], start=1):
        if not isinstance(raw, Mapping):
            raise InvalidInputError(
                EM.ALLOCATION_INVALID.format(index=item_index, allocation=alloc_index, reason="expected an object")
            )
        try:
            customer_id = parse_id(raw.get("customer_id"), "customer_id", required=False)
            quantity = parse_quantity(raw.get("quantity"), "quantity")
        except InvalidInputError as exc:
            raise InvalidInputError(
                EM.ALLOCATION_INVALID.format(index=item_index, allocation=alloc_index, reason=exc.message)
            ) from exc

        destination = raw.get("destination")
        destination = destination.strip() if isinstance(destination, str) else ""
        if not destination:
            if customer_id is None:
                raise InvalidInputError(
                    EM.ALLOCATION_INVALID.format(
                        index=item_index,
                        allocation=alloc_index,
                        reason=EM.FIELD_REQUIRED.format(field="destination"),
                    )
                )
            destination = DEFAULT_CUSTOMER_DESTINATION

        normalized.append(
            {
                "destination": destination,
                "customer_id": customer_id,
                "quantity": quantity,
                "notes": raw.get("notes") or None,
            }
        )
    return normalized


def build_allocation(data: Mapping[str, Any]) -> ProductionAllocation:
    return ProductionAllocation(
        destination=data["destination"],
        customer_id=data["customer_id"],
        quantity=data["quantity"],
        notes=data["notes"],
    )


def allocation_summary(plan: ProductionPlan) -> List[Dict[str, Any]]:
    """Per item: allocated total against the planned quantity."""
    summary = []
    for item in plan.items:
        allocated = sum(float(a.quantity or 0) for a in item.allocations)
        quantity = float(item.quantity or 0)
        summary.append(
            {
                "item_id": item.id,
                "recipe_id": item.recipe_id,
                "quantity": quantity,
                "allocated": allocated,
                "unallocated": quantity - allocated,
                "over_allocated": allocated > quantity,
            }
        )
    return summary
