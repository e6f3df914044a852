"""Read-only lookups against collaborators the production core does not own.

Recipes, wholesale customers and staff memberships are referenced by id only.
These helpers hydrate those ids into display summaries; an id that no longer
resolves (or resolves into another company) maps to ``None`` rather than failing.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from ..extensions import db
from ..models import Company, Membership, Recipe, WholesaleCustomer


def _clean_ids(ids: Iterable[Optional[int]]) -> set[int]:
    return {int(i) for i in ids if i is not None}


def recipe_summaries(company_id: int, recipe_ids: Iterable[Optional[int]]) -> Dict[int, Dict[str, Any]]:
    wanted = _clean_ids(recipe_ids)
    if not wanted:
        return {}
    rows = Recipe.query.filter(Recipe.company_id == company_id, Recipe.id.in_(wanted)).all()
    return {
        recipe.id: {
            "id": recipe.id,
            "name": recipe.name,
            "yield_quantity": str(recipe.yield_quantity) if recipe.yield_quantity is not None else None,
            "yield_unit": recipe.yield_unit,
        }
        for recipe in rows
    }


def customer_summaries(company_id: int, customer_ids: Iterable[Optional[int]]) -> Dict[int, Dict[str, Any]]:
    wanted = _clean_ids(customer_ids)
    if not wanted:
        return {}
    rows = WholesaleCustomer.query.filter(
        WholesaleCustomer.company_id == company_id,
        WholesaleCustomer.id.in_(wanted),
    ).all()
    return {customer.id: {"id": customer.id, "name": customer.name} for customer in rows}


def get_company_membership(company_id: int, membership_id: int) -> Optional[Membership]:
    """Active membership in the given company, or None."""
    return Membership.query.filter_by(
        id=membership_id,
        company_id=company_id,
        is_active=True,
    ).first()


def membership_summary(membership: Optional[Membership]) -> Optional[Dict[str, Any]]:
    if membership is None:
        return None
    user = membership.user
    return {
        "id": membership.id,
        "company_id": membership.company_id,
        "role": membership.role,
        "user": {
            "id": user.id,
            "name": user.name,
            "email": user.email,
        } if user else None,
    }


def get_company(company_id: int) -> Optional[Company]:
    return db.session.get(Company, company_id)
