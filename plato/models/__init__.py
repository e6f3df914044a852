from ..extensions import db
from .catalog import Recipe, WholesaleCustomer
from .company import Company, Membership, User
from .domain_event import DomainEvent
from .production import (
    ProductionAllocation,
    ProductionItem,
    ProductionJobAssignment,
    ProductionPlan,
)
from .wholesale import (
    OrderStatus,
    RecurringInterval,
    RecurringStatus,
    WholesaleOrder,
    WholesaleOrderItem,
)

__all__ = [
    "db",
    "Company",
    "User",
    "Membership",
    "Recipe",
    "WholesaleCustomer",
    "WholesaleOrder",
    "WholesaleOrderItem",
    "OrderStatus",
    "RecurringInterval",
    "RecurringStatus",
    "ProductionPlan",
    "ProductionItem",
    "ProductionAllocation",
    "ProductionJobAssignment",
    "DomainEvent",
]
