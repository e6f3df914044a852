from .allocation import allocation_summary
from .order_sync import OrderStatusSynchronizer, SyncResult, process_plan_event, sync_pending_plan_events
from .plan_service import PlanService
from .serializers import serialize_item_status, serialize_plan
from .weekly_plans import WeeklyPlanGenerator, week_bounds

__all__ = [
    "OrderStatusSynchronizer",
    "PlanService",
    "SyncResult",
    "WeeklyPlanGenerator",
    "allocation_summary",
    "process_plan_event",
    "serialize_item_status",
    "serialize_plan",
    "sync_pending_plan_events",
    "week_bounds",
]
