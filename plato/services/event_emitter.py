"""Domain event emission helper.

Synopsis:
Writes DomainEvent rows (outbox style). Events emitted inside a larger unit of
work pass ``auto_commit=False`` so they commit, or roll back, together with the
change they describe.

Glossary:
- Outbox: DomainEvent rows that still await internal processing or delivery.
- Internal event: consumed in-process (e.g. plan saves driving order sync) and
  never delivered to external sinks.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from flask_login import current_user

from ..extensions import db
from ..models.domain_event import DomainEvent

logger = logging.getLogger(__name__)

PRODUCTION_PLAN_SAVED = "production_plan.saved"
PRODUCTION_PLAN_DELETED = "production_plan.deleted"
ORDER_IN_PRODUCTION = "wholesale_order.in_production"
RECURRING_ORDER_GENERATED = "wholesale_order.recurring_generated"
RECURRING_ORDER_ENDED = "wholesale_order.recurring_ended"
JOB_ASSIGNED = "production_job.assigned"

INTERNAL_EVENT_NAMES = frozenset({PRODUCTION_PLAN_SAVED})


class EventEmitter:
    """Lightweight event emitter that writes to DomainEvent (outbox style)."""

    @staticmethod
    def _actor_id(user_id: Optional[int]) -> Optional[int]:
        if user_id:
            return user_id
        try:
            if current_user and getattr(current_user, "is_authenticated", False):
                return getattr(current_user, "id", None)
        except Exception:
            return None
        return None

    @staticmethod
    def emit(
        event_name: str,
        properties: Optional[Dict[str, Any]] = None,
        *,
        company_id: Optional[int] = None,
        user_id: Optional[int] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[int] = None,
        correlation_id: Optional[str] = None,
        source: str = "plato",
        schema_version: int = 1,
        auto_commit: bool = True,
    ) -> Optional[DomainEvent]:
        event = DomainEvent(
            event_name=event_name,
            occurred_at=datetime.now(timezone.utc),
            company_id=company_id,
            user_id=EventEmitter._actor_id(user_id),
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id or str(uuid.uuid4()),
            source=source,
            schema_version=schema_version,
            properties=dict(properties or {}),
            is_processed=False,
            delivery_attempts=0,
        )

        if not auto_commit:
            # Caller owns the transaction; failures must abort it.
            db.session.add(event)
            return event

        try:
            db.session.add(event)
            db.session.commit()
            return event
        except Exception as e:
            logger.error(f"Failed to emit event {event_name}: {e}")
            try:
                db.session.rollback()
            except Exception:
                logger.warning("Suppressed rollback failure after event emit", exc_info=True)
            return None
