"""Domain event outbox dispatcher.

Synopsis:
Delivers pending, externally visible DomainEvent rows (order promotions,
generated recurring orders, job assignments) to the configured webhook. When
``DOMAIN_EVENT_WEBHOOK_SECRET`` is set each body is signed with HMAC-SHA256 in
the ``X-Plato-Signature`` header.

Glossary:
- Outbox: Persisted events queued for delivery.
- Attempt: One failed POST; the event is closed after the configured maximum.
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Any, Dict, List, Optional

import requests
from flask import current_app, has_app_context
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.domain_event import DomainEvent
from .event_emitter import INTERNAL_EVENT_NAMES

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Plato-Signature"


def sign_payload(secret: str, body: bytes) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def _config(key: str, default=None):
    return current_app.config.get(key, default) if has_app_context() else default


class DomainEventDispatcher:
    """Pushes outbox rows to the webhook and tracks delivery attempts."""

    def __init__(
        self,
        *,
        webhook_url: Optional[str] = None,
        secret: Optional[str] = None,
        batch_size: int = 100,
        max_retry_attempts: Optional[int] = None,
        timeout: float = 5.0,
    ) -> None:
        self.webhook_url = webhook_url or _config("DOMAIN_EVENT_WEBHOOK_URL")
        self.secret = secret or _config("DOMAIN_EVENT_WEBHOOK_SECRET")
        self.batch_size = max(1, batch_size)
        if max_retry_attempts is None:
            max_retry_attempts = _config("DOMAIN_EVENT_MAX_ATTEMPTS", 6)
        self.max_retry_attempts = max_retry_attempts
        self.timeout = timeout

    def _pending(self, limit: int) -> List[DomainEvent]:
        stmt = (
            select(DomainEvent)
            .where(
                DomainEvent.is_processed.is_(False),
                DomainEvent.event_name.notin_(sorted(INTERNAL_EVENT_NAMES)),
            )
            .order_by(DomainEvent.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return db.session.execute(stmt).scalars().all()

    def dispatch_pending_events(self, *, batch_size: Optional[int] = None) -> Dict[str, int]:
        """Deliver one batch and return ``{processed, succeeded, failed}``."""
        metrics = {"processed": 0, "succeeded": 0, "failed": 0}
        try:
            events = self._pending(max(1, batch_size or self.batch_size))
        except SQLAlchemyError:
            logger.exception("Failed to load pending domain events")
            db.session.rollback()
            return metrics

        for event in events:
            metrics["processed"] += 1
            if self._deliver(event):
                metrics["succeeded"] += 1
                event.mark_processed()
            else:
                metrics["failed"] += 1
                self._record_failure(event)

        try:
            db.session.commit()
        except SQLAlchemyError:
            logger.exception("Failed to commit domain event dispatch results")
            db.session.rollback()
        return metrics

    def _record_failure(self, event: DomainEvent) -> None:
        event.delivery_attempts = (event.delivery_attempts or 0) + 1
        if not self.max_retry_attempts or event.delivery_attempts < self.max_retry_attempts:
            return
        logger.error(
            "Domain event %s (%s) gave up after %s attempts",
            event.id,
            event.event_name,
            event.delivery_attempts,
        )
        errors = list((event.properties or {}).get("_dispatch_errors", []))
        errors.append("max_retry_exceeded")
        event.mark_processed(_dispatch_errors=errors)

    def run_forever(self, *, poll_interval: float = 5.0, batch_size: Optional[int] = None) -> None:
        """Poll until interrupted; drains a backlog faster than an idle outbox."""
        interval = max(0.5, poll_interval)
        logger.info(
            "Domain event dispatcher started (webhook=%s, signed=%s, poll_interval=%ss)",
            bool(self.webhook_url),
            bool(self.secret),
            interval,
        )
        try:
            while True:
                metrics = self.dispatch_pending_events(batch_size=batch_size)
                time.sleep(interval if metrics["processed"] == 0 else min(interval, 1.0))
        except KeyboardInterrupt:
            logger.info("Domain event dispatcher stopped")

    @staticmethod
    def build_payload(event: DomainEvent) -> Dict[str, Any]:
        return {
            "id": event.id,
            "event_name": event.event_name,
            "occurred_at": event.occurred_at.isoformat() if event.occurred_at else None,
            "company_id": event.company_id,
            "user_id": event.user_id,
            "entity_type": event.entity_type,
            "entity_id": event.entity_id,
            "correlation_id": event.correlation_id,
            "source": event.source,
            "schema_version": event.schema_version,
            "properties": event.properties or {},
        }

    def _deliver(self, event: DomainEvent) -> bool:
        if not self.webhook_url:
            # No sink configured; close the event.
            logger.debug("No webhook configured; closing domain event %s", event.id)
            return True

        body = json.dumps(self.build_payload(event), separators=(",", ":")).encode()
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers[SIGNATURE_HEADER] = sign_payload(self.secret, body)

        try:
            response = requests.post(self.webhook_url, data=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning(
                "Domain event %s webhook delivery failed: %s",
                event.id,
                exc,
                extra={"status_code": getattr(exc.response, "status_code", None)},
            )
            return False
        logger.debug("Domain event %s delivered", event.id)
        return True
