from datetime import datetime, timezone

from ..extensions import db


class DomainEvent(db.Model):
    """Domain event row used as a transactional outbox."""

    __tablename__ = "domain_event"

    id = db.Column(db.Integer, primary_key=True)
    event_name = db.Column(db.String(128), nullable=False, index=True)
    occurred_at = db.Column(
        db.DateTime, default=lambda: datetime.now(timezone.utc), index=True
    )

    # Actor and tenant context
    company_id = db.Column(
        db.Integer, db.ForeignKey("company.id"), nullable=True, index=True
    )
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=True, index=True)

    # Entity context
    entity_type = db.Column(db.String(64), nullable=True, index=True)
    entity_id = db.Column(db.Integer, nullable=True, index=True)

    correlation_id = db.Column(db.String(128), nullable=True, index=True)
    source = db.Column(db.String(64), nullable=True, default="plato")
    schema_version = db.Column(db.Integer, nullable=True, default=1)

    properties = db.Column(db.JSON, nullable=True)

    # Outbox processing fields
    is_processed = db.Column(db.Boolean, default=False, index=True)
    processed_at = db.Column(db.DateTime, nullable=True)
    delivery_attempts = db.Column(db.Integer, default=0)

    company = db.relationship("Company")

    def mark_processed(self, **extra_properties):
        self.is_processed = True
        self.processed_at = datetime.now(timezone.utc)
        if extra_properties:
            props = dict(self.properties or {})
            props.update(extra_properties)
            self.properties = props

    def __repr__(self):
        return f"<DomainEvent {self.event_name} {self.id}>"
