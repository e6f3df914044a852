from ..extensions import db
from .mixins import CompanyScopedMixin, TimestampMixin


class OrderStatus:
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    IN_PRODUCTION = 'in_production'
    FULFILLED = 'fulfilled'
    CANCELLED = 'cancelled'

    ALL = (PENDING, CONFIRMED, IN_PRODUCTION, FULFILLED, CANCELLED)


class RecurringInterval:
    WEEKLY = 'weekly'
    BIWEEKLY = 'biweekly'
    MONTHLY = 'monthly'
    CUSTOM = 'custom'

    ALL = (WEEKLY, BIWEEKLY, MONTHLY, CUSTOM)


class RecurringStatus:
    ACTIVE = 'active'
    PAUSED = 'paused'
    CANCELLED = 'cancelled'


class WholesaleOrder(CompanyScopedMixin, TimestampMixin, db.Model):
    __tablename__ = 'wholesale_order'

    id = db.Column(db.Integer, primary_key=True)
    # Weak reference; customers are owned by the wholesale CRM
    customer_id = db.Column(db.Integer, nullable=False, index=True)
    status = db.Column(db.String(32), nullable=False, default=OrderStatus.PENDING, index=True)
    delivery_date = db.Column(db.Date, nullable=True, index=True)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    # RECURRENCE
    is_recurring = db.Column(db.Boolean, nullable=False, default=False)
    recurring_interval = db.Column(db.String(16), nullable=True)
    recurring_interval_days = db.Column(db.Integer, nullable=True)
    recurring_status = db.Column(db.String(16), nullable=True)
    recurring_end_date = db.Column(db.Date, nullable=True)
    next_recurrence_date = db.Column(db.Date, nullable=True, index=True)
    parent_order_id = db.Column(db.Integer, db.ForeignKey('wholesale_order.id'), nullable=True, index=True)

    items = db.relationship(
        'WholesaleOrderItem',
        back_populates='order',
        cascade='all, delete-orphan',
        order_by='WholesaleOrderItem.id',
    )
    parent_order = db.relationship('WholesaleOrder', remote_side=[id], back_populates='generated_orders')
    generated_orders = db.relationship('WholesaleOrder', back_populates='parent_order', lazy='dynamic')

    __table_args__ = (
        db.Index('idx_wholesale_order_company_status_delivery', 'company_id', 'status', 'delivery_date'),
    )

    @property
    def is_generated(self):
        return self.parent_order_id is not None

    def __repr__(self):
        return f'<WholesaleOrder {self.id} {self.status}>'


class WholesaleOrderItem(db.Model):
    __tablename__ = 'wholesale_order_item'

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey('wholesale_order.id', ondelete='CASCADE'), nullable=False, index=True)
    recipe_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    price = db.Column(db.Numeric(12, 2), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    order = db.relationship('WholesaleOrder', back_populates='items')
