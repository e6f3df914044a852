from datetime import datetime, timezone

from ..extensions import db
from .mixins import CompanyScopedMixin, TimestampMixin


class ProductionPlan(CompanyScopedMixin, TimestampMixin, db.Model):
    """A scheduled batch of recipe production over a date window."""
    __tablename__ = 'production_plan'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)

    items = db.relationship(
        'ProductionItem',
        back_populates='plan',
        cascade='all, delete-orphan',
        order_by='ProductionItem.priority',
    )

    __table_args__ = (
        db.CheckConstraint('start_date <= end_date', name='ck_production_plan_window'),
        db.Index('idx_production_plan_company_window', 'company_id', 'start_date', 'end_date'),
    )

    @property
    def recipe_ids(self):
        return {item.recipe_id for item in self.items}

    @property
    def allocated_customer_ids(self):
        return {
            allocation.customer_id
            for item in self.items
            for allocation in item.allocations
            if allocation.customer_id is not None
        }

    def __repr__(self):
        return f'<ProductionPlan {self.id} {self.start_date}..{self.end_date}>'


class ProductionItem(db.Model):
    __tablename__ = 'production_item'

    id = db.Column(db.Integer, primary_key=True)
    plan_id = db.Column(db.Integer, db.ForeignKey('production_plan.id', ondelete='CASCADE'), nullable=False, index=True)
    # Weak reference; a dangling recipe id is tolerated
    recipe_id = db.Column(db.Integer, nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    priority = db.Column(db.Integer, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)

    completed = db.Column(db.Boolean, nullable=False, default=False)
    completed_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)

    plan = db.relationship('ProductionPlan', back_populates='items')
    allocations = db.relationship(
        'ProductionAllocation',
        back_populates='item',
        cascade='all, delete-orphan',
        order_by='ProductionAllocation.id',
    )
    assignments = db.relationship(
        'ProductionJobAssignment',
        back_populates='production_item',
        cascade='all, delete-orphan',
    )

    def mark_completed(self, user_id):
        self.completed = True
        self.completed_by = user_id
        self.completed_at = datetime.now(timezone.utc)

    def mark_incomplete(self):
        self.completed = False
        self.completed_by = None
        self.completed_at = None


class ProductionAllocation(db.Model):
    """Portion of an item's output earmarked for a destination."""
    __tablename__ = 'production_allocation'

    id = db.Column(db.Integer, primary_key=True)
    item_id = db.Column(db.Integer, db.ForeignKey('production_item.id', ondelete='CASCADE'), nullable=False, index=True)
    destination = db.Column(db.String(128), nullable=False)  # wholesale, retail, internal, waste, ...
    customer_id = db.Column(db.Integer, nullable=True, index=True)
    quantity = db.Column(db.Float, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    item = db.relationship('ProductionItem', back_populates='allocations')


class ProductionJobAssignment(TimestampMixin, db.Model):
    __tablename__ = 'production_job_assignment'

    id = db.Column(db.Integer, primary_key=True)
    production_item_id = db.Column(
        db.Integer, db.ForeignKey('production_item.id', ondelete='CASCADE'), nullable=False, index=True
    )
    membership_id = db.Column(db.Integer, db.ForeignKey('membership.id', ondelete='CASCADE'), nullable=False, index=True)
    assigned_date = db.Column(db.Date, nullable=False, index=True)
    notes = db.Column(db.Text, nullable=True)

    production_item = db.relationship('ProductionItem', back_populates='assignments')
    membership = db.relationship('Membership')

    __table_args__ = (
        db.UniqueConstraint(
            'production_item_id', 'membership_id', 'assigned_date',
            name='uq_production_job_assignment_item_member_date',
        ),
    )
