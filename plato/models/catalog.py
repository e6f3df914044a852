from ..extensions import db
from .mixins import CompanyScopedMixin, TimestampMixin


class Recipe(CompanyScopedMixin, TimestampMixin, db.Model):
    __tablename__ = 'recipe'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    yield_quantity = db.Column(db.Numeric(12, 3), nullable=False, default=1)
    yield_unit = db.Column(db.String(32), nullable=False, default='each')


class WholesaleCustomer(CompanyScopedMixin, TimestampMixin, db.Model):
    __tablename__ = 'wholesale_customer'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
