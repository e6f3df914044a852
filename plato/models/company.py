from flask_login import UserMixin

from ..extensions import db
from .mixins import TimestampMixin


class Company(TimestampMixin, db.Model):
    __tablename__ = 'company'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    timezone = db.Column(db.String(64), nullable=False, default='UTC')
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    memberships = db.relationship('Membership', back_populates='company', lazy='dynamic')

    def __repr__(self):
        return f'<Company {self.name}>'


class User(UserMixin, TimestampMixin, db.Model):
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(128), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    memberships = db.relationship('Membership', back_populates='user', lazy='select')

    @property
    def active_membership(self):
        """First active membership; the company the user is working in."""
        for membership in self.memberships:
            if membership.is_active and membership.company and membership.company.is_active:
                return membership
        return None

    @property
    def company_id(self):
        membership = self.active_membership
        return membership.company_id if membership else None

    def __repr__(self):
        return f'<User {self.email}>'


class Membership(TimestampMixin, db.Model):
    """Staff directory row: a user working for a company."""
    __tablename__ = 'membership'

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey('company.id'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    role = db.Column(db.String(32), nullable=False, default='EDITOR')  # OWNER, ADMIN, EDITOR, VIEWER
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    company = db.relationship('Company', back_populates='memberships')
    user = db.relationship('User', back_populates='memberships')

    __table_args__ = (
        db.UniqueConstraint('company_id', 'user_id', name='uq_membership_company_user'),
    )
