from datetime import datetime, timezone

from ..extensions import db


def _utc_now():
    return datetime.now(timezone.utc)


class TimestampMixin:
    """Adds created_at and updated_at timestamps to models"""
    created_at = db.Column(db.DateTime, default=_utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=_utc_now, onupdate=_utc_now, nullable=False)


class CompanyScopedMixin:
    company_id = db.Column(db.Integer, db.ForeignKey('company.id'), nullable=False, index=True)

    @classmethod
    def for_company(cls, company_id):
        return cls.query.filter_by(company_id=company_id)

    @classmethod
    def scoped(cls):
        """Return query filtered by the signed-in user's company"""
        from ..utils.permissions import get_effective_company_id

        company_id = get_effective_company_id()
        if company_id is None:
            return cls.query.filter(False)
        return cls.query.filter_by(company_id=company_id)
