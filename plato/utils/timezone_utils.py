from __future__ import annotations

from datetime import date, datetime, timezone as dt_timezone

import pytz

DEFAULT_TIMEZONE = "UTC"


class TimezoneUtils:
    """Timezone helpers; business dates are evaluated in the company's timezone."""

    @staticmethod
    def validate_timezone(tz_name: str | None) -> bool:
        """Return True when the timezone string exists in pytz."""
        return bool(tz_name) and tz_name in pytz.all_timezones_set

    @staticmethod
    def _get_timezone(tz_name: str | None):
        if not TimezoneUtils.validate_timezone(tz_name):
            return pytz.timezone(DEFAULT_TIMEZONE)
        return pytz.timezone(tz_name)

    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(dt_timezone.utc)

    @staticmethod
    def today_in(tz_name: str | None) -> date:
        """Calendar date right now in the given timezone (UTC when unknown)."""
        return TimezoneUtils.utc_now().astimezone(TimezoneUtils._get_timezone(tz_name)).date()

    @staticmethod
    def company_today(company) -> date:
        tz_name = getattr(company, "timezone", None) if company is not None else None
        if not TimezoneUtils.validate_timezone(tz_name):
            from flask import current_app, has_app_context

            if has_app_context():
                tz_name = current_app.config.get("PRODUCTION_DEFAULT_TIMEZONE", DEFAULT_TIMEZONE)
        return TimezoneUtils.today_in(tz_name)

    @staticmethod
    def ensure_timezone_aware(
        dt: datetime | None, assume_utc: bool = True
    ) -> datetime | None:
        """Guarantee that a datetime carries timezone information."""
        if dt is None:
            return None
        if dt.tzinfo is None:
            if not assume_utc:
                raise ValueError("Naive datetime provided without explicit timezone handling.")
            return dt.replace(tzinfo=dt_timezone.utc)
        return dt

    @staticmethod
    def isoformat(dt: datetime | None) -> str | None:
        aware = TimezoneUtils.ensure_timezone_aware(dt)
        return aware.isoformat() if aware else None
