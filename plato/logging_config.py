from __future__ import annotations

import logging
import re
from typing import Iterable

from flask import Flask, g, has_request_context

DEV_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d [company=%(company_id)s]: %(message)s"
PROD_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [company=%(company_id)s]: %(message)s"
PII_PATTERNS = {
    "email": re.compile(r"[A-Za-z0-9_.+-]+@[A-Za-z0-9-]+\.[A-Za-z0-9-.]+"),
    "token": re.compile(r"(token|secret|password|authorization)\s*[:=]\s*([^\s,;]+)", re.IGNORECASE),
    "bearer": re.compile(r"Bearer\s+[A-Za-z0-9\-_.=:+/]+", re.IGNORECASE),
}


class PiiRedactionFilter(logging.Filter):
    """Scrub staff emails and cron bearer tokens out of log lines."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - defensive
        try:
            msg = record.getMessage()
            msg = PII_PATTERNS["email"].sub("[REDACTED_EMAIL]", msg)
            msg = PII_PATTERNS["token"].sub(lambda m: f"{m.group(1)}=[REDACTED]", msg)
            msg = PII_PATTERNS["bearer"].sub("Bearer [REDACTED]", msg)
            record.msg = msg
            record.args = ()
        except Exception:
            pass
        return True


class CompanyContextFilter(logging.Filter):
    """Stamp each record with the company id resolved for the current request."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "company_id"):
            company_id = None
            if has_request_context():
                company_id = getattr(g, "company_id", None)
            record.company_id = company_id if company_id is not None else "-"
        return True


def configure_logging(app: Flask) -> None:
    level = _coerce_level(app.config.get("LOG_LEVEL", "DEBUG" if app.debug else "INFO"))
    logging.getLogger().setLevel(level)
    app.logger.setLevel(level)
    logging.getLogger("plato").setLevel(level)

    if level > logging.DEBUG:
        for noisy in ("werkzeug", "flask_limiter", "sqlalchemy.engine", "plato.blueprints_registry"):
            logging.getLogger(noisy).setLevel(logging.WARNING)

    is_production = app.config.get("ENV") == "production" and not app.debug
    formatter = logging.Formatter(PROD_FORMAT if is_production else DEV_FORMAT)
    redact_pii = app.config.get("LOG_REDACT_PII", True)
    _apply_formatter(logging.getLogger().handlers, formatter, redact_pii)
    _apply_formatter(app.logger.handlers, formatter, redact_pii)


def _apply_formatter(handlers: Iterable[logging.Handler], formatter: logging.Formatter, redact_pii: bool) -> None:
    for handler in handlers:
        try:
            handler.setFormatter(formatter)
            if not any(isinstance(f, CompanyContextFilter) for f in handler.filters):
                handler.addFilter(CompanyContextFilter())
            if redact_pii and not any(isinstance(f, PiiRedactionFilter) for f in handler.filters):
                handler.addFilter(PiiRedactionFilter())
        except Exception:  # pragma: no cover
            continue


def _coerce_level(raw_level) -> int:
    if isinstance(raw_level, int):
        return raw_level
    if isinstance(raw_level, str):
        candidate = raw_level.strip().upper()
        return getattr(logging, candidate, logging.INFO)
    return logging.INFO
