from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

from ..errors import InvalidInputError
from .error_messages import ErrorMessages as EM

__all__ = ["parse_date", "parse_quantity", "parse_id", "require_text"]


def parse_date(value: Any, field: str, *, required: bool = True) -> date | None:
    """Accept ``date``, ``datetime`` or a full ISO string (a time part is dropped)."""
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise InvalidInputError(EM.FIELD_REQUIRED.format(field=field), field=field)
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if "T" in text or " " in text:
                return datetime.fromisoformat(text).date()
            return date.fromisoformat(text)
        except ValueError:
            pass
    raise InvalidInputError(EM.DATE_INVALID.format(field=field), field=field)


def parse_quantity(value: Any, field: str) -> float:
    if value is None:
        raise InvalidInputError(EM.FIELD_REQUIRED.format(field=field), field=field)
    if isinstance(value, bool):
        raise InvalidInputError(EM.QUANTITY_INVALID.format(field=field), field=field)
    try:
        quantity = float(value)
    except (TypeError, ValueError):
        raise InvalidInputError(EM.QUANTITY_INVALID.format(field=field), field=field)
    if not math.isfinite(quantity):
        raise InvalidInputError(EM.QUANTITY_INVALID.format(field=field), field=field)
    if quantity < 0:
        raise InvalidInputError(EM.QUANTITY_NEGATIVE.format(field=field), field=field)
    return quantity


def parse_id(value: Any, field: str, *, required: bool = True) -> int | None:
    if value is None or value == "":
        if required:
            raise InvalidInputError(EM.FIELD_REQUIRED.format(field=field), field=field)
        return None
    if isinstance(value, bool):
        raise InvalidInputError(EM.ID_INVALID.format(field=field), field=field)
    try:
        if isinstance(value, str):
            identifier = int(value.strip())
        else:
            identifier = int(value)
            # 3.0 from a JSON client is fine; 3.7 is not
            if identifier != value:
                identifier = None
    except (TypeError, ValueError, OverflowError):
        identifier = None
    if identifier is None or identifier <= 0:
        raise InvalidInputError(EM.ID_INVALID.format(field=field), field=field)
    return identifier


def require_text(value: Any, field: str) -> str:
    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise InvalidInputError(EM.FIELD_REQUIRED.format(field=field), field=field)
    return text
