import math
import logging
import datetime
from decimal import Decimal, InvalidOperation
from equiplend.core.exceptions import MissingFieldError, InvalidFieldError

logger = logging.getLogger(__name__)

ONE_DAY = datetime.timedelta(days=1)


def as_date(value, field="date"):
    """Coerces an ISO string, datetime or date into a date."""
    if value is None or isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.datetime):
        return value.date()
    text = str(value).strip()
    for parse in (datetime.datetime.fromisoformat, datetime.date.fromisoformat):
        try:
            parsed = parse(text)
        except ValueError:
            continue
        return parsed.date() if isinstance(parsed, datetime.datetime) else parsed
    raise InvalidFieldError(f"'{field}' must be an ISO date, got '{value}'.")


def require(**fields):
    """Raises MissingFieldError naming every empty required field."""
    missing = [name for name, value in fields.items() if value is None or value == ""]
    if missing:
        raise MissingFieldError(f"Required: {', '.join(missing)}.")


def overdue_days(due_date, return_date):
    """Whole days late, rounded up; never negative."""
    delta = as_date(return_date) - as_date(due_date)
    return max(0, math.ceil(delta / ONE_DAY))


def compute_fine(days, rate):
    return (Decimal(days) * to_decimal(rate)).quantize(Decimal("0.01"))


def to_decimal(value, default=Decimal(0)):
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        number = None
    if number is None or not number.is_finite():
        logger.warning(f"Non numeric value {value!r}, using {default}")
        return default
    return number
