#!/usr/bin/env python

"""
    Key/value settings store for Equiplend.

    Values are stored as text; structured values are JSON encoded and
    decoded transparently.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import json
import logging
from decimal import Decimal
from sqlalchemy.exc import SQLAlchemyError
from equiplend.configs import FINE_PER_DAY_KEY
from equiplend.core.db import session as db
from equiplend.core.models import Setting
from equiplend.core.utils import require, to_decimal
from equiplend.core.exceptions import SettingNotFoundError, DatabaseError

logger = logging.getLogger(__name__)


def _parse(value):
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def _dump(value):
    return value if isinstance(value, str) else json.dumps(value)


class Settings:

    @classmethod
    def get(cls, key):
        if setting := db.get(Setting, key):
            return {"key": setting.key, "value": _parse(setting.value), "category": setting.category}
        raise SettingNotFoundError(f"Setting '{key}' not found.")

    @classmethod
    def all(cls):
        return {s.key: _parse(s.value) for s in db.query(Setting).order_by(Setting.key)}

    @classmethod
    def put(cls, key, value, category=None):
        require(key=key, value=value)
        try:
            setting = db.get(Setting, key) or Setting(key=key)
            setting.value = _dump(value)
            if category is not None:
                setting.category = category
            db.add(setting)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise DatabaseError(f"Failed to save setting '{key}': {e}.")
        logger.info(f"Setting {key} updated")
        return cls.get(key)

    @classmethod
    def fine_per_day(cls):
        """Daily overdue fine. Falls back to 0 when the setting is absent
        or cannot be read, so a config outage never blocks a return."""
        try:
            setting = db.get(Setting, FINE_PER_DAY_KEY)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(f"Could not read '{FINE_PER_DAY_KEY}', fining 0 per day: {e}")
            return Decimal(0)
        if setting is None:
            return Decimal(0)
        return to_decimal(_parse(setting.value))
