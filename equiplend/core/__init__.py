#!/usr/bin/env python

"""
    Core module for Equiplend: database, registries and ledgers

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

from equiplend.core import db as database
from equiplend.core import models

db = database.init()

__all__ = ["db", "models"]
