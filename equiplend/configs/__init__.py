#!/usr/bin/env python

"""
    Configurations for Equiplend

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import os


# Determine environment
TESTING = os.getenv("TESTING", "false").lower() == "true"

# API server configuration
HOST = os.environ.get('EQUIPLEND_HOST', 'localhost')
PORT = int(os.environ.get('EQUIPLEND_PORT', 8080))
WORKERS = int(os.environ.get('EQUIPLEND_WORKERS', 1))
DEBUG = bool(int(os.environ.get('EQUIPLEND_DEBUG', 0)))
LOG_LEVEL = os.environ.get('EQUIPLEND_LOG_LEVEL', 'info')
SSL_CRT = os.environ.get('EQUIPLEND_SSL_CRT')
SSL_KEY = os.environ.get('EQUIPLEND_SSL_KEY')
CORS_ORIGINS = [
    o.strip() for o in
    os.environ.get('EQUIPLEND_CORS_ORIGINS', 'http://localhost:4200').split(',')
    if o.strip()
]

# Ledger behaviour
DEFAULT_LIMIT = int(os.environ.get('EQUIPLEND_DEFAULT_LIMIT', 50))
LOCK_TIMEOUT = float(os.environ.get('EQUIPLEND_LOCK_TIMEOUT', 5))
FINE_PER_DAY_KEY = 'fine_per_day'
PREDICTIVE_THRESHOLD_DAYS = 30
REMINDER_WINDOW_DAYS = 3

OPTIONS = {
    'host': HOST,
    'port': PORT,
    'log_level': LOG_LEVEL,
    'reload': DEBUG,
    'workers': WORKERS,
}
if SSL_CRT and SSL_KEY:
    OPTIONS['ssl_keyfile'] = SSL_KEY
    OPTIONS['ssl_certfile'] = SSL_CRT

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'equiplend'),
}

# Database configuration
DB_URI = (
    "sqlite:///:memory:" if TESTING else
    os.environ.get('DATABASE_URL') or
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

__all__ = [
    'HOST', 'PORT', 'DEBUG', 'OPTIONS', 'DB_URI', 'DB_CONFIG', 'TESTING',
    'LOCK_TIMEOUT', 'DEFAULT_LIMIT', 'FINE_PER_DAY_KEY', 'CORS_ORIGINS',
]
