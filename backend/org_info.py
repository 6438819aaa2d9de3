#!/usr/bin/env python3
"""
Forward Horizon organization details and local-time helpers.
"""

import os
import time
from datetime import datetime

import pytz

ORGANIZATION = 'Forward Horizon Transitional Housing'
SHORT_NAME = 'Forward Horizon'
PHONE = '(310) 488-5280'
EMAIL = 'info@theforwardhorizon.com'
ADDRESS = '1234 Veterans Way, Los Angeles, CA 90001'
WEBSITE = 'theforwardhorizon.com'
TAX_ID = os.environ.get('ORG_TAX_ID', 'XX-XXXXXXX')

LOCAL_TZ = pytz.timezone(os.environ.get('ORG_TIMEZONE', 'America/Los_Angeles'))


def now_local():
    return datetime.now(LOCAL_TZ)


def utc_now_iso():
    """ISO-8601 UTC timestamp with millisecond precision and a Z suffix."""
    now = datetime.now(pytz.utc)
    return now.strftime('%Y-%m-%dT%H:%M:%S.') + f'{now.microsecond // 1000:03d}Z'


def epoch_ms():
    return int(time.time() * 1000)


def make_id(prefix):
    """Timestamp-derived record id, e.g. APT-1735689600000."""
    return f'{prefix}-{epoch_ms()}'


def make_unique_id(prefix, taken):
    """make_id for a keyed store: bumps the millisecond until the id is not in `taken`."""
    ms = epoch_ms()
    while f'{prefix}-{ms}' in taken:
        ms += 1
    return f'{prefix}-{ms}'


def parse_datetime(value):
    """
    Parse an ISO-8601 date or datetime string. Naive values are taken as
    local organization time. Returns an aware datetime or raises ValueError.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError('Empty date')
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        dt = LOCAL_TZ.localize(dt)
    return dt


def to_utc_iso(dt):
    dt = dt.astimezone(pytz.utc)
    return dt.strftime('%Y-%m-%dT%H:%M:%S.') + f'{dt.microsecond // 1000:03d}Z'


def format_long_date(dt=None):
    """'March 1, 2025' in organization local time."""
    dt = (dt or now_local()).astimezone(LOCAL_TZ)
    return f"{dt.strftime('%B')} {dt.day}, {dt.year}"


def format_short_date(dt=None):
    """'3/1/2025' in organization local time."""
    dt = (dt or now_local()).astimezone(LOCAL_TZ)
    return f'{dt.month}/{dt.day}/{dt.year}'


def format_time(dt):
    """'2:00 PM' in organization local time."""
    dt = dt.astimezone(LOCAL_TZ)
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"
