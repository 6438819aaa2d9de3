#!/usr/bin/env python3
"""
Forward Horizon Form Validation
Shared sanitizing and required-field checks for every form endpoint.
"""

import math
import re

MAX_FIELD_LENGTH = 1000
EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PHONE_RE = re.compile(r'^[\d\s\-\+\(\)]+$')


class ValidationError(Exception):
    """Raised when a submission fails validation. Maps to HTTP 400."""

    def __init__(self, message, missing=None, extra=None):
        super().__init__(message)
        self.message = message
        self.missing = missing or []
        self.extra = extra or {}

    def to_response(self):
        body = {'success': False, 'error': self.message}
        if self.missing:
            body['missing'] = list(self.missing)
        body.update(self.extra)
        return body


def sanitize_input(value, max_len=MAX_FIELD_LENGTH):
    """Trim, strip angle brackets and truncate. Empty strings become None."""
    if value is None:
        return None
    if not isinstance(value, str):
        return value
    cleaned = value.strip().replace('<', '').replace('>', '')[:max_len]
    return cleaned or None


def is_valid_email(value):
    return isinstance(value, str) and bool(EMAIL_RE.match(value))


def is_valid_phone(value):
    """Digits, spaces and +-() only, with at least 10 digits."""
    if not isinstance(value, str) or not PHONE_RE.match(value):
        return False
    return len(re.sub(r'\D', '', value)) >= 10


def _is_present(value):
    if value is None:
        return False
    if isinstance(value, (str, list, dict)) and not value:
        return False
    return True


def find_missing(data, required):
    """Return the required field names that are absent, in declaration order."""
    return [name for name in required if not _is_present(data.get(name))]


def parse_amount(value):
    """
    Coerce a donation amount to a positive float.
    Raises ValidationError for non-numeric, non-finite or non-positive values.
    """
    if isinstance(value, bool):
        raise ValidationError('Invalid donation amount')
    try:
        amount = float(str(value).strip().lstrip('$').replace(',', ''))
    except (TypeError, ValueError):
        raise ValidationError('Invalid donation amount')
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError('Donation amount must be greater than zero')
    return amount


class FormSchema:
    """
    Declarative description of one form: which fields are required, which
    are optional, which must be valid email addresses.

    validate() returns a dict of cleaned values (sanitized strings, other
    JSON types passed through) or raises ValidationError.
    """

    def __init__(self, required, optional=(), email_fields=(), sanitize=True, example=None):
        self.required = list(required)
        self.optional = list(optional)
        self.email_fields = list(email_fields)
        self.sanitize = sanitize
        self.example = example

    @property
    def fields(self):
        return self.required + [f for f in self.optional if f not in self.required]

    def clean(self, data):
        cleaned = {}
        for name in self.fields:
            value = data.get(name)
            cleaned[name] = sanitize_input(value) if self.sanitize else value
        return cleaned

    def validate(self, data):
        if not isinstance(data, dict):
            raise ValidationError('Request body must be a JSON object')

        cleaned = self.clean(data)
        missing = find_missing(cleaned, self.required)
        if missing:
            extra = {'required': self.required}
            if self.example:
                extra['example'] = self.example
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                missing=missing,
                extra=extra,
            )

        for name in self.email_fields:
            if cleaned.get(name) and not is_valid_email(cleaned[name]):
                raise ValidationError('Invalid email format')

        return cleaned
