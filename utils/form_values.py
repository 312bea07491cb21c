# utils/form_values.py
"""Normalization of raw submitted form values."""

import re
from typing import Any, Mapping

_TAG_RE = re.compile(r"<[^>]*?>")
_OCTET_RE = re.compile(r"%[a-fA-F0-9]{2}")
_WHITESPACE_RE = re.compile(r"[\r\n\t ]+")

MULTI_VALUE_SEPARATOR = ", "


def sanitize_text_field(value: Any) -> str:
    """
    Clean a single-line text value the way form plugins store it:
    tags stripped, percent-encoded octets removed, whitespace collapsed and trimmed.
    """
    if value is None:
        return ""

    text = str(value)
    text = _TAG_RE.sub("", text)
    text = _OCTET_RE.sub("", text)
    text = _WHITESPACE_RE.sub(" ", text)
    return text.strip()


def get_submitted_value(submitted: Mapping[str, Any], field_name: str) -> str:
    """
    Resolve one form field to a single clean string.

    Missing fields resolve to "". Multi-value inputs (checkboxes, multi-selects)
    are joined with ", " before cleaning.
    """
    if not field_name or field_name not in submitted:
        return ""

    value = submitted[field_name]
    if isinstance(value, (list, tuple)):
        value = MULTI_VALUE_SEPARATOR.join(str(item) for item in value)

    return sanitize_text_field(value)
