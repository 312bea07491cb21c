# utils/__init__.py
from .form_values import sanitize_text_field, get_submitted_value, MULTI_VALUE_SEPARATOR
from .name_splitter import split_name

__all__ = [
    'sanitize_text_field', 'get_submitted_value', 'MULTI_VALUE_SEPARATOR',
    'split_name',
]
