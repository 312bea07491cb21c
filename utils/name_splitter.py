# utils/name_splitter.py
"""Full name splitting shared by the default payload and per-form mappings."""

from typing import Dict


def split_name(full_name: str) -> Dict[str, str]:
    """
    Split a full name on its last whitespace boundary.

    "Jane Q. Public" -> {"first": "Jane Q.", "last": "Public"}
    "Cher"           -> {"first": "Cher", "last": ""}
    """
    name = (full_name or "").strip()
    if not name:
        return {"first": "", "last": ""}

    parts = name.rsplit(None, 1)
    if len(parts) == 1:
        return {"first": parts[0], "last": ""}

    return {"first": parts[0], "last": parts[1]}
