# api/services/default_payload.py

from typing import Any, Dict, Mapping

from utils.form_values import get_submitted_value
from utils.name_splitter import split_name


def build_default_payload(submitted: Mapping[str, Any], basic_mapping: Mapping[str, str],
                          location_id: str, source: str) -> Dict[str, Any]:
    """
    Payload for forms without a per-form mapping, driven by the global basic
    mapping of full_name, email, phone and message to form field names.
    """
    payload = {
        "locationId": location_id,
        "source": source,
    }

    full_name = get_submitted_value(submitted, basic_mapping.get("full_name", ""))
    if full_name:
        name_parts = split_name(full_name)
        payload["firstName"] = name_parts["first"]
        payload["lastName"] = name_parts["last"]

    for key in ("email", "phone"):
        value = get_submitted_value(submitted, basic_mapping.get(key, ""))
        if value:
            payload[key] = value

    message = get_submitted_value(submitted, basic_mapping.get("message", ""))
    if message:
        payload["customFields"] = [{"key": "message", "value": message}]

    return payload
