# api/services/field_targets.py
"""
GHL Field Targets
=================
The closed set of HighLevel targets a form field can be mapped to, and the
conversion between stored target strings and typed targets.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

CUSTOM_FIELD_SENTINEL = "__custom__"
API_CUSTOM_FIELD_PREFIX = "__api_custom__"
OTHER_FIELD_SENTINEL = "__other__"

CUSTOM_FIELDS_GROUP_LABEL = "Custom Fields (from HighLevel)"


class TargetKind(Enum):
    # Standard contact attributes: the value is the GHL payload key
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    EMAIL = "email"
    PHONE = "phone"
    COMPANY_NAME = "companyName"
    WEBSITE = "website"
    ADDRESS = "address1"
    CITY = "city"
    STATE = "state"
    POSTAL_CODE = "postalCode"
    COUNTRY = "country"
    GENDER = "gender"
    DATE_OF_BIRTH = "dateOfBirth"
    TIMEZONE = "timezone"
    ASSIGNED_TO = "assignedTo"

    # Special targets
    FULL_NAME = "full_name"
    TAGS = "tags"
    SOURCE = "source"
    DND = "dnd"
    MESSAGE = "message"
    CONVERSATION_MESSAGE = "conversation_message"
    CUSTOM_FIELD = CUSTOM_FIELD_SENTINEL

    UNKNOWN = "__unknown__"

    @property
    def is_standard(self) -> bool:
        return self in STANDARD_KINDS


STANDARD_KINDS = frozenset({
    TargetKind.FIRST_NAME,
    TargetKind.LAST_NAME,
    TargetKind.EMAIL,
    TargetKind.PHONE,
    TargetKind.COMPANY_NAME,
    TargetKind.WEBSITE,
    TargetKind.ADDRESS,
    TargetKind.CITY,
    TargetKind.STATE,
    TargetKind.POSTAL_CODE,
    TargetKind.COUNTRY,
    TargetKind.GENDER,
    TargetKind.DATE_OF_BIRTH,
    TargetKind.TIMEZONE,
    TargetKind.ASSIGNED_TO,
})

_KINDS_BY_VALUE = {
    kind.value: kind for kind in TargetKind if kind is not TargetKind.UNKNOWN
}


@dataclass(frozen=True)
class FieldTarget:
    """A parsed mapping target; custom_key is only meaningful for CUSTOM_FIELD"""
    kind: TargetKind
    custom_key: str = ""
    raw: str = ""

    @classmethod
    def parse(cls, target_field: str, custom_key: str = "") -> "FieldTarget":
        target_field = (target_field or "").strip()
        custom_key = (custom_key or "").strip()

        if target_field.startswith(API_CUSTOM_FIELD_PREFIX):
            return cls(TargetKind.CUSTOM_FIELD, target_field[len(API_CUSTOM_FIELD_PREFIX):], target_field)

        kind = _KINDS_BY_VALUE.get(target_field)
        if kind is None:
            return cls(TargetKind.UNKNOWN, "", target_field)
        if kind is TargetKind.CUSTOM_FIELD:
            return cls(kind, custom_key, target_field)
        return cls(kind, "", target_field)

    @property
    def payload_key(self) -> Optional[str]:
        """GHL payload key for standard attributes, None otherwise"""
        return self.kind.value if self.kind.is_standard else None


@dataclass(frozen=True)
class MappingRow:
    source_field: str
    target: FieldTarget

    @classmethod
    def from_stored(cls, row: Dict[str, str]) -> "MappingRow":
        return cls(
            source_field=row.get("source_field", ""),
            target=FieldTarget.parse(row.get("target_field", ""), row.get("custom_key", "")),
        )

    @property
    def custom_key(self) -> str:
        return self.target.custom_key

    def to_dict(self) -> Dict[str, str]:
        return {
            "source_field": self.source_field,
            "target_field": self.target.raw,
            "custom_key": self.target.custom_key if self.target.raw == CUSTOM_FIELD_SENTINEL else "",
        }


def get_standard_ghl_fields() -> Dict[str, Dict[str, str]]:
    """Standard HighLevel fields grouped by category, as offered to administrators"""
    return {
        "Name": {
            "full_name": "Full Name (auto-split into first/last)",
            "firstName": "First Name",
            "lastName": "Last Name",
        },
        "Contact": {
            "email": "Email",
            "phone": "Phone",
            "companyName": "Company Name",
            "website": "Website",
        },
        "Address": {
            "address1": "Address",
            "city": "City",
            "state": "State",
            "postalCode": "Postal Code",
            "country": "Country",
        },
        "Message": {
            "message": "Message (saved as custom field)",
            "conversation_message": "Message (sent as conversation)",
        },
        "Other": {
            "source": "Lead Source",
            "tags": "Tags (comma-separated)",
            "gender": "Gender",
            "dateOfBirth": "Date of Birth",
            "timezone": "Timezone",
            "assignedTo": "Assigned To (GHL User ID)",
            "dnd": "Do Not Disturb",
        },
    }


def build_custom_field_group(custom_fields: List[Dict]) -> Dict[str, str]:
    """Turn the HighLevel customFields list into {__api_custom__<fieldKey>: name}"""
    group = {}
    for field in custom_fields:
        if not isinstance(field, dict):
            continue
        key = field.get("fieldKey") or ""
        if not key:
            continue
        group[f"{API_CUSTOM_FIELD_PREFIX}{key}"] = field.get("name") or key
    return group


def get_ghl_field_groups(custom_fields: Optional[List[Dict]] = None) -> Dict[str, Dict[str, str]]:
    """Standard groups plus a group for custom fields fetched from HighLevel"""
    groups = get_standard_ghl_fields()
    custom_group = build_custom_field_group(custom_fields or [])
    if custom_group:
        groups[CUSTOM_FIELDS_GROUP_LABEL] = custom_group
    return groups
