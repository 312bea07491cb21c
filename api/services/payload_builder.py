# api/services/payload_builder.py

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from api.services.field_targets import MappingRow, TargetKind
from api.services.mapping_store import MappingStore, NOT_CONFIGURED
from utils.form_values import get_submitted_value
from utils.name_splitter import split_name

logger = logging.getLogger(__name__)

DND_TRUE_VALUES = frozenset({"1", "yes", "true", "on"})
MESSAGE_CUSTOM_FIELD_KEY = "message"


@dataclass
class BuildResult:
    """Contact payload plus the conversation message to send once the contact exists"""
    payload: Dict[str, Any]
    deferred_message: Optional[str] = None


class PayloadBuilder:
    """Builds GHL contact payloads from per-form field mappings"""

    def __init__(self, mapping_store: MappingStore):
        self.mapping_store = mapping_store

    def build_for_form(self, form_id: Union[str, int], submitted: Mapping[str, Any],
                       default_payload: Dict[str, Any]) -> BuildResult:
        """
        Replace the default payload when the form has a per-form mapping.

        Forms without a mapping get default_payload back untouched.
        """
        mapping = self.mapping_store.get_mapping(form_id)
        if mapping is NOT_CONFIGURED:
            return BuildResult(payload=default_payload)

        context = {
            "locationId": default_payload.get("locationId", ""),
            "source": default_payload.get("source", ""),
        }
        result = self.build(mapping, submitted, context)
        logger.info(f"🔄 Built payload for form {form_id} from {len(mapping)} mapping rows: {sorted(result.payload.keys())}")
        return result

    def build(self, mapping: List[MappingRow], submitted: Mapping[str, Any],
              context: Mapping[str, Any]) -> BuildResult:
        """
        Apply mapping rows in order to the submitted values.

        Args:
            mapping: Ordered mapping rows
            submitted: Form field name -> string or list of strings
            context: Must carry locationId and source

        Returns:
            BuildResult with the payload and an optional deferred conversation message
        """
        payload = {
            "locationId": context["locationId"],
            "source": context["source"],
        }
        custom_fields = []
        deferred_message = None

        for row in mapping:
            value = get_submitted_value(submitted, row.source_field)
            if value == "":
                continue

            kind = row.target.kind

            if kind is TargetKind.FULL_NAME:
                name_parts = split_name(value)
                payload["firstName"] = name_parts["first"]
                payload["lastName"] = name_parts["last"]

            elif kind is TargetKind.TAGS:
                payload["tags"] = [tag.strip() for tag in value.split(",")]

            elif kind is TargetKind.SOURCE:
                payload["source"] = value

            elif kind is TargetKind.DND:
                payload["dnd"] = value.lower() in DND_TRUE_VALUES

            elif kind is TargetKind.MESSAGE:
                custom_fields.append({"key": MESSAGE_CUSTOM_FIELD_KEY, "value": value})

            elif kind is TargetKind.CONVERSATION_MESSAGE:
                deferred_message = value

            elif kind is TargetKind.CUSTOM_FIELD:
                if row.custom_key:
                    custom_fields.append({"key": row.custom_key, "value": value})
                else:
                    logger.debug(f"Custom field row for '{row.source_field}' has no key, skipping")

            elif kind.is_standard:
                payload[row.target.payload_key] = value

            else:
                logger.debug(f"Ignoring unrecognized target '{row.target.raw}' for field '{row.source_field}'")

        if custom_fields:
            payload["customFields"] = custom_fields

        return BuildResult(payload=payload, deferred_message=deferred_message)
