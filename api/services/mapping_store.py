# api/services/mapping_store.py

import logging
from typing import Any, Dict, Iterable, List, Mapping, Union

from api.services.field_targets import MappingRow, OTHER_FIELD_SENTINEL
from database.simple_connection import SimpleDatabase
from utils.form_values import sanitize_text_field

logger = logging.getLogger(__name__)


class _NotConfigured:
    """Sentinel: the form has no per-form mapping, callers use the default payload"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NOT_CONFIGURED"

    def __bool__(self) -> bool:
        return False


NOT_CONFIGURED = _NotConfigured()

FieldMapping = List[MappingRow]


class MappingStore:
    """
    Per-form field mapping storage.

    A form either has an ordered, non-empty list of mapping rows or is
    NOT_CONFIGURED. An empty mapping is never stored, so the two states stay
    distinguishable on read.
    """

    def __init__(self, db: SimpleDatabase):
        self.db = db

    def get_mapping(self, form_id: Union[str, int]) -> Union[FieldMapping, _NotConfigured]:
        """
        Get the administrator-defined rows for a form.

        Returns:
            Rows in configured order, or NOT_CONFIGURED when no override exists
        """
        stored_rows = self.db.get_form_mapping_rows(str(form_id))
        if not stored_rows:
            logger.debug(f"➡️ No per-form mapping for form {form_id}")
            return NOT_CONFIGURED

        rows = [MappingRow.from_stored(row) for row in stored_rows]
        logger.debug(f"🔄 Loaded {len(rows)} mapping rows for form {form_id}")
        return rows

    def save_mapping(self, form_id: Union[str, int], raw_rows: Iterable[Mapping[str, Any]]) -> Union[FieldMapping, _NotConfigured]:
        """
        Replace the mapping for a form wholesale.

        Rows missing a source or target field are dropped. If nothing is left
        the form reverts to NOT_CONFIGURED.
        """
        form_id = str(form_id)
        cleaned = self.clean_rows(raw_rows)

        if not cleaned:
            self.db.delete_form_mapping_rows(form_id)
            logger.info(f"🗑️ Cleared field mapping for form {form_id} (no usable rows)")
            return NOT_CONFIGURED

        self.db.replace_form_mapping_rows(form_id, cleaned)
        logger.info(f"💾 Saved {len(cleaned)} mapping rows for form {form_id}")
        return [MappingRow.from_stored(row) for row in cleaned]

    def delete_mapping(self, form_id: Union[str, int]) -> bool:
        deleted = self.db.delete_form_mapping_rows(str(form_id))
        if deleted:
            logger.info(f"🗑️ Removed field mapping for form {form_id}")
        else:
            logger.warning(f"⚠️ No field mapping to remove for form {form_id}")
        return bool(deleted)

    @staticmethod
    def clean_rows(raw_rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, str]]:
        """
        Normalize editor rows into stored rows.

        The editor sends the form field either as a select value or, when
        "__other__" is selected, as a manual entry. A plain "source_field" key
        is accepted as well.
        """
        cleaned = []
        for row in raw_rows or []:
            selected = sanitize_text_field(row.get("source_field_select", ""))
            manual = sanitize_text_field(row.get("source_field_manual", ""))
            source_field = manual if selected == OTHER_FIELD_SENTINEL else selected

            if not source_field:
                source_field = sanitize_text_field(row.get("source_field", ""))

            target_field = sanitize_text_field(row.get("target_field", ""))
            custom_key = sanitize_text_field(row.get("custom_key", ""))

            # Skip empty rows
            if not source_field or not target_field:
                continue

            cleaned.append({
                "source_field": source_field,
                "target_field": target_field,
                "custom_key": custom_key,
            })
        return cleaned

    @staticmethod
    def suggest_rows_from_basic_mapping(basic_mapping: Mapping[str, str]) -> List[Dict[str, str]]:
        """
        Convert the global basic mapping (full_name/email/phone/message -> form
        field) into per-form rows, used to pre-populate the mapping editor.
        """
        rows = []
        for basic_key in ("full_name", "email", "phone", "message"):
            source_field = (basic_mapping or {}).get(basic_key)
            if source_field:
                rows.append({
                    "source_field": source_field,
                    "target_field": basic_key,
                    "custom_key": "",
                })
        return rows
