#!/usr/bin/env python3
"""
Test script for per-form mapping storage.
"""

import os
import tempfile

from api.services.field_targets import TargetKind
from api.services.mapping_store import MappingStore, NOT_CONFIGURED
from database.models import ActivityLog
from database.simple_connection import SimpleDatabase


def make_store() -> MappingStore:
    db_dir = tempfile.mkdtemp()
    return MappingStore(SimpleDatabase(f"sqlite:///{os.path.join(db_dir, 'test.db')}"))


def test_unknown_form_is_not_configured():
    store = make_store()
    mapping = store.get_mapping("missing-form")
    assert mapping is NOT_CONFIGURED
    assert mapping != []


def test_save_and_read_back_in_order():
    print("\n=== Testing Mapping Save / Load ===")
    store = make_store()
    store.save_mapping("12", [
        {"source_field": "your-name", "target_field": "full_name"},
        {"source_field": "budget", "target_field": "__custom__", "custom_key": "contact.budget_range"},
        {"source_field": "your-message", "target_field": "conversation_message"},
    ])

    mapping = store.get_mapping(12)
    print(f"Loaded rows: {[row.to_dict() for row in mapping]}")

    assert [row.source_field for row in mapping] == ["your-name", "budget", "your-message"]
    assert mapping[0].target.kind is TargetKind.FULL_NAME
    assert mapping[1].target.kind is TargetKind.CUSTOM_FIELD
    assert mapping[1].custom_key == "contact.budget_range"
    assert mapping[2].target.kind is TargetKind.CONVERSATION_MESSAGE
    print("✅ Rows stored and returned in order")


def test_save_replaces_wholesale():
    store = make_store()
    store.save_mapping("5", [
        {"source_field": "a", "target_field": "email"},
        {"source_field": "b", "target_field": "phone"},
    ])
    store.save_mapping("5", [{"source_field": "c", "target_field": "city"}])

    mapping = store.get_mapping("5")
    assert [(row.source_field, row.target.raw) for row in mapping] == [("c", "city")]


def test_save_is_idempotent():
    store = make_store()
    rows = [{"source_field": "a", "target_field": "email"}]
    first = store.save_mapping("5", rows)
    second = store.save_mapping("5", rows)
    assert [row.to_dict() for row in first] == [row.to_dict() for row in second]
    assert len(store.get_mapping("5")) == 1


def test_empty_rows_are_dropped():
    store = make_store()
    store.save_mapping("9", [
        {"source_field": "", "target_field": "email"},
        {"source_field": "phone", "target_field": ""},
        {"source_field": "  ", "target_field": "  "},
        {"source_field": "email", "target_field": "email"},
    ])

    mapping = store.get_mapping("9")
    assert len(mapping) == 1
    assert mapping[0].source_field == "email"


def test_all_empty_rows_revert_to_not_configured():
    print("\n=== Testing Empty Save Clears Mapping ===")
    store = make_store()
    store.save_mapping("3", [{"source_field": "a", "target_field": "email"}])

    result = store.save_mapping("3", [{"source_field": "", "target_field": ""}])

    assert result is NOT_CONFIGURED
    assert store.get_mapping("3") is NOT_CONFIGURED
    print("✅ Empty mapping stored as not configured")


def test_editor_select_and_manual_entry():
    store = make_store()
    store.save_mapping("4", [
        {"source_field_select": "your-email", "source_field_manual": "", "target_field": "email"},
        {"source_field_select": "__other__", "source_field_manual": "hidden-utm", "target_field": "source"},
    ])

    mapping = store.get_mapping("4")
    assert [row.source_field for row in mapping] == ["your-email", "hidden-utm"]


def test_forms_are_isolated():
    store = make_store()
    store.save_mapping("1", [{"source_field": "a", "target_field": "email"}])
    store.save_mapping("2", [{"source_field": "b", "target_field": "phone"}])
    store.delete_mapping("1")

    assert store.get_mapping("1") is NOT_CONFIGURED
    assert store.get_mapping("2")[0].source_field == "b"


def test_suggest_rows_from_basic_mapping():
    rows = MappingStore.suggest_rows_from_basic_mapping({
        "full_name": "your-name",
        "email": "your-email",
        "phone": "",
        "message": "your-message",
    })
    assert rows == [
        {"source_field": "your-name", "target_field": "full_name", "custom_key": ""},
        {"source_field": "your-email", "target_field": "email", "custom_key": ""},
        {"source_field": "your-message", "target_field": "message", "custom_key": ""},
    ]


def test_activity_event_data_defaults_are_not_shared():
    db = SimpleDatabase(f"sqlite:///{os.path.join(tempfile.mkdtemp(), 'test.db')}")
    assert ActivityLog.__table__.c.event_data.default.is_callable

    db.log_activity(event_type="contact_created", form_id="8")
    db.log_activity(event_type="contact_created", form_id="8")

    entries = db.get_recent_activity(form_id="8")
    assert [entry["event_data"] for entry in entries] == [{}, {}]


def main():
    """Run all tests."""
    print("Starting mapping store tests...")

    tests = [value for name, value in sorted(globals().items()) if name.startswith("test_") and callable(value)]
    try:
        for test in tests:
            test()

        print("\n" + "="*50)
        print("✅ ALL TESTS PASSED!")
        print("="*50)

    except AssertionError as e:
        print(f"\n❌ Test failed: {e}")
        return 1

    return 0

if __name__ == "__main__":
    exit(main())
