#!/usr/bin/env python3
"""
Test script for the conversation follow-up and the submission flow.
HTTP is stubbed at requests.request; nothing leaves the process.
"""

import json
import os
import tempfile
import threading
from unittest import mock

import requests

from api.services.conversation_dispatcher import ConversationDispatcher, ConversationStatus
from api.services.form_submission_service import FormSubmissionService
from api.services.ghl_api import GoHighLevelAPI, GHLConfigurationError
from api.services.mapping_store import MappingStore
from api.services.payload_builder import PayloadBuilder
from database.simple_connection import SimpleDatabase

BASE_URL = "https://services.leadconnectorhq.com"


def make_db() -> SimpleDatabase:
    db_dir = tempfile.mkdtemp()
    return SimpleDatabase(f"sqlite:///{os.path.join(db_dir, 'test.db')}")


def fake_response(status_code: int, body=None) -> mock.Mock:
    response = mock.Mock()
    response.status_code = status_code
    response.content = json.dumps(body).encode() if body is not None else b""
    response.text = response.content.decode()
    response.json.return_value = body
    return response


def client_factory(api_token: str) -> GoHighLevelAPI:
    return GoHighLevelAPI(private_token=api_token, location_id="L1", base_url=BASE_URL)


def test_no_deferred_message_skips_http():
    with mock.patch("api.services.ghl_api.requests.request") as request:
        outcome = ConversationDispatcher(client_factory).dispatch("c1", "10", "Contact", {}, "tok", None)

    assert outcome.status is ConversationStatus.SKIPPED
    request.assert_not_called()


def test_successful_conversation_flow():
    print("\n=== Testing Conversation Success ===")
    db = make_db()
    responses = [
        fake_response(201, {"conversation": {"id": "conv1"}}),
        fake_response(200, {"messageId": "m1"}),
    ]

    with mock.patch("api.services.ghl_api.requests.request", side_effect=responses) as request:
        outcome = ConversationDispatcher(client_factory, db=db).dispatch(
            "c1", "10", "Contact", {"msg": "Hi there"}, "tok", "Hi there"
        )

    assert outcome.status is ConversationStatus.DONE
    assert outcome.response == {"messageId": "m1"}

    create_call, message_call = request.call_args_list
    assert create_call.args == ("POST", f"{BASE_URL}/conversations/")
    assert create_call.kwargs["json"] == {"locationId": "L1", "contactId": "c1"}
    assert create_call.kwargs["headers"]["Authorization"] == "Bearer tok"
    assert create_call.kwargs["headers"]["Version"] == "2021-04-15"
    assert create_call.kwargs["timeout"] == 30

    assert message_call.args == ("POST", f"{BASE_URL}/conversations/messages")
    assert message_call.kwargs["json"] == {"type": "Custom", "contactId": "c1", "message": "Hi there"}
    assert message_call.kwargs["headers"]["Version"] == "2021-04-15"

    activity = db.get_recent_activity(form_id="10")
    assert activity[0]["success"] is True
    assert activity[0]["event_data"]["message"] == "Hi there"
    print("✅ Conversation created and message sent")


def test_conversation_create_rejected_stops_flow():
    print("\n=== Testing Conversation Create Rejection ===")
    db = make_db()

    with mock.patch("api.services.ghl_api.requests.request",
                    side_effect=[fake_response(422, {"message": "bad contact"})]) as request:
        outcome = ConversationDispatcher(client_factory, db=db).dispatch("c1", "10", "Contact", {}, "tok", "Hello")

    assert outcome.status is ConversationStatus.FAILED
    assert outcome.step == "create_conversation"
    assert outcome.status_code == 422
    assert request.call_count == 1

    entry = db.get_recent_activity(form_id="10")[0]
    assert entry["success"] is False
    assert entry["message"] == "Conversation creation failed (HTTP 422)"
    assert entry["event_data"]["contact_id"] == "c1"
    assert entry["event_data"]["response"] == {"message": "bad contact"}
    print("✅ Flow terminated after create step")


def test_transport_failure_on_create():
    with mock.patch("api.services.ghl_api.requests.request",
                    side_effect=requests.exceptions.Timeout("timed out")) as request:
        outcome = ConversationDispatcher(client_factory).dispatch("c1", "10", "Contact", {}, "tok", "Hello")

    assert outcome.status is ConversationStatus.FAILED
    assert outcome.step == "create_conversation"
    assert "timed out" in outcome.error
    assert request.call_count == 1


def test_message_send_failure():
    responses = [fake_response(201, {}), fake_response(500, {"error": "oops"})]

    with mock.patch("api.services.ghl_api.requests.request", side_effect=responses):
        outcome = ConversationDispatcher(client_factory).dispatch("c1", "10", "Contact", {}, "tok", "Hello")

    assert outcome.status is ConversationStatus.FAILED
    assert outcome.step == "send_message"
    assert outcome.status_code == 500
    assert outcome.response == {"error": "oops"}


def test_message_send_transport_failure():
    responses = [fake_response(201, {}), requests.exceptions.ConnectionError("reset")]

    with mock.patch("api.services.ghl_api.requests.request", side_effect=responses):
        outcome = ConversationDispatcher(client_factory).dispatch("c1", "10", "Contact", {}, "tok", "Hello")

    assert outcome.status is ConversationStatus.FAILED
    assert outcome.step == "send_message"


def test_missing_token_fails_without_network():
    try:
        client_factory("")
    except GHLConfigurationError:
        pass
    else:
        raise AssertionError("expected GHLConfigurationError")

    with mock.patch("api.services.ghl_api.requests.request") as request:
        outcome = ConversationDispatcher(client_factory).dispatch("c1", "10", "Contact", {}, "", "Hello")

    assert outcome.status is ConversationStatus.FAILED
    request.assert_not_called()


class RecordingClient:
    """Stand-in client that records which message went to which contact"""

    sent = []
    lock = threading.Lock()

    def __init__(self, api_token: str, barrier: threading.Barrier = None):
        self.barrier = barrier

    def create_contact(self, payload):
        if self.barrier is not None:
            # Both submissions have built their payloads before either sends a message
            self.barrier.wait(timeout=5)
        return {"id": f"contact-{payload['email']}"}

    def create_conversation(self, contact_id):
        return {}

    def send_conversation_message(self, contact_id, message):
        with self.lock:
            self.sent.append((contact_id, message))
        return {}


def make_service(db, factory, api_token="tok", location_id="L1"):
    builder = PayloadBuilder(MappingStore(db))
    return FormSubmissionService(
        payload_builder=builder,
        dispatcher=ConversationDispatcher(factory, db=db),
        client_factory=factory,
        db=db,
        api_token=api_token,
        location_id=location_id,
        default_source="site",
        basic_mapping={},
    )


def test_concurrent_submissions_do_not_cross_deliver():
    print("\n=== Testing Concurrent Submissions Of One Form ===")
    db = make_db()
    MappingStore(db).save_mapping("77", [
        {"source_field": "email", "target_field": "email"},
        {"source_field": "msg", "target_field": "conversation_message"},
    ])

    RecordingClient.sent = []
    barrier = threading.Barrier(2)
    service = make_service(db, lambda token: RecordingClient(token, barrier))

    threads = [
        threading.Thread(target=service.process_submission, args=("77", "Quote", {"email": "a@x.com", "msg": "From A"})),
        threading.Thread(target=service.process_submission, args=("77", "Quote", {"email": "b@x.com", "msg": "From B"})),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    print(f"Sent: {RecordingClient.sent}")
    assert sorted(RecordingClient.sent) == [
        ("contact-a@x.com", "From A"),
        ("contact-b@x.com", "From B"),
    ]
    print("✅ Each contact received its own message")


def test_submission_flow_end_to_end():
    print("\n=== Testing Submission Flow ===")
    db = make_db()
    MappingStore(db).save_mapping("10", [
        {"source_field": "name", "target_field": "full_name"},
        {"source_field": "email", "target_field": "email"},
        {"source_field": "msg", "target_field": "conversation_message"},
    ])
    responses = [
        fake_response(201, {"contact": {"id": "c-99"}}),
        fake_response(201, {}),
        fake_response(201, {"messageId": "m1"}),
    ]

    with mock.patch("api.services.ghl_api.requests.request", side_effect=responses) as request:
        result = make_service(db, client_factory).process_submission(
            "10", "Contact", {"name": "Ann Lee", "email": "a@x.com", "msg": "Hi there"}
        )

    assert result.succeeded
    assert result.contact_id == "c-99"
    assert result.payload == {
        "locationId": "L1", "source": "site", "firstName": "Ann", "lastName": "Lee", "email": "a@x.com",
    }
    assert result.conversation.status is ConversationStatus.DONE

    contact_call = request.call_args_list[0]
    assert contact_call.args == ("POST", f"{BASE_URL}/contacts/")
    assert contact_call.kwargs["headers"]["Version"] == "2021-07-28"
    assert request.call_args_list[2].kwargs["json"]["message"] == "Hi there"
    print("✅ Contact created and conversation sent")


def test_contact_rejection_skips_conversation():
    db = make_db()
    MappingStore(db).save_mapping("10", [{"source_field": "msg", "target_field": "conversation_message"},
                                         {"source_field": "email", "target_field": "email"}])

    with mock.patch("api.services.ghl_api.requests.request",
                    side_effect=[fake_response(400, {"message": "invalid email"})]) as request:
        result = make_service(db, client_factory).process_submission("10", "Contact", {"email": "bad", "msg": "Hi"})

    assert result.status == "remote_rejection"
    assert result.conversation is None
    assert request.call_count == 1


def test_missing_configuration_short_circuits():
    db = make_db()
    with mock.patch("api.services.ghl_api.requests.request") as request:
        result = make_service(db, client_factory, api_token="").process_submission("10", "Contact", {"email": "a@x.com"})

    assert result.status == "configuration_missing"
    request.assert_not_called()


def main():
    """Run all tests."""
    print("Starting conversation dispatcher tests...")

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
