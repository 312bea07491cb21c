# api/services/form_submission_service.py

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from api.services.conversation_dispatcher import ConversationDispatcher, ConversationOutcome
from api.services.default_payload import build_default_payload
from api.services.ghl_api import (
    GoHighLevelAPI,
    GHLConfigurationError,
    GHLRemoteRejection,
    GHLTransportError,
)
from api.services.payload_builder import PayloadBuilder
from database.simple_connection import SimpleDatabase

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    status: str  # contact_created, configuration_missing, transport_failure, remote_rejection
    form_id: str
    payload: Optional[Dict[str, Any]] = None
    contact_id: Optional[str] = None
    conversation: Optional[ConversationOutcome] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "contact_created"


class FormSubmissionService:
    """
    Runs one form submission end to end: payload, contact creation, then the
    conversation follow-up for that same submission.
    """

    def __init__(self, payload_builder: PayloadBuilder, dispatcher: ConversationDispatcher,
                 client_factory: Callable[[str], GoHighLevelAPI], db: SimpleDatabase,
                 api_token: str, location_id: str, default_source: str,
                 basic_mapping: Mapping[str, str]):
        self.payload_builder = payload_builder
        self.dispatcher = dispatcher
        self.client_factory = client_factory
        self.db = db
        self.api_token = api_token
        self.location_id = location_id
        self.default_source = default_source
        self.basic_mapping = basic_mapping

    def process_submission(self, form_id: Union[str, int], form_title: str,
                           submitted: Mapping[str, Any]) -> SubmissionResult:
        start_time = time.time()
        form_id = str(form_id)

        if not self.api_token or not self.location_id:
            message = "API token or Location ID not configured"
            logger.warning(f"⚠️ Skipping submission for form {form_id}: {message}")
            return SubmissionResult(status="configuration_missing", form_id=form_id, error=message)

        default_payload = build_default_payload(submitted, self.basic_mapping, self.location_id, self.default_source)
        build_result = self.payload_builder.build_for_form(form_id, submitted, default_payload)
        payload = build_result.payload

        try:
            client = self.client_factory(self.api_token)
            contact = client.create_contact(payload)
        except GHLConfigurationError as e:
            return SubmissionResult(status="configuration_missing", form_id=form_id, payload=payload, error=str(e))
        except GHLTransportError as e:
            return self._fail("transport_failure", form_id, form_title, payload, f"Failed to create contact: {e}")
        except GHLRemoteRejection as e:
            return self._fail(
                "remote_rejection", form_id, form_title, payload,
                f"Contact creation failed (HTTP {e.status_code})",
                status_code=e.status_code, response=e.body,
            )

        contact_id = contact.get("id")
        if not contact_id:
            return self._fail("remote_rejection", form_id, form_title, payload,
                              "Contact creation response had no contact ID", response=contact)

        processing_time = time.time() - start_time
        logger.info(f"✅ Contact {contact_id} created for form {form_id} in {processing_time:.2f}s")
        self.db.log_activity(
            event_type="contact_created",
            event_data={"form_id": form_id, "form_title": form_title, "payload_keys": sorted(payload.keys())},
            form_id=form_id,
            contact_id=contact_id,
            success=True,
            message="Contact created in HighLevel",
        )

        conversation = self.dispatcher.dispatch(
            contact_id=contact_id,
            form_id=form_id,
            form_title=form_title,
            submitted=submitted,
            api_token=self.api_token,
            deferred_message=build_result.deferred_message,
        )

        return SubmissionResult(
            status="contact_created",
            form_id=form_id,
            payload=payload,
            contact_id=contact_id,
            conversation=conversation,
        )

    def _fail(self, status: str, form_id: str, form_title: str, payload: Dict[str, Any], message: str,
              status_code: Optional[int] = None, response: Any = None) -> SubmissionResult:
        event_data = {"form_id": form_id, "form_title": form_title}
        if status_code is not None:
            event_data["status_code"] = status_code
        if response is not None:
            event_data["response"] = response

        logger.error(f"❌ {message} - {event_data}")
        self.db.log_activity(
            event_type="contact_create_failed",
            event_data=event_data,
            form_id=form_id,
            success=False,
            message=message,
        )
        return SubmissionResult(status=status, form_id=form_id, payload=payload, error=message)
