# api/services/conversation_dispatcher.py

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Union

from api.services.ghl_api import (
    GoHighLevelAPI,
    GHLConfigurationError,
    GHLRemoteRejection,
    GHLTransportError,
)
from database.simple_connection import SimpleDatabase

logger = logging.getLogger(__name__)

STEP_CREATE_CONVERSATION = "create_conversation"
STEP_SEND_MESSAGE = "send_message"


class ConversationStatus(Enum):
    SKIPPED = "skipped"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ConversationOutcome:
    status: ConversationStatus
    step: Optional[str] = None
    status_code: Optional[int] = None
    response: Any = None
    error: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status is ConversationStatus.DONE


ClientFactory = Callable[[str], GoHighLevelAPI]


class ConversationDispatcher:
    """
    Sends a deferred form message to a newly created contact.

    Two steps, each attempted once: create a conversation for the contact, then
    post the message to it. Failures are logged and end the flow; nothing is
    raised to the caller.
    """

    def __init__(self, client_factory: ClientFactory, db: Optional[SimpleDatabase] = None):
        self.client_factory = client_factory
        self.db = db

    def dispatch(self, contact_id: str, form_id: Union[str, int], form_title: str,
                 submitted: Mapping[str, Any], api_token: str,
                 deferred_message: Optional[str]) -> ConversationOutcome:
        if not deferred_message:
            return ConversationOutcome(status=ConversationStatus.SKIPPED)

        context = {
            "form_id": str(form_id),
            "form_title": form_title,
            "contact_id": contact_id,
        }

        try:
            client = self.client_factory(api_token)
        except GHLConfigurationError as e:
            return self._fail(STEP_CREATE_CONVERSATION, f"Failed to create conversation: {e}", context, error=str(e))

        # Step 1: create a conversation for this contact
        try:
            client.create_conversation(contact_id)
        except GHLTransportError as e:
            return self._fail(STEP_CREATE_CONVERSATION, f"Failed to create conversation: {e}", context, error=str(e))
        except GHLRemoteRejection as e:
            return self._fail(
                STEP_CREATE_CONVERSATION,
                f"Conversation creation failed (HTTP {e.status_code})",
                context,
                status_code=e.status_code,
                response=e.body,
            )

        # Step 2: send the message to the conversation
        try:
            response = client.send_conversation_message(contact_id, deferred_message)
        except GHLTransportError as e:
            return self._fail(STEP_SEND_MESSAGE, f"Failed to send conversation message: {e}", context, error=str(e))
        except GHLRemoteRejection as e:
            return self._fail(
                STEP_SEND_MESSAGE,
                f"Conversation message failed (HTTP {e.status_code})",
                context,
                status_code=e.status_code,
                response=e.body,
            )

        event_data = {**context, "message": deferred_message, "response": response}
        logger.info(f"✅ Conversation message sent to contact {contact_id} (form {form_id})", extra={"event_data": event_data})
        self._record(event_data, success=True, message="Conversation message sent to contact")
        return ConversationOutcome(
            status=ConversationStatus.DONE,
            step=STEP_SEND_MESSAGE,
            response=response,
            context=context,
        )

    def _fail(self, step: str, message: str, context: Dict[str, Any], status_code: Optional[int] = None,
              response: Any = None, error: Optional[str] = None) -> ConversationOutcome:
        event_data = {**context, "step": step}
        if status_code is not None:
            event_data["status_code"] = status_code
        if response is not None:
            event_data["response"] = response
        if error:
            event_data["error"] = error

        logger.error(f"❌ {message} - {event_data}", extra={"event_data": event_data})
        self._record(event_data, success=False, message=message)
        return ConversationOutcome(
            status=ConversationStatus.FAILED,
            step=step,
            status_code=status_code,
            response=response,
            error=error or message,
            context=context,
        )

    def _record(self, event_data: Dict[str, Any], success: bool, message: str):
        if self.db is None:
            return
        self.db.log_activity(
            event_type="conversation_message",
            event_data=event_data,
            form_id=event_data.get("form_id"),
            contact_id=event_data.get("contact_id"),
            success=success,
            message=message,
        )
