# api/routes/webhook_routes.py

import logging
import json
from typing import Dict, List, Any, Union
from urllib.parse import parse_qs

from fastapi import APIRouter, Request, BackgroundTasks, Depends
from fastapi.responses import JSONResponse

from api.services.form_submission_service import FormSubmissionService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/webhooks", tags=["Form Webhooks"])

FORM_TITLE_FIELD = "_form_title"

SubmittedValues = Dict[str, Union[str, List[str]]]


def get_submission_service(request: Request) -> FormSubmissionService:
    return request.app.state.submission_service


def collapse_multi_values(pairs: List[tuple]) -> SubmittedValues:
    """
    Fold (key, value) pairs into submitted values. Repeated keys and "name[]"
    keys become lists; single keys stay strings.
    """
    submitted: Dict[str, Any] = {}
    for key, value in pairs:
        is_array_key = key.endswith("[]")
        name = key[:-2] if is_array_key else key

        if name in submitted:
            existing = submitted[name]
            if not isinstance(existing, list):
                existing = [existing]
            existing.append(value)
            submitted[name] = existing
        else:
            submitted[name] = [value] if is_array_key else value
    return submitted


def normalize_json_values(payload: Dict[str, Any]) -> SubmittedValues:
    """Keep strings and string lists; stringify other scalars"""
    submitted = {}
    for key, value in payload.items():
        if value is None:
            continue
        if isinstance(value, list):
            submitted[key] = ["" if item is None else str(item) for item in value]
        elif isinstance(value, dict):
            submitted[key] = json.dumps(value)
        elif isinstance(value, bool):
            submitted[key] = "1" if value else "0"
        else:
            submitted[key] = str(value)
    return submitted


def decode_body(body: bytes) -> str:
    """Body text as UTF-8, falling back to latin-1"""
    try:
        return body.decode("utf-8")
    except UnicodeDecodeError:
        logger.warning("⚠️ Request body is not valid UTF-8, decoding as latin-1")
        return body.decode("latin-1")


async def parse_webhook_payload(request: Request) -> SubmittedValues:
    """
    Payload parser that handles both JSON and form-encoded submissions
    """
    content_type = request.headers.get("content-type", "").lower()
    logger.info(f"🔍 PAYLOAD PARSER: Content-Type='{content_type}'")

    if "multipart/form-data" in content_type:
        form_data = await request.form()
        payload = collapse_multi_values([(k, v) for k, v in form_data.multi_items() if isinstance(v, str)])
        logger.info(f"✅ Parsed multipart payload with {len(payload)} fields")
        return payload

    body = await request.body()
    body_str = decode_body(body)

    if "application/json" in content_type or body_str.strip().startswith("{"):
        try:
            payload = json.loads(body_str or "{}")
        except ValueError as e:
            logger.warning(f"⚠️ JSON parsing failed: {e}")
        else:
            if isinstance(payload, dict):
                logger.info(f"✅ Parsed JSON payload with {len(payload)} fields")
                return normalize_json_values(payload)
            logger.warning(f"⚠️ JSON payload is not an object: {type(payload).__name__}")
            return {}

    parsed = parse_qs(body_str, keep_blank_values=True)
    pairs = [(key, value) for key, values in parsed.items() for value in values]
    payload = collapse_multi_values(pairs)
    logger.info(f"✅ Parsed form-encoded payload with {len(payload)} fields")
    return payload


def process_form_submission(service: FormSubmissionService, form_id: str, form_title: str,
                            submitted: SubmittedValues):
    """Background task: runs after the webhook has answered"""
    try:
        result = service.process_submission(form_id, form_title, submitted)
        logger.info(f"📤 Submission for form '{form_id}' finished with status {result.status}")
    except Exception as e:
        # The submission was already accepted; record the failure and stop here
        logger.error(f"❌ Unexpected error processing form '{form_id}': {e}", exc_info=True)
        service.db.log_activity(
            event_type="webhook_processing_error",
            event_data={"form_id": form_id, "error": str(e)},
            form_id=form_id,
            success=False,
            message=str(e),
        )


@router.post("/forms/{form_id}")
async def handle_form_webhook(
    form_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    service: FormSubmissionService = Depends(get_submission_service),
):
    """
    Receive a form submission. Returns 200 immediately and sends the contact
    to HighLevel in the background.
    """
    submitted = await parse_webhook_payload(request)

    form_title = submitted.pop(FORM_TITLE_FIELD, None) or request.query_params.get("form_title", "")
    if isinstance(form_title, list):
        form_title = form_title[0] if form_title else ""

    background_tasks.add_task(process_form_submission, service, form_id, form_title, submitted)
    logger.info(f"📥 Accepted submission for form '{form_id}' with fields {list(submitted.keys())}")

    return JSONResponse(
        content={
            "status": "accepted",
            "message": "Submission received and queued for processing",
            "form_id": form_id,
        },
        status_code=200
    )


@router.get("/health")
async def webhook_health_check(service: FormSubmissionService = Depends(get_submission_service)):
    configured = bool(service.api_token and service.location_id)
    return {
        "status": "healthy" if configured else "degraded",
        "ghl_configured": configured,
    }
