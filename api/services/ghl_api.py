# api/services/ghl_api.py

import requests
from urllib.parse import quote
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://services.leadconnectorhq.com"
CONTACTS_API_VERSION = "2021-07-28"
CONVERSATIONS_API_VERSION = "2021-04-15"
LOCATIONS_API_VERSION = "2021-07-28"


class GHLError(Exception):
    """Base class for GHL client failures"""


class GHLConfigurationError(GHLError):
    """API token or location ID missing; raised before any network call"""


class GHLTransportError(GHLError):
    """Network, DNS or timeout failure"""


class GHLRemoteRejection(GHLError):
    """GHL answered with a non-2xx status"""

    def __init__(self, message: str, status_code: int, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _response_body(response: requests.Response) -> Any:
    """Parsed JSON body, raw text if it is not JSON, None if empty"""
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class GoHighLevelAPI:
    """GHL API client for contacts, conversations and location custom fields"""

    def __init__(self, private_token: Optional[str], location_id: Optional[str],
                 base_url: str = DEFAULT_BASE_URL, timeout: int = 30, schema_timeout: int = 15):
        if not private_token or not location_id:
            raise GHLConfigurationError("API token or Location ID not configured")

        self.private_token = private_token
        self.location_id = location_id
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.schema_timeout = schema_timeout

    def _headers(self, version: str) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.private_token}",
            "Content-Type": "application/json",
            "Version": version,
        }

    def _make_request(self, method: str, path: str, version: str,
                      timeout: Optional[int] = None, **kwargs) -> Any:
        """
        Send one request and return the parsed body of a 2xx response.

        Raises:
            GHLTransportError: the request never got a response
            GHLRemoteRejection: the response status was not 2xx
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"🔑 {method} {url}")
        try:
            response = requests.request(
                method,
                url,
                headers=self._headers(version),
                timeout=timeout or self.timeout,
                **kwargs
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"❌ Request to {url} failed: {e}")
            raise GHLTransportError(str(e)) from e

        body = _response_body(response)
        if 200 <= response.status_code < 300:
            logger.debug(f"✅ {method} {url} succeeded: {response.status_code}")
            return body

        logger.debug(f"❌ {method} {url} rejected: {response.status_code} - {response.text}")
        raise GHLRemoteRejection(
            f"HTTP {response.status_code} from {method} {path}",
            status_code=response.status_code,
            body=body,
        )

    def create_contact(self, contact_data: Dict[str, Any]) -> Dict[str, Any]:
        """Create a contact and return the contact object from the response"""
        payload = {
            "locationId": self.location_id,
            **contact_data
        }

        logger.info(f"🔍 GHL CREATE CONTACT: keys={list(payload.keys())}")
        data = self._make_request("POST", "/contacts/", CONTACTS_API_VERSION, json=payload) or {}
        contact = data.get("contact", {}) if isinstance(data, dict) else {}
        logger.info(f"✅ Created contact ID: {contact.get('id')}")
        return contact

    def create_conversation(self, contact_id: str) -> Dict[str, Any]:
        payload = {
            "locationId": self.location_id,
            "contactId": contact_id,
        }
        return self._make_request("POST", "/conversations/", CONVERSATIONS_API_VERSION, json=payload) or {}

    def send_conversation_message(self, contact_id: str, message: str) -> Dict[str, Any]:
        """Post a Custom-type message to the contact's conversation"""
        payload = {
            "type": "Custom",
            "contactId": contact_id,
            "message": message,
        }
        return self._make_request("POST", "/conversations/messages", CONVERSATIONS_API_VERSION, json=payload) or {}

    def get_custom_fields(self) -> List[Dict[str, Any]]:
        """Get custom fields for the location"""
        path = f"/locations/{quote(self.location_id, safe='')}/customFields"
        data = self._make_request("GET", path, LOCATIONS_API_VERSION, timeout=self.schema_timeout) or {}
        if not isinstance(data, dict):
            return []
        fields = data.get("customFields") or []
        if not isinstance(fields, list):
            return []
        return [field for field in fields if isinstance(field, dict)]
