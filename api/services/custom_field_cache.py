# api/services/custom_field_cache.py
# Process-wide cache of the location's HighLevel custom fields

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from api.services.field_targets import get_ghl_field_groups
from api.services.ghl_api import GoHighLevelAPI, GHLConfigurationError, GHLError

logger = logging.getLogger(__name__)

MISSING_CONFIG_MESSAGE = "API token or Location ID not configured. Set GHL_PRIVATE_TOKEN and GHL_LOCATION_ID to load custom fields."
NO_FIELDS_MESSAGE = "No custom fields found. You may need to enable the Custom Fields scope in your HighLevel Private Integration."
FETCH_FAILED_MESSAGE = "Could not load custom fields from HighLevel: {error}"
LOADED_MESSAGE = "{count} custom field(s) loaded from HighLevel."


@dataclass
class CustomFieldRefreshResult:
    success: bool
    message: str
    custom_count: int = 0
    fields: List[Dict[str, Any]] = field(default_factory=list)
    configured: bool = True


class CustomFieldCache:
    """
    One-hour cache of GET /locations/{locationId}/customFields.

    Shared by all requests in the process. Concurrent refreshes may overlap;
    the last successful fetch wins.
    """

    def __init__(self, client_factory: Callable[[], GoHighLevelAPI], ttl_seconds: int = 3600,
                 clock: Callable[[], float] = time.monotonic):
        self.client_factory = client_factory
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._fields: Optional[List[Dict[str, Any]]] = None
        self._fetched_at: float = 0.0

    def _is_fresh(self) -> bool:
        return self._fields is not None and (self._clock() - self._fetched_at) < self.ttl_seconds

    def invalidate(self):
        self._fields = None
        self._fetched_at = 0.0

    def get_custom_fields(self, force_refresh: bool = False) -> List[Dict[str, Any]]:
        """Cached custom fields, or [] when they cannot be fetched"""
        if not force_refresh and self._is_fresh():
            return self._fields

        try:
            return self._fetch()
        except GHLConfigurationError:
            return []
        except GHLError as e:
            logger.error(f"❌ Error getting custom fields: {e}")
            return []

    def _fetch(self) -> List[Dict[str, Any]]:
        client = self.client_factory()
        fields = client.get_custom_fields()
        self._fields = fields
        self._fetched_at = self._clock()
        logger.info(f"✅ Cached {len(fields)} HighLevel custom fields")
        return fields

    def refresh(self) -> CustomFieldRefreshResult:
        """Force a refresh and describe the outcome for the admin screen"""
        try:
            fields = self._fetch()
        except GHLConfigurationError:
            return CustomFieldRefreshResult(success=False, message=MISSING_CONFIG_MESSAGE, configured=False)
        except GHLError as e:
            logger.error(f"❌ Custom field refresh failed: {e}")
            return CustomFieldRefreshResult(success=False, message=FETCH_FAILED_MESSAGE.format(error=e))

        if not fields:
            return CustomFieldRefreshResult(success=True, message=NO_FIELDS_MESSAGE)

        return CustomFieldRefreshResult(
            success=True,
            message=LOADED_MESSAGE.format(count=len(fields)),
            custom_count=len(fields),
            fields=fields,
        )

    def get_ghl_field_groups(self) -> Dict[str, Dict[str, str]]:
        return get_ghl_field_groups(self.get_custom_fields())
