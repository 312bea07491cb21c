# api/routes/field_mapping_routes.py

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request, Depends, Query
from pydantic import BaseModel

from api.services.custom_field_cache import CustomFieldCache
from api.services.field_targets import get_ghl_field_groups
from api.services.mapping_store import MappingStore, NOT_CONFIGURED

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/field-mapping", tags=["Field Mapping Admin"])


# Pydantic models for request validation
class MappingRowIn(BaseModel):
    source_field: Optional[str] = ""
    source_field_select: Optional[str] = ""
    source_field_manual: Optional[str] = ""
    target_field: Optional[str] = ""
    custom_key: Optional[str] = ""


class SaveMappingRequest(BaseModel):
    rows: List[MappingRowIn] = []


def get_mapping_store(request: Request) -> MappingStore:
    return request.app.state.mapping_store


def get_custom_field_cache(request: Request) -> CustomFieldCache:
    return request.app.state.custom_field_cache


def _describe_rows(rows) -> List[Dict[str, str]]:
    described = []
    for row in rows:
        item = row.to_dict()
        item["target_kind"] = row.target.kind.name.lower()
        described.append(item)
    return described


@router.get("/forms/{form_id}")
def get_form_mapping(form_id: str, request: Request, store: MappingStore = Depends(get_mapping_store)):
    """Rows for a form; unconfigured forms get rows suggested from the basic mapping"""
    mapping = store.get_mapping(form_id)
    if mapping is NOT_CONFIGURED:
        return {
            "form_id": form_id,
            "configured": False,
            "rows": store.suggest_rows_from_basic_mapping(request.app.state.basic_mapping),
        }

    return {
        "form_id": form_id,
        "configured": True,
        "rows": _describe_rows(mapping),
    }


@router.put("/forms/{form_id}")
def save_form_mapping(form_id: str, body: SaveMappingRequest,
                      store: MappingStore = Depends(get_mapping_store)):
    raw_rows = [row.model_dump() for row in body.rows]

    mapping = store.save_mapping(form_id, raw_rows)
    if mapping is NOT_CONFIGURED:
        return {"form_id": form_id, "configured": False, "rows": []}

    return {"form_id": form_id, "configured": True, "rows": _describe_rows(mapping)}


@router.delete("/forms/{form_id}")
def delete_form_mapping(form_id: str, store: MappingStore = Depends(get_mapping_store)):
    removed = store.delete_mapping(form_id)
    return {"form_id": form_id, "removed": removed, "configured": False}


@router.get("/ghl-fields")
def get_ghl_fields(cache: CustomFieldCache = Depends(get_custom_field_cache)):
    """HighLevel fields offered as mapping targets, grouped for the editor"""
    return {"groups": cache.get_ghl_field_groups()}


@router.post("/ghl-fields/refresh")
def refresh_ghl_fields(cache: CustomFieldCache = Depends(get_custom_field_cache)):
    result = cache.refresh()
    if not result.configured:
        raise HTTPException(status_code=400, detail=result.message)

    logger.info(f"🔄 Custom field refresh: {result.message}")
    return {
        "success": result.success,
        "message": result.message,
        "custom_count": result.custom_count,
        "groups": get_ghl_field_groups(result.fields),
    }


@router.get("/activity")
def get_recent_activity(request: Request, limit: int = Query(50, ge=1, le=500),
                        form_id: Optional[str] = None):
    return {"activity": request.app.state.db.get_recent_activity(limit=limit, form_id=form_id)}
