# fusion/routers/devices.py
"""
Device list + sync endpoints.

GET  /devices                 → every device, enriched
GET  /devices?deviceId=<id>   → one device (404 if unknown)
GET  /devices?count=true      → count, filterable by connectorCategory / deviceType / status
POST /devices                 → run a full connector sync, return the refreshed list
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from fusion.database import get_db
from fusion.services.device_query import (
    fetch_devices_with_details, fetch_device_by_external_id, count_devices,
)
from fusion.services.device_sync import sync_all_connectors
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


def _dump(model) -> dict:
    return model.model_dump(by_alias=True, mode="json")


@router.get("/devices", summary="List devices, fetch one, or count")
async def get_devices(
    device_id: Optional[str] = Query(None, alias="deviceId"),
    count: bool = Query(False),
    connector_category: Optional[str] = Query(None, alias="connectorCategory"),
    device_type: Optional[str] = Query(None, alias="deviceType"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    if count:
        return {
            "success": True,
            "count": count_devices(db, connector_category, device_type, status),
            "filters": {
                "connectorCategory": connector_category,
                "deviceType": device_type,
                "status": status,
            },
        }

    if device_id:
        device = fetch_device_by_external_id(db, device_id)
        if device is None:
            return JSONResponse(status_code=404, content={"success": False, "error": "Device not found"})
        return {"success": True, "data": _dump(device)}

    devices = await fetch_devices_with_details(db)
    return {"success": True, "data": [_dump(d) for d in devices]}


@router.post("/devices", summary="Sync devices from every connector")
async def sync_devices(db: Session = Depends(get_db)):
    """
    Partial failures still return 200: per-connector problems are listed in
    `errors` and the remaining connectors are synced anyway.
    """
    result = await sync_all_connectors(db)
    body = {
        "success": True,
        "data": [_dump(d) for d in result.devices],
        "syncedCount": result.synced_count,
    }
    if result.errors:
        body["errors"] = [_dump(e) for e in result.errors]
    return body
