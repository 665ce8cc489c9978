# fusion/routers/events.py
"""
Live event ingestion + in-memory device state viewer.
POST /events        — merge one standardized event into the device state store.
GET  /device-states — current in-memory state for every known device.
"""

from datetime import datetime
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from fusion.database import get_db
from fusion.models.device import Device
from fusion.schemas.device import DeviceStateOut, DeviceTypeInfoOut
from fusion.schemas.event import StandardizedEvent
from fusion.services.device_store import device_store, DeviceStateInfo
from fusion.utils.logger import get_logger

router = APIRouter()
logger = get_logger(__name__)


def _state_out(info: DeviceStateInfo) -> dict:
    return DeviceStateOut(
        connector_id=info.connector_id,
        device_id=info.device_id,
        device_info=DeviceTypeInfoOut(**info.device_info.to_dict()),
        display_state=info.display_state,
        last_seen=info.last_seen,
        name=info.name,
        model=info.model,
        vendor=info.vendor,
        url=info.url,
        raw_type=info.raw_type,
        server_id=info.server_id,
        server_name=info.server_name,
        last_state_event_id=info.last_state_event.event_id if info.last_state_event else None,
        last_status_event_id=info.last_status_event.event_id if info.last_status_event else None,
    ).model_dump(by_alias=True, mode="json")


@router.post("/events", summary="Ingest a standardized device event")
def receive_event(event: StandardizedEvent, db: Session = Depends(get_db)):
    """
    Updates the in-memory state, then mirrors a carried displayState onto the
    device row so the next sync snapshot starts from it.
    """
    logger.info(
        f"Event {event.event_type.value} | connector={event.connector_id} device={event.device_id}"
    )
    device_store.process_event(event)

    display_state = (event.payload or {}).get("displayState")
    if display_state is not None:
        device = (
            db.query(Device)
            .filter(Device.connector_id == event.connector_id, Device.device_id == event.device_id)
            .first()
        )
        if device:
            device.status = str(display_state)
            device.updated_at = datetime.utcnow()
            db.commit()

    state = device_store.get_device_state(event.connector_id, event.device_id)
    return {"success": True, "data": _state_out(state)}


@router.get("/device-states", summary="In-memory device states")
def list_device_states(connector_id: Optional[str] = Query(None, alias="connectorId")):
    states = device_store.get().device_states.values()
    if connector_id:
        states = [s for s in states if s.connector_id == connector_id]
    return {"success": True, "data": [_state_out(s) for s in states]}
