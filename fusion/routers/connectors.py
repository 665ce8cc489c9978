# fusion/routers/connectors.py
"""Connector management — list, create, delete (delete cascades devices)."""

import json
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from fusion.database import get_db
from fusion.models.connector import Connector
from fusion.schemas.connector import ConnectorCreate, ConnectorOut
from fusion.services.connector_config import parse_connector_config, ConnectorConfigError
from fusion.services.device_store import device_store
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

SUPPORTED_CATEGORIES = {"yolink", "piko", "genea"}


@router.get("/connectors", summary="List connectors")
def list_connectors(db: Session = Depends(get_db)):
    connectors = db.query(Connector).order_by(Connector.created_at).all()
    return {
        "success": True,
        "data": [ConnectorOut.model_validate(c).model_dump(by_alias=True, mode="json") for c in connectors],
    }


@router.post("/connectors", summary="Create a connector")
def create_connector(body: ConnectorCreate, db: Session = Depends(get_db)):
    category = body.category.lower()
    if category not in SUPPORTED_CATEGORIES:
        return JSONResponse(status_code=400, content={"success": False, "error": f"Unsupported category '{body.category}'"})
    try:
        parse_connector_config(category, body.config)
    except ConnectorConfigError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})

    connector = Connector(
        category=category,
        name=body.name,
        cfg_enc=json.dumps(body.config),
        events_enabled=body.events_enabled,
    )
    db.add(connector)
    db.commit()
    db.refresh(connector)
    logger.info(f"[CONNECTOR] Created '{connector.name}' ({category})")

    device_store.set_connectors(db.query(Connector).all())
    return {"success": True, "data": ConnectorOut.model_validate(connector).model_dump(by_alias=True, mode="json")}


@router.delete("/connectors/{connector_id}", summary="Delete a connector and its devices")
def delete_connector(connector_id: str, db: Session = Depends(get_db)):
    connector = db.query(Connector).filter(Connector.id == connector_id).first()
    if not connector:
        return JSONResponse(status_code=404, content={"success": False, "error": "Connector not found"})

    name = connector.name
    db.delete(connector)
    db.commit()
    device_store.delete_connector(connector_id)
    logger.info(f"[CONNECTOR] Deleted '{name}' ({connector_id})")
    return {"success": True, "data": {"id": connector_id}}
