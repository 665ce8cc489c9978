# fusion/services/device_query.py
"""
Read side for devices: enrich rows with connector info, Piko server details,
standardized type info and camera association counts.

The full-list path runs its independent read queries concurrently, each in
its own session on a worker thread, and sums association counts from both
directions per device id.
"""

import asyncio
from collections import Counter
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session
from fusion.models.camera_association import CameraAssociation
from fusion.models.connector import Connector
from fusion.models.device import Device
from fusion.models.piko_server import PikoServer
from fusion.schemas.device import DeviceWithConnector, DeviceTypeInfoOut, PikoServerOut
from fusion.services.device_mapping import get_device_type_info, is_security_device
from fusion.utils.logger import get_logger

logger = get_logger(__name__)


def _counts_as_camera(bind) -> Counter:
    """Links where the device is the Piko camera side."""
    with Session(bind=bind) as session:
        rows = (
            session.query(CameraAssociation.piko_camera_id, func.count(CameraAssociation.id))
            .group_by(CameraAssociation.piko_camera_id)
            .all()
        )
    return Counter({device_pk: count for device_pk, count in rows})


def _counts_as_source(bind) -> Counter:
    """Links where the device is the non-camera side. Self-links are already counted as camera."""
    with Session(bind=bind) as session:
        rows = (
            session.query(CameraAssociation.device_id, func.count(CameraAssociation.id))
            .filter(CameraAssociation.device_id != CameraAssociation.piko_camera_id)
            .group_by(CameraAssociation.device_id)
            .all()
        )
    return Counter({device_pk: count for device_pk, count in rows})


def _piko_servers(bind, server_ids: set) -> dict:
    if not server_ids:
        return {}
    with Session(bind=bind) as session:
        servers = session.query(PikoServer).filter(PikoServer.server_id.in_(server_ids)).all()
        return {s.server_id: PikoServerOut.model_validate(s) for s in servers}


def build_device_with_connector(device: Device, connector: Optional[Connector],
                                server: Optional[PikoServerOut], association_count: Optional[int]) -> DeviceWithConnector:
    category = connector.category if connector else None
    type_info = get_device_type_info(category, device.type)
    return DeviceWithConnector(
        id=device.id,
        device_id=device.device_id,
        connector_id=device.connector_id,
        name=device.name,
        type=device.type,
        status=device.status,
        model=device.model,
        vendor=device.vendor,
        url=device.url,
        server_id=device.server_id,
        created_at=device.created_at,
        updated_at=device.updated_at,
        connector_name=connector.name if connector else "Unknown",
        connector_category=category or "Unknown",
        server_name=server.name if server else None,
        piko_server_details=server,
        association_count=association_count,
        is_security_device=is_security_device(type_info),
        device_type_info=DeviceTypeInfoOut(**type_info.to_dict()),
        display_state=device.status,
    )


async def fetch_devices_with_details(db: Session) -> list[DeviceWithConnector]:
    """Every device, enriched. Three independent reads run concurrently."""
    rows = (
        db.query(Device, Connector)
        .outerjoin(Connector, Device.connector_id == Connector.id)
        .order_by(Device.name)
        .all()
    )
    if not rows:
        return []

    bind = db.get_bind()
    server_ids = {device.server_id for device, _ in rows if device.server_id}
    as_camera, as_source, servers = await asyncio.gather(
        asyncio.to_thread(_counts_as_camera, bind),
        asyncio.to_thread(_counts_as_source, bind),
        asyncio.to_thread(_piko_servers, bind, server_ids),
    )
    counts = as_camera + as_source

    return [
        build_device_with_connector(
            device, connector, servers.get(device.server_id), counts.get(device.id, 0)
        )
        for device, connector in rows
    ]


def get_association_count(db: Session, device_pk: str, category: Optional[str]) -> int:
    """Single-device count: cameras count links pointing at them, everything else counts its own links."""
    query = db.query(func.count(CameraAssociation.id))
    if (category or "").lower() == "piko":
        query = query.filter(CameraAssociation.piko_camera_id == device_pk)
    else:
        query = query.filter(CameraAssociation.device_id == device_pk)
    return query.scalar() or 0


def fetch_device_by_external_id(db: Session, device_id: str) -> Optional[DeviceWithConnector]:
    row = (
        db.query(Device, Connector)
        .outerjoin(Connector, Device.connector_id == Connector.id)
        .filter(Device.device_id == device_id)
        .first()
    )
    if row is None:
        return None

    device, connector = row
    server = None
    if device.server_id:
        server_row = db.query(PikoServer).filter(PikoServer.server_id == device.server_id).first()
        server = PikoServerOut.model_validate(server_row) if server_row else None

    count = get_association_count(db, device.id, connector.category if connector else None)
    return build_device_with_connector(device, connector, server, count)


def count_devices(db: Session, connector_category: Optional[str] = None,
                  device_type: Optional[str] = None, status: Optional[str] = None) -> int:
    """Device count with optional filters. "all" or empty means no filter."""
    query = db.query(func.count(Device.id)).join(Connector, Device.connector_id == Connector.id)
    if connector_category and connector_category != "all":
        query = query.filter(Connector.category == connector_category.lower())
    if device_type and device_type != "all":
        query = query.filter(Device.standardized_device_type == device_type)
    if status and status != "all":
        query = query.filter(Device.status == status)
    return query.scalar() or 0
