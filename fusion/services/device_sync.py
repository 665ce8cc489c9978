# fusion/services/device_sync.py
"""
Device Sync Orchestrator.

For every connector (sequentially, in creation order):
  1. parse + validate the config blob        -> error entry on failure, next connector
  2. run the category sub-sync (YoLink / Piko / Genea)
  3. upsert each device on (connector_id, device_id); a failing device is
     rolled back and skipped, the rest continue
Afterwards the enriched device list is pushed into the live state store.

Only unexpected database failures escape; everything else ends up in
SyncResult.errors.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from fusion.models.connector import Connector
from fusion.models.device import Device
from fusion.models.piko_server import PikoServer
from fusion.schemas.connector_config import YoLinkConfig, PikoConfig, GeneaConfig
from fusion.schemas.device import DeviceWithConnector, SyncError
from fusion.services.connector_config import parse_connector_config, ConnectorConfigError
from fusion.services.device_mapping import get_device_type_info, is_security_device
from fusion.services.device_query import fetch_devices_with_details
from fusion.services.device_store import DeviceStateStore, device_store
from fusion.services.drivers.yolink import (
    YoLinkClient, YoLinkDevice, YoLinkDeviceState, STATEFUL_TYPES, get_raw_state_string,
)
from fusion.services.drivers.piko import PikoClient, PikoServerInfo
from fusion.services.drivers.genea import get_doors
from fusion.services.state_mapping import (
    translate_device_state, ONLINE, OFFLINE,
)
from fusion.utils.json_parser import dump_json
from fusion.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class DeviceRecord:
    """One vendor device, already flattened for the devices table."""
    device_id: str
    name: str
    raw_type: str
    status: Optional[str] = None
    model: Optional[str] = None
    vendor: Optional[str] = None
    url: Optional[str] = None
    server_id: Optional[str] = None
    raw_data: Optional[dict] = None


@dataclass
class SyncResult:
    synced_count: int = 0
    errors: list[SyncError] = field(default_factory=list)
    devices: list[DeviceWithConnector] = field(default_factory=list)


# ── Persistence ───────────────────────────────────────────────────────────────
def upsert_device(db: Session, connector: Connector, record: DeviceRecord) -> Device:
    """Insert or update on (connector_id, device_id). A None status keeps the stored one."""
    type_info = get_device_type_info(connector.category, record.raw_type)
    device = (
        db.query(Device)
        .filter(Device.connector_id == connector.id, Device.device_id == record.device_id)
        .first()
    )
    now = datetime.utcnow()
    if device is None:
        device = Device(
            connector_id=connector.id,
            device_id=record.device_id,
            created_at=now,
        )
        db.add(device)

    device.name = record.name
    device.type = record.raw_type
    device.model = record.model
    device.vendor = record.vendor
    device.url = record.url
    device.server_id = record.server_id
    device.standardized_device_type = type_info.type.value
    device.standardized_device_subtype = type_info.subtype.value if type_info.subtype else None
    device.is_security_device = is_security_device(type_info)
    device.raw_device_data = dump_json(record.raw_data)
    if record.status is not None:
        device.status = record.status
    device.updated_at = now

    db.commit()
    return device


def _store_device(db: Session, connector: Connector, record: DeviceRecord) -> bool:
    try:
        upsert_device(db, connector, record)
        return True
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[SYNC] Failed to upsert device {record.device_id} for '{connector.name}': {e}")
        return False


def upsert_piko_server(db: Session, connector_id: str, server: PikoServerInfo) -> PikoServer:
    row = db.query(PikoServer).filter(PikoServer.server_id == server.id).first()
    now = datetime.utcnow()
    if row is None:
        row = PikoServer(server_id=server.id, created_at=now)
        db.add(row)
    row.connector_id = connector_id
    row.name = server.name
    row.status = server.status
    row.version = server.version
    row.os_platform = server.os_platform
    row.os_variant_version = server.os_variant_version
    row.url = server.url
    row.updated_at = now
    db.commit()
    return row


def _piko_server_exists(db: Session, server_id: str) -> bool:
    # Servers from earlier runs stay valid even when this run's listing skipped them
    return db.query(PikoServer.server_id).filter(PikoServer.server_id == server_id).first() is not None


def _persist_connector_config(db: Session, connector: Connector, config) -> None:
    try:
        connector.cfg_enc = json.dumps(config.to_blob())
        db.commit()
        logger.info(f"[SYNC] Saved refreshed credentials for '{connector.name}'")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"[SYNC] Could not save refreshed credentials for '{connector.name}': {e}")


# ── YoLink ────────────────────────────────────────────────────────────────────
def yolink_display_state(raw_type: str, state: YoLinkDeviceState) -> Optional[str]:
    """Offline wins; otherwise map the raw token; bare online-ness becomes Online."""
    if state.online is False:
        return OFFLINE
    raw_state = get_raw_state_string(get_device_type_info("yolink", raw_type), state)
    if raw_state:
        return translate_device_state("yolink", raw_type, raw_state)
    if state.online is True:
        return ONLINE
    logger.warning(f"[YOLINK] Could not determine state from response: {state.raw!r}")
    return None


async def _fetch_yolink_status(client: YoLinkClient, device: YoLinkDevice) -> Optional[str]:
    try:
        state = await client.get_device_state(device)
    except Exception as e:
        logger.warning(f"[YOLINK] State fetch failed for {device.type} {device.device_id}: {e} — status left unchanged")
        return None
    status = yolink_display_state(device.type, state)
    logger.debug(f"[YOLINK] {device.device_id} ({device.type}) -> {status}")
    return status


async def sync_yolink(db: Session, connector: Connector, config: YoLinkConfig,
                      client: Optional[YoLinkClient] = None) -> int:
    client = client or YoLinkClient(config)
    processed = 0
    async with client:
        try:
            devices = await client.get_device_list()
            logger.info(f"[YOLINK] '{connector.name}': {len(devices)} devices")
            for device in devices:
                status = None
                if device.type in STATEFUL_TYPES and device.token:
                    status = await _fetch_yolink_status(client, device)
                record = DeviceRecord(
                    device_id=device.device_id,
                    name=device.name,
                    raw_type=device.type,
                    status=status,
                    model=device.model_name,
                    vendor="YoLink",
                    raw_data=device.raw,
                )
                if _store_device(db, connector, record):
                    processed += 1
        finally:
            if client.config_changed:
                _persist_connector_config(db, connector, client.config)
    return processed


# ── Piko ──────────────────────────────────────────────────────────────────────
async def sync_piko(db: Session, connector: Connector, config: PikoConfig,
                    client: Optional[PikoClient] = None) -> int:
    client = client or PikoClient(config)
    processed = 0
    async with client:
        known_servers: set[str] = set()
        if client.is_cloud:
            servers = await client.get_system_servers()
            for server in servers:
                try:
                    upsert_piko_server(db, connector.id, server)
                    known_servers.add(server.id)
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.error(f"[PIKO] Failed to upsert server {server.id}: {e}")
            logger.info(f"[PIKO] '{connector.name}': {len(known_servers)}/{len(servers)} servers synced")
        else:
            logger.info(f"[PIKO] '{connector.name}' is a local connection — skipping server sync")

        devices = await client.get_system_devices()
        logger.info(f"[PIKO] '{connector.name}': {len(devices)} devices")
        for device in devices:
            server_id = None
            if client.is_cloud and device.server_id:
                if device.server_id in known_servers or _piko_server_exists(db, device.server_id):
                    server_id = device.server_id
                    known_servers.add(server_id)
                else:
                    logger.warning(f"[PIKO] Device {device.id} references unknown server {device.server_id}")
            record = DeviceRecord(
                device_id=device.id,
                name=device.name,
                raw_type=device.device_type or "Camera",
                status=device.status,
                model=device.model,
                vendor=device.vendor or "Piko",
                url=device.url,
                server_id=server_id,
                raw_data=device.raw,
            )
            if _store_device(db, connector, record):
                processed += 1
    return processed


# ── Genea ─────────────────────────────────────────────────────────────────────
def genea_status(is_online: Optional[bool]) -> Optional[str]:
    if is_online is True:
        return ONLINE
    if is_online is False:
        return OFFLINE
    return None


async def sync_genea(db: Session, connector: Connector, config: GeneaConfig) -> int:
    doors = await get_doors(config)
    logger.info(f"[GENEA] '{connector.name}': {len(doors)} doors")
    processed = 0
    for door in doors:
        record = DeviceRecord(
            device_id=door.uuid,
            name=door.name,
            raw_type="Door",
            status=genea_status(door.is_online),
            model=door.reader_model,
            vendor="Genea",
            server_id=None,
            raw_data=door.raw,
        )
        if _store_device(db, connector, record):
            processed += 1
    return processed


_SYNC_HANDLERS = {
    "yolink": sync_yolink,
    "piko": sync_piko,
    "genea": sync_genea,
}


# ── Orchestrator ──────────────────────────────────────────────────────────────
async def sync_all_connectors(db: Session, store: Optional[DeviceStateStore] = None) -> SyncResult:
    store = store or device_store
    result = SyncResult()
    connectors = db.query(Connector).order_by(Connector.created_at, Connector.id).all()
    logger.info(f"[SYNC] Starting sync for {len(connectors)} connectors")

    for connector in connectors:
        name, category = connector.name, (connector.category or "").lower()

        try:
            config = parse_connector_config(category, connector.cfg_enc)
        except ConnectorConfigError as e:
            logger.warning(f"[SYNC] '{name}': {e}")
            result.errors.append(SyncError(connector_name=name, error=str(e)))
            continue

        handler = _SYNC_HANDLERS.get(category)
        if handler is None:
            logger.warning(f"[SYNC] '{name}': no device sync for category '{category}' — skipped")
            continue

        try:
            count = await handler(db, connector, config)
        except SQLAlchemyError:
            raise
        except Exception as e:
            logger.error(f"[SYNC] '{name}' ({category}) failed: {e}", exc_info=True)
            result.errors.append(SyncError(connector_name=name, error=str(e) or type(e).__name__))
            continue

        result.synced_count += count
        logger.info(f"[SYNC] '{name}' ({category}): {count} devices processed")

    store.set_connectors(connectors)
    result.devices = await fetch_devices_with_details(db)
    store.set_device_states_from_sync(result.devices)

    logger.info(f"[SYNC] Done — {result.synced_count} devices synced, {len(result.errors)} connector errors")
    return result
