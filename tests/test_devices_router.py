# tests/test_devices_router.py
"""API tests for /api/devices, /api/connectors and /api/events."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import AsyncMock, patch
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from fusion.main import app
from fusion.database import get_db
from fusion.models.device import Device
from fusion.services.device_store import DeviceStateStore
from fusion.services.device_sync import upsert_device, DeviceRecord
from fusion.services.drivers.genea import GeneaDoor

GENEA_CFG = {"apiKey": "k", "customerUuid": "c"}


@pytest.fixture
def store():
    fresh = DeviceStateStore()
    with patch("fusion.services.device_sync.device_store", fresh), \
         patch("fusion.routers.events.device_store", fresh), \
         patch("fusion.routers.connectors.device_store", fresh), \
         patch("fusion.routers.health.device_store", fresh):
        yield fresh


@pytest.fixture
def client(db_engine, store):
    Session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


class TestGetDevices:
    def test_empty_list(self, client):
        resp = client.get("/api/devices")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": []}

    def test_single_device_not_found(self, client):
        resp = client.get("/api/devices", params={"deviceId": "missing"})
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Device not found"}

    def test_single_device(self, client, db, make_connector):
        connector = make_connector("genea", "Office", config=GENEA_CFG)
        upsert_device(db, connector, DeviceRecord(device_id="g1", name="Main", raw_type="Door", status="Online"))
        body = client.get("/api/devices", params={"deviceId": "g1"}).json()
        assert body["success"] is True
        assert body["data"]["deviceId"] == "g1"
        assert body["data"]["displayState"] == "Online"
        assert body["data"]["deviceTypeInfo"]["type"] == "Door"

    def test_count(self, client, db, make_connector):
        connector = make_connector("genea", "Office", config=GENEA_CFG)
        upsert_device(db, connector, DeviceRecord(device_id="g1", name="Main", raw_type="Door", status="Online"))
        upsert_device(db, connector, DeviceRecord(device_id="g2", name="Back", raw_type="Door", status="Offline"))
        body = client.get("/api/devices", params={"count": "true", "status": "Offline"}).json()
        assert body["count"] == 1
        assert body["filters"]["status"] == "Offline"


class TestSync:
    def test_post_runs_sync(self, client, make_connector):
        make_connector("genea", "Office", config=GENEA_CFG)
        make_connector("yolink", "Broken", cfg_enc="not json")

        with patch("fusion.services.device_sync.get_doors", new_callable=AsyncMock,
                   return_value=[GeneaDoor(uuid="g1", name="Main", is_online=True)]):
            resp = client.post("/api/devices")

        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["syncedCount"] == 1
        assert body["errors"] == [{"connectorName": "Broken", "error": "Failed to parse connector configuration."}]
        assert body["data"][0]["status"] == "Online"

    def test_clean_sync_omits_errors(self, client):
        body = client.post("/api/devices").json()
        assert body == {"success": True, "data": [], "syncedCount": 0}

    def test_unexpected_failure_is_500(self, client):
        with patch("fusion.routers.devices.sync_all_connectors",
                   new_callable=AsyncMock, side_effect=RuntimeError("db down")):
            resp = client.post("/api/devices")
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Internal server error"}


class TestConnectors:
    def test_create_rejects_incomplete_config(self, client):
        resp = client.post("/api/connectors", json={"category": "yolink", "name": "Home", "config": {"uaid": "u"}})
        assert resp.status_code == 400
        assert "clientSecret" in resp.json()["error"]

    def test_create_and_delete_cascades(self, client, db, store):
        created = client.post("/api/connectors", json={"category": "genea", "name": "Office", "config": GENEA_CFG})
        assert created.status_code == 200
        connector_id = created.json()["data"]["id"]

        with patch("fusion.services.device_sync.get_doors", new_callable=AsyncMock,
                   return_value=[GeneaDoor(uuid="g1", name="Main", is_online=True)]):
            client.post("/api/devices")
        assert store.get_device_state(connector_id, "g1") is not None

        resp = client.delete(f"/api/connectors/{connector_id}")
        assert resp.status_code == 200
        db.expire_all()
        assert db.query(Device).count() == 0
        assert store.get_device_state(connector_id, "g1") is None

    def test_delete_unknown(self, client):
        assert client.delete("/api/connectors/nope").status_code == 404


class TestEvents:
    def test_event_updates_store_and_row(self, client, db, make_connector, store):
        connector = make_connector("yolink", "Home", config={"uaid": "u", "clientSecret": "s"})
        upsert_device(db, connector, DeviceRecord(device_id="d1", name="Front", raw_type="DoorSensor", status="Closed"))
        connector_id = connector.id

        resp = client.post("/api/events", json={
            "timestamp": "2026-03-01T12:00:00Z",
            "connectorId": connector_id,
            "deviceId": "d1",
            "eventCategory": "DEVICE_STATE",
            "eventType": "STATE_CHANGED",
            "payload": {"displayState": "Open"},
        })
        assert resp.status_code == 200
        assert resp.json()["data"]["displayState"] == "Open"
        assert store.get_device_state(connector_id, "d1").display_state == "Open"

        db.expire_all()
        assert db.query(Device).one().status == "Open"

        states = client.get("/api/device-states").json()["data"]
        assert states[0]["deviceId"] == "d1"


class TestHealth:
    def test_health_without_vendor_probe(self, client):
        body = client.get("/api/health", params={"vendors": "false"}).json()
        assert body["status"] == "ok"
        assert body["database"] == "ok"
        assert body["store"] == {"connectors": 0, "devices": 0}
        assert body["vendors"] == {}
