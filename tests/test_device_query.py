# tests/test_device_query.py
"""Tests for device enrichment and camera association counting."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fusion.models.camera_association import CameraAssociation
from fusion.services.device_query import (
    fetch_devices_with_details, fetch_device_by_external_id, get_association_count, count_devices,
)
from fusion.services.device_sync import upsert_device, DeviceRecord


@pytest.fixture
def site(db, make_connector):
    """A Genea door and a YoLink lock, both linked to the same Piko camera."""
    genea = make_connector("genea", "Office", config={"apiKey": "k", "customerUuid": "c"})
    yolink = make_connector("yolink", "Home", config={"uaid": "u", "clientSecret": "s"})
    piko = make_connector("piko", "NVR", config={"type": "local", "username": "a", "password": "b",
                                                 "host": "h", "port": 1})
    door = upsert_device(db, genea, DeviceRecord(device_id="door-1", name="Main door", raw_type="Door", status="Online"))
    lock = upsert_device(db, yolink, DeviceRecord(device_id="lock-1", name="Back lock", raw_type="Lock", status="Locked"))
    cam = upsert_device(db, piko, DeviceRecord(device_id="cam-1", name="Lobby cam", raw_type="Camera"))
    db.add_all([
        CameraAssociation(device_id=door.id, piko_camera_id=cam.id),
        CameraAssociation(device_id=lock.id, piko_camera_id=cam.id),
    ])
    db.commit()
    return {"door": door, "lock": lock, "cam": cam}


class TestAssociationCounts:
    @pytest.mark.asyncio
    async def test_counts_both_directions(self, db, site):
        devices = {d.device_id: d for d in await fetch_devices_with_details(db)}
        assert devices["door-1"].association_count == 1
        assert devices["lock-1"].association_count == 1
        assert devices["cam-1"].association_count == 2

    def test_single_device_path_matches(self, db, site):
        assert get_association_count(db, site["door"].id, "genea") == 1
        assert get_association_count(db, site["cam"].id, "piko") == 2

    @pytest.mark.asyncio
    async def test_self_link_counted_once(self, db, site):
        cam = site["cam"]
        db.add(CameraAssociation(device_id=cam.id, piko_camera_id=cam.id))
        db.commit()
        devices = {d.device_id: d for d in await fetch_devices_with_details(db)}
        assert devices["cam-1"].association_count == 3
        assert get_association_count(db, cam.id, "piko") == 3

    @pytest.mark.asyncio
    async def test_duplicate_rows_are_counted(self, db, site):
        db.add(CameraAssociation(device_id=site["door"].id, piko_camera_id=site["cam"].id))
        db.commit()
        devices = {d.device_id: d for d in await fetch_devices_with_details(db)}
        assert devices["door-1"].association_count == 2
        assert devices["cam-1"].association_count == 3

    @pytest.mark.asyncio
    async def test_unlinked_device_is_zero(self, db, make_connector):
        genea = make_connector("genea", "Solo", config={"apiKey": "k", "customerUuid": "c"})
        upsert_device(db, genea, DeviceRecord(device_id="d", name="Door", raw_type="Door"))
        devices = await fetch_devices_with_details(db)
        assert devices[0].association_count == 0


class TestEnrichment:
    @pytest.mark.asyncio
    async def test_enriched_fields(self, db, site):
        devices = {d.device_id: d for d in await fetch_devices_with_details(db)}
        lock = devices["lock-1"]
        assert lock.connector_name == "Home"
        assert lock.connector_category == "yolink"
        assert lock.device_type_info.type == "Lock"
        assert lock.display_state == "Locked"
        assert lock.is_security_device is True
        assert lock.piko_server_details is None

    @pytest.mark.asyncio
    async def test_empty_database(self, db):
        assert await fetch_devices_with_details(db) == []

    def test_single_lookup(self, db, site):
        device = fetch_device_by_external_id(db, "door-1")
        assert device.name == "Main door"
        assert device.association_count == 1
        assert fetch_device_by_external_id(db, "nope") is None

    def test_camel_case_dump(self, db, site):
        body = fetch_device_by_external_id(db, "cam-1").model_dump(by_alias=True, mode="json")
        assert body["deviceId"] == "cam-1"
        assert body["connectorCategory"] == "piko"
        assert body["deviceTypeInfo"] == {"type": "Camera", "subtype": None}
        assert body["associationCount"] == 2


class TestCount:
    def test_filters(self, db, site):
        assert count_devices(db) == 3
        assert count_devices(db, connector_category="genea") == 1
        assert count_devices(db, device_type="Lock") == 1
        assert count_devices(db, status="Online") == 1
        assert count_devices(db, connector_category="all", device_type="all") == 3
