# tests/test_device_mapping.py
"""Unit tests for the device type mapper."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fusion.services.device_mapping import (
    get_device_type_info, is_security_device,
    DeviceType, DeviceSubtype, TypedDeviceInfo, UNMAPPED, DEVICE_TYPE_MAP,
)


class TestKnownTypes:
    @pytest.mark.parametrize("raw_type,expected", [
        ("DoorSensor", TypedDeviceInfo(DeviceType.SENSOR, DeviceSubtype.CONTACT)),
        ("MultiOutlet", TypedDeviceInfo(DeviceType.OUTLET, DeviceSubtype.MULTI)),
        ("Outlet", TypedDeviceInfo(DeviceType.OUTLET, DeviceSubtype.SINGLE)),
        ("Switch", TypedDeviceInfo(DeviceType.SWITCH, DeviceSubtype.TOGGLE)),
        ("Lock", TypedDeviceInfo(DeviceType.LOCK)),
        ("GarageDoor", TypedDeviceInfo(DeviceType.GARAGE_DOOR)),
        ("COSmokeSensor", TypedDeviceInfo(DeviceType.SENSOR, DeviceSubtype.CO_SMOKE)),
    ])
    def test_yolink(self, raw_type, expected):
        assert get_device_type_info("yolink", raw_type) == expected

    def test_piko_horn_speaker_is_siren(self):
        assert get_device_type_info("piko", "HornSpeaker") == TypedDeviceInfo(DeviceType.ALARM, DeviceSubtype.SIREN)

    def test_category_is_case_insensitive(self):
        assert get_device_type_info("YoLink", "Lock").type == DeviceType.LOCK
        assert get_device_type_info("PIKO", "Camera").type == DeviceType.CAMERA

    def test_explicitly_unmapped_yolink_types(self):
        assert get_device_type_info("yolink", "THSensor") == UNMAPPED
        assert get_device_type_info("yolink", "Finger") == UNMAPPED


class TestFallbacks:
    def test_unknown_raw_type_in_known_category(self):
        assert get_device_type_info("yolink", "FluxCapacitor") == UNMAPPED

    def test_category_default_applies_for_genea(self):
        assert get_device_type_info("genea", "Reader") == TypedDeviceInfo(DeviceType.DOOR)

    def test_unknown_category(self):
        assert get_device_type_info("netbox", "Camera") == UNMAPPED

    @pytest.mark.parametrize("category,raw_type", [
        (None, None), ("", ""), ("yolink", None), (None, "Lock"), ("piko", ""),
    ])
    def test_empty_inputs_never_raise(self, category, raw_type):
        result = get_device_type_info(category, raw_type)
        assert isinstance(result, TypedDeviceInfo)
        assert result.type == DeviceType.UNMAPPED

    def test_every_table_entry_resolves(self):
        for category, table in DEVICE_TYPE_MAP.items():
            for raw_type in table:
                assert get_device_type_info(category, raw_type) is not None


class TestSecurityDevices:
    def test_security_types(self):
        assert is_security_device(get_device_type_info("genea", "Door"))
        assert is_security_device(get_device_type_info("yolink", "LeakSensor"))
        assert is_security_device(get_device_type_info("piko", "Camera"))

    def test_non_security_types(self):
        assert not is_security_device(get_device_type_info("yolink", "Outlet"))
        assert not is_security_device(UNMAPPED)

    def test_to_dict(self):
        info = get_device_type_info("yolink", "MotionSensor")
        assert info.to_dict() == {"type": "Sensor", "subtype": "Motion"}
        assert get_device_type_info("yolink", "Lock").to_dict() == {"type": "Lock", "subtype": None}
