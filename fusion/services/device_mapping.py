# fusion/services/device_mapping.py
"""
Type Mapper: (connector category, raw vendor type) -> TypedDeviceInfo.

Lookup order:
  1. static table keyed by lower-cased category, then raw type
  2. category default (e.g. every Genea entity is a Door)
  3. global default: Unmapped

Never raises. Misses are logged as warnings so unknown hardware shows up
in the logs without breaking a sync.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from fusion.utils.logger import get_logger

logger = get_logger(__name__)


class DeviceType(str, Enum):
    ALARM = "Alarm"
    CAMERA = "Camera"
    DOOR = "Door"
    GARAGE_DOOR = "Garage Door"
    ENCODER = "Encoder"
    HUB = "Hub"
    IO_MODULE = "I/O Module"
    LOCK = "Lock"
    OUTLET = "Outlet"
    SENSOR = "Sensor"
    SPRINKLER = "Sprinkler"
    SWITCH = "Switch"
    THERMOSTAT = "Thermostat"
    UNMAPPED = "Unmapped"


class DeviceSubtype(str, Enum):
    # Alarm
    SIREN = "Siren"
    # Hub
    CELLULAR = "Cellular"
    GENERIC = "Generic"
    SPEAKER = "Speaker"
    # Outlet
    MULTI = "Multi"
    SINGLE = "Single"
    # Sensor
    CO_SMOKE = "CO & Smoke"
    CONTACT = "Contact"
    LEAK = "Leak"
    MOTION = "Motion"
    POWER_FAILURE = "Power Failure"
    VIBRATION = "Vibration"
    # Switch
    DIMMER = "Dimmer"
    TOGGLE = "Toggle"


@dataclass(frozen=True)
class TypedDeviceInfo:
    type: DeviceType
    subtype: Optional[DeviceSubtype] = None

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "subtype": self.subtype.value if self.subtype else None,
        }


UNMAPPED = TypedDeviceInfo(DeviceType.UNMAPPED)

# Types that count as security devices for dashboards and zone arming
SECURITY_DEVICE_TYPES = {
    DeviceType.SENSOR,
    DeviceType.CAMERA,
    DeviceType.DOOR,
    DeviceType.LOCK,
    DeviceType.ALARM,
}

_T = TypedDeviceInfo

DEVICE_TYPE_MAP: dict[str, dict[str, TypedDeviceInfo]] = {
    "yolink": {
        "COSmokeSensor":        _T(DeviceType.SENSOR, DeviceSubtype.CO_SMOKE),
        "CSDevice":             UNMAPPED,
        "CellularHub":          _T(DeviceType.HUB, DeviceSubtype.CELLULAR),
        "Dimmer":               _T(DeviceType.SWITCH, DeviceSubtype.DIMMER),
        "DoorSensor":           _T(DeviceType.SENSOR, DeviceSubtype.CONTACT),
        "Finger":               UNMAPPED,
        "GarageDoor":           _T(DeviceType.GARAGE_DOOR),
        "Hub":                  _T(DeviceType.HUB, DeviceSubtype.GENERIC),
        "IPCamera":             _T(DeviceType.CAMERA),
        "InfraredRemoter":      UNMAPPED,
        "LeakSensor":           _T(DeviceType.SENSOR, DeviceSubtype.LEAK),
        "Lock":                 _T(DeviceType.LOCK),
        "Manipulator":          UNMAPPED,
        "MotionSensor":         _T(DeviceType.SENSOR, DeviceSubtype.MOTION),
        "MultiOutlet":          _T(DeviceType.OUTLET, DeviceSubtype.MULTI),
        "Outlet":               _T(DeviceType.OUTLET, DeviceSubtype.SINGLE),
        "PowerFailureAlarm":    _T(DeviceType.SENSOR, DeviceSubtype.POWER_FAILURE),
        "Siren":                _T(DeviceType.ALARM, DeviceSubtype.SIREN),
        "SmartRemoter":         UNMAPPED,
        "SpeakerHub":           _T(DeviceType.HUB, DeviceSubtype.SPEAKER),
        "Sprinkler":            _T(DeviceType.SPRINKLER),
        "Switch":               _T(DeviceType.SWITCH, DeviceSubtype.TOGGLE),
        "THSensor":             UNMAPPED,
        "Thermostat":           _T(DeviceType.THERMOSTAT),
        "VibrationSensor":      _T(DeviceType.SENSOR, DeviceSubtype.VIBRATION),
        "WaterDepthSensor":     UNMAPPED,
        "WaterMeterController": UNMAPPED,
    },
    "piko": {
        "Camera":            _T(DeviceType.CAMERA),
        "Encoder":           _T(DeviceType.ENCODER),
        "IOModule":          _T(DeviceType.IO_MODULE),
        "HornSpeaker":       _T(DeviceType.ALARM, DeviceSubtype.SIREN),
        "MultisensorCamera": _T(DeviceType.CAMERA),
    },
    "genea": {
        "Door": _T(DeviceType.DOOR),
    },
}

# Applied when a known category reports a raw type missing from its table
CATEGORY_DEFAULTS: dict[str, TypedDeviceInfo] = {
    "genea": _T(DeviceType.DOOR),
}


def get_device_type_info(category: Optional[str], raw_type: Optional[str]) -> TypedDeviceInfo:
    """Map a connector category and vendor type identifier to a TypedDeviceInfo."""
    if not category or not raw_type:
        return UNMAPPED

    key = str(category).lower()
    table = DEVICE_TYPE_MAP.get(key)
    if table is None:
        logger.debug(f"[TYPE] No type table for category '{category}' — using Unmapped")
        return UNMAPPED

    info = table.get(str(raw_type))
    if info is not None:
        return info

    default = CATEGORY_DEFAULTS.get(key)
    if default is not None:
        return default

    logger.warning(f"[TYPE] Unknown {key} device type '{raw_type}' — using Unmapped")
    return UNMAPPED


def is_security_device(info: TypedDeviceInfo) -> bool:
    return info.type in SECURITY_DEVICE_TYPES
