# fusion/services/state_mapping.py
"""
State Canonicalizer: vendor raw state -> intermediate state -> display state.

Vendors disagree on vocabulary ("open"/"closed" for a YoLink outlet means
on/off, while a door sensor means contact open/closed) but converge on a
small set of intermediate enums. The display stage is vendor-agnostic and
only needs the device subtype for alert-style sensors.

Both stages return None for anything they don't recognise. Callers treat
None as "no state known" and must not overwrite a known state with it.
"""

from enum import Enum
from typing import Optional, Union
from fusion.services.device_mapping import (
    DeviceType, DeviceSubtype, TypedDeviceInfo, get_device_type_info,
)
from fusion.utils.logger import get_logger

logger = get_logger(__name__)


# ── Intermediate states ──────────────────────────────────────────────────────
class BinaryState(str, Enum):
    ON = "ON"
    OFF = "OFF"


class ContactState(str, Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class SensorAlertState(str, Enum):
    NORMAL = "NORMAL"
    ALERT = "ALERT"


class LockStatus(str, Enum):
    LOCKED = "LOCKED"
    UNLOCKED = "UNLOCKED"


class ErrorState(str, Enum):
    ERROR = "ERROR"


IntermediateState = Union[BinaryState, ContactState, SensorAlertState, LockStatus, ErrorState]


# ── Display strings ──────────────────────────────────────────────────────────
LOCKED = "Locked"
UNLOCKED = "Unlocked"
ON = "On"
OFF = "Off"
OPEN = "Open"
CLOSED = "Closed"
DRY = "Dry"
LEAK_DETECTED = "Leak Detected"
NO_MOTION = "No Motion"
MOTION_DETECTED = "Motion Detected"
NO_VIBRATION = "No Vibration"
VIBRATION_DETECTED = "Vibration Detected"
ONLINE = "Online"
OFFLINE = "Offline"
ERROR = "Error"


# ── Intermediate -> display ──────────────────────────────────────────────────
SIMPLE_DISPLAY_MAP = {
    BinaryState.ON: ON,
    BinaryState.OFF: OFF,
    LockStatus.LOCKED: LOCKED,
    LockStatus.UNLOCKED: UNLOCKED,
    ContactState.OPEN: OPEN,
    ContactState.CLOSED: CLOSED,
    ErrorState.ERROR: ERROR,
}

SENSOR_DISPLAY_MAP = {
    DeviceSubtype.LEAK: {
        SensorAlertState.NORMAL: DRY,
        SensorAlertState.ALERT: LEAK_DETECTED,
    },
    DeviceSubtype.MOTION: {
        SensorAlertState.NORMAL: NO_MOTION,
        SensorAlertState.ALERT: MOTION_DETECTED,
    },
    DeviceSubtype.VIBRATION: {
        SensorAlertState.NORMAL: NO_VIBRATION,
        SensorAlertState.ALERT: VIBRATION_DETECTED,
    },
}


# ── Raw -> intermediate ──────────────────────────────────────────────────────
# Used when no device context is available
GENERIC_RAW_STATE_MAP: dict[str, IntermediateState] = {
    "on": BinaryState.ON,
    "off": BinaryState.OFF,
    "open": ContactState.OPEN,
    "closed": ContactState.CLOSED,
    "locked": LockStatus.LOCKED,
    "unlocked": LockStatus.UNLOCKED,
    "normal": SensorAlertState.NORMAL,
    "alert": SensorAlertState.ALERT,
}

_SWITCHING_STATES = {
    # YoLink reports relay state as open (energised) / closed
    "open": BinaryState.ON,
    "closed": BinaryState.OFF,
    "on": BinaryState.ON,
    "off": BinaryState.OFF,
}
_CONTACT_STATES = {
    "open": ContactState.OPEN,
    "closed": ContactState.CLOSED,
}
_ALERT_STATES = {
    "normal": SensorAlertState.NORMAL,
    "alert": SensorAlertState.ALERT,
}
_LOCK_STATES = {
    "locked": LockStatus.LOCKED,
    "unlocked": LockStatus.UNLOCKED,
}

# Keyed by (type, subtype); subtype None matches any subtype of that type
DEVICE_RAW_STATE_MAP: dict[tuple, dict[str, IntermediateState]] = {
    (DeviceType.LOCK, None): _LOCK_STATES,
    (DeviceType.OUTLET, None): _SWITCHING_STATES,
    (DeviceType.SWITCH, None): _SWITCHING_STATES,
    (DeviceType.DOOR, None): _CONTACT_STATES,
    (DeviceType.SENSOR, DeviceSubtype.CONTACT): _CONTACT_STATES,
    (DeviceType.SENSOR, DeviceSubtype.LEAK): _ALERT_STATES,
    (DeviceType.SENSOR, DeviceSubtype.MOTION): _ALERT_STATES,
    (DeviceType.SENSOR, DeviceSubtype.VIBRATION): _ALERT_STATES,
}


def _raw_table_for(device_info: Optional[TypedDeviceInfo]) -> dict:
    if device_info is None:
        return GENERIC_RAW_STATE_MAP
    return (
        DEVICE_RAW_STATE_MAP.get((device_info.type, device_info.subtype))
        or DEVICE_RAW_STATE_MAP.get((device_info.type, None))
        or GENERIC_RAW_STATE_MAP
    )


def raw_to_intermediate(raw_state, device_info: Optional[TypedDeviceInfo] = None) -> Optional[IntermediateState]:
    """
    Translate a vendor raw token ("open", "on", "alert"...) into an intermediate
    state. With a device context the device-class table is used, so "open"
    means ON for an outlet and OPEN for a door sensor. Returns None on a miss.
    """
    if raw_state is None:
        return None
    if not isinstance(raw_state, str):
        logger.warning(f"[STATE] Ignoring non-string raw state {raw_state!r}")
        return None

    token = raw_state.strip().lower()
    if not token:
        return None
    if token == "error":
        return ErrorState.ERROR

    state = _raw_table_for(device_info).get(token)
    if state is None:
        context = f"{device_info.type.value}/{device_info.subtype.value if device_info.subtype else '-'}" \
            if device_info else "no context"
        logger.warning(f"[STATE] Unmapped raw state '{raw_state}' ({context})")
    return state


def intermediate_to_display(state: Optional[IntermediateState],
                            device_info: Optional[TypedDeviceInfo] = None) -> Optional[str]:
    """Translate an intermediate state into its display string. None in, None out."""
    if state is None:
        return None

    display = SIMPLE_DISPLAY_MAP.get(state)
    if display is not None:
        return display

    if isinstance(state, SensorAlertState):
        subtype = device_info.subtype if device_info else None
        sensor_map = SENSOR_DISPLAY_MAP.get(subtype)
        if sensor_map is not None:
            return sensor_map.get(state)
        logger.warning(f"[STATE] Sensor state {state.value} needs a Leak/Motion/Vibration subtype, got {subtype}")
        return None

    logger.warning(f"[STATE] No display mapping for intermediate state {state!r}")
    return None


def translate_device_state(category: Optional[str], raw_type: Optional[str], raw_state) -> Optional[str]:
    """Full pipeline: vendor category + type + raw token -> display state (or None)."""
    device_info = get_device_type_info(category, raw_type)
    return intermediate_to_display(raw_to_intermediate(raw_state, device_info), device_info)


def merge_display_state(previous: Optional[str], new: Optional[str]) -> Optional[str]:
    """Keep the previous display state unless a new one is actually known."""
    return previous if new is None else new
