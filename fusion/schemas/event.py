# fusion/schemas/event.py
"""Standardized events fed into the live device-state store."""

import uuid
from enum import Enum
from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class EventCategory(str, Enum):
    DEVICE_STATE = "DEVICE_STATE"
    DEVICE_CONNECTIVITY = "DEVICE_CONNECTIVITY"
    ANALYTICS = "ANALYTICS"
    UNKNOWN = "UNKNOWN"


class EventType(str, Enum):
    STATE_CHANGED = "STATE_CHANGED"
    BATTERY_LEVEL_CHANGED = "BATTERY_LEVEL_CHANGED"
    DOOR_HELD_OPEN = "DOOR_HELD_OPEN"
    DOOR_FORCED_OPEN = "DOOR_FORCED_OPEN"
    ACCESS_GRANTED = "ACCESS_GRANTED"
    ACCESS_DENIED = "ACCESS_DENIED"
    DEVICE_ONLINE = "DEVICE_ONLINE"
    DEVICE_OFFLINE = "DEVICE_OFFLINE"
    ANALYTICS_EVENT = "ANALYTICS_EVENT"
    PERSON_DETECTED = "PERSON_DETECTED"
    LOITERING = "LOITERING"
    LINE_CROSSING = "LINE_CROSSING"
    ARMED_PERSON = "ARMED_PERSON"
    TAILGATING = "TAILGATING"
    INTRUSION = "INTRUSION"
    UNKNOWN_EXTERNAL_EVENT = "UNKNOWN_EXTERNAL_EVENT"
    SYSTEM_NOTIFICATION = "SYSTEM_NOTIFICATION"


class DeviceInfoIn(BaseModel):
    type: str
    subtype: Optional[str] = None


class StandardizedEvent(BaseModel):
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime
    connector_id: str
    device_id: str
    device_info: Optional[DeviceInfoIn] = None
    event_category: Optional[EventCategory] = None
    event_type: EventType
    payload: dict[str, Any] = Field(default_factory=dict)
    raw_event_type: Optional[str] = None
    raw_event_payload: Optional[dict[str, Any]] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
