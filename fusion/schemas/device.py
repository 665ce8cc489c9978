# fusion/schemas/device.py
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class _CamelModel(BaseModel):
    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True


class DeviceTypeInfoOut(_CamelModel):
    type: str
    subtype: Optional[str] = None


class PikoServerOut(_CamelModel):
    server_id: str
    connector_id: str
    name: str
    status: Optional[str] = None
    version: Optional[str] = None
    os_platform: Optional[str] = None
    os_variant_version: Optional[str] = None
    url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeviceWithConnector(_CamelModel):
    id: str
    device_id: str
    connector_id: str
    name: str
    type: str
    status: Optional[str] = None
    model: Optional[str] = None
    vendor: Optional[str] = None
    url: Optional[str] = None
    server_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    connector_name: str = "Unknown"
    connector_category: str = "Unknown"
    server_name: Optional[str] = None
    piko_server_details: Optional[PikoServerOut] = None
    association_count: Optional[int] = None
    is_security_device: bool = False
    device_type_info: DeviceTypeInfoOut
    display_state: Optional[str] = None


class SyncError(_CamelModel):
    connector_name: str
    error: str


class DeviceStateOut(_CamelModel):
    connector_id: str
    device_id: str
    device_info: DeviceTypeInfoOut
    display_state: Optional[str] = None
    last_seen: Optional[datetime] = None
    name: Optional[str] = None
    model: Optional[str] = None
    vendor: Optional[str] = None
    url: Optional[str] = None
    raw_type: Optional[str] = None
    server_id: Optional[str] = None
    server_name: Optional[str] = None
    last_state_event_id: Optional[str] = None
    last_status_event_id: Optional[str] = None
