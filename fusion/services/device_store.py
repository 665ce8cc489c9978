# fusion/services/device_store.py
"""
Live Event Processor — in-memory device state container.

State is an immutable snapshot (StoreState). Every mutation runs a pure
reducer that builds a new snapshot, then swaps it in and notifies
subscribers. Readers just call get() and never see a half-applied update.

Keys are "<connector_id>:<device_id>", one entry per device.
"""

import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional
from fusion.schemas.device import DeviceWithConnector
from fusion.schemas.event import StandardizedEvent, EventType, EventCategory
from fusion.services.device_mapping import (
    DeviceType, DeviceSubtype, TypedDeviceInfo, UNMAPPED, get_device_type_info,
)
from fusion.services.state_mapping import merge_display_state
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

_STATUS_EVENT_TYPES = {EventType.DEVICE_ONLINE, EventType.DEVICE_OFFLINE}


@dataclass(frozen=True)
class ConnectorInfo:
    id: str
    category: str
    name: str


@dataclass(frozen=True)
class DeviceStateInfo:
    connector_id: str
    device_id: str
    device_info: TypedDeviceInfo = UNMAPPED
    display_state: Optional[str] = None
    last_state_event: Optional[StandardizedEvent] = None
    last_status_event: Optional[StandardizedEvent] = None
    last_seen: Optional[datetime] = None
    name: Optional[str] = None
    model: Optional[str] = None
    vendor: Optional[str] = None
    url: Optional[str] = None
    raw_type: Optional[str] = None
    server_id: Optional[str] = None
    server_name: Optional[str] = None
    piko_server_details: Optional[dict] = None


@dataclass(frozen=True)
class StoreState:
    connectors: tuple = ()
    device_states: Mapping[str, DeviceStateInfo] = field(default_factory=lambda: MappingProxyType({}))

    def connector_category(self, connector_id: str) -> Optional[str]:
        for connector in self.connectors:
            if connector.id == connector_id:
                return connector.category
        return None


def device_key(connector_id: str, device_id: str) -> str:
    return f"{connector_id}:{device_id}"


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Event timestamps may carry a timezone; DB timestamps are naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def typed_info_from_values(type_value: Optional[str], subtype_value: Optional[str]) -> TypedDeviceInfo:
    """Rebuild a TypedDeviceInfo from its string form; unknown values fall back to Unmapped."""
    try:
        device_type = DeviceType(type_value)
    except ValueError:
        return UNMAPPED
    try:
        subtype = DeviceSubtype(subtype_value) if subtype_value else None
    except ValueError:
        subtype = None
    return TypedDeviceInfo(device_type, subtype)


# ── Reducers ──────────────────────────────────────────────────────────────────
def apply_event(state: StoreState, event: StandardizedEvent) -> StoreState:
    """Merge one standardized event into the device's entry."""
    key = device_key(event.connector_id, event.device_id)
    existing = state.device_states.get(key) or DeviceStateInfo(
        connector_id=event.connector_id, device_id=event.device_id,
    )

    # Events don't repeat the device's static type, so map from what we already know
    if existing.raw_type:
        category = state.connector_category(event.connector_id)
        device_info = get_device_type_info(category, existing.raw_type)
    elif event.device_info is not None:
        device_info = typed_info_from_values(event.device_info.type, event.device_info.subtype)
    else:
        device_info = existing.device_info

    payload = event.payload or {}
    display_state = merge_display_state(existing.display_state, payload.get("displayState"))

    last_state_event = existing.last_state_event
    if event.event_type == EventType.STATE_CHANGED:
        last_state_event = event

    last_status_event = existing.last_status_event
    if event.event_type in _STATUS_EVENT_TYPES and event.event_category in (None, EventCategory.DEVICE_CONNECTIVITY):
        last_status_event = event

    raw_type = existing.raw_type
    if event.event_type == EventType.UNKNOWN_EXTERNAL_EVENT and payload.get("originalEventType"):
        raw_type = str(payload["originalEventType"])

    updated = replace(
        existing,
        device_info=device_info,
        display_state=display_state,
        last_state_event=last_state_event,
        last_status_event=last_status_event,
        last_seen=event.timestamp,
        raw_type=raw_type,
    )

    device_states = dict(state.device_states)
    device_states[key] = updated
    return replace(state, device_states=MappingProxyType(device_states))


def _merge_synced_display_state(prior: Optional[DeviceStateInfo], device: DeviceWithConnector) -> Optional[str]:
    synced = device.display_state
    if prior is None or synced is None:
        return merge_display_state(prior.display_state if prior else None, synced)
    # A live state change newer than the row wins over the row
    if prior.last_state_event is not None and prior.display_state is not None and device.updated_at is not None:
        event_time = to_naive_utc(prior.last_state_event.timestamp)
        if event_time > to_naive_utc(device.updated_at):
            return prior.display_state
    return synced


def apply_sync(state: StoreState, devices: Iterable[DeviceWithConnector]) -> StoreState:
    """Replace the device map with a fresh sync snapshot, keeping newer live state."""
    device_states = {}
    for device in devices:
        key = device_key(device.connector_id, device.device_id)
        prior = state.device_states.get(key)
        device_states[key] = DeviceStateInfo(
            connector_id=device.connector_id,
            device_id=device.device_id,
            device_info=typed_info_from_values(device.device_type_info.type, device.device_type_info.subtype),
            display_state=_merge_synced_display_state(prior, device),
            last_state_event=prior.last_state_event if prior else None,
            last_status_event=prior.last_status_event if prior else None,
            last_seen=prior.last_seen if prior else None,
            name=device.name,
            model=device.model,
            vendor=device.vendor,
            url=device.url,
            raw_type=device.type,
            server_id=device.server_id,
            server_name=device.server_name,
            piko_server_details=(
                device.piko_server_details.model_dump(by_alias=True, mode="json")
                if device.piko_server_details else None
            ),
        )
    return replace(state, device_states=MappingProxyType(device_states))


def remove_connector(state: StoreState, connector_id: str) -> StoreState:
    prefix = f"{connector_id}:"
    device_states = {k: v for k, v in state.device_states.items() if not k.startswith(prefix)}
    connectors = tuple(c for c in state.connectors if c.id != connector_id)
    return StoreState(connectors=connectors, device_states=MappingProxyType(device_states))


# ── Container ─────────────────────────────────────────────────────────────────
class DeviceStateStore:
    """get / set / subscribe container around StoreState."""

    def __init__(self):
        self._state = StoreState()
        self._write_lock = threading.Lock()
        self._subscribers: list[Callable[[StoreState], None]] = []

    def get(self) -> StoreState:
        return self._state

    def set(self, new_state: StoreState):
        with self._write_lock:
            self._state = new_state
        self._notify(new_state)

    def subscribe(self, callback: Callable[[StoreState], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _update(self, reducer, *args) -> StoreState:
        with self._write_lock:
            new_state = reducer(self._state, *args)
            self._state = new_state
        self._notify(new_state)
        return new_state

    def _notify(self, state: StoreState):
        for callback in list(self._subscribers):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"[STORE] Subscriber {callback!r} failed: {e}", exc_info=True)

    # ── Actions ─────────────────────────────────────────────────────────────
    def get_device_state(self, connector_id: str, device_id: str) -> Optional[DeviceStateInfo]:
        return self._state.device_states.get(device_key(connector_id, device_id))

    def set_connectors(self, connectors: Iterable):
        infos = tuple(ConnectorInfo(id=c.id, category=c.category, name=c.name) for c in connectors)
        self._update(lambda state: replace(state, connectors=infos))

    def delete_connector(self, connector_id: str):
        self._update(remove_connector, connector_id)
        logger.info(f"[STORE] Dropped connector {connector_id} and its device states")

    def process_event(self, event: StandardizedEvent):
        self._update(apply_event, event)
        logger.debug(
            f"[STORE] {event.event_type.value} for {device_key(event.connector_id, event.device_id)}"
        )

    def set_device_states_from_sync(self, devices: Iterable[DeviceWithConnector]):
        state = self._update(apply_sync, list(devices))
        logger.info(f"[STORE] Sync snapshot applied — {len(state.device_states)} device states")


device_store = DeviceStateStore()
