"""Send standardized device events to the backend to exercise the live state store."""

import argparse
import requests
from datetime import datetime, timezone

BACKEND_URL = "http://localhost:8080/api/events"

# Event shortcuts → (eventCategory, eventType)
EVENT_KINDS = {
    "state":   ("DEVICE_STATE", "STATE_CHANGED"),
    "battery": ("DEVICE_STATE", "BATTERY_LEVEL_CHANGED"),
    "online":  ("DEVICE_CONNECTIVITY", "DEVICE_ONLINE"),
    "offline": ("DEVICE_CONNECTIVITY", "DEVICE_OFFLINE"),
    "unknown": ("UNKNOWN", "UNKNOWN_EXTERNAL_EVENT"),
}


def build_event(kind, connector_id, device_id, display_state=None, original_type=None, battery=None):
    category, event_type = EVENT_KINDS[kind]
    payload = {}
    if display_state:
        payload["displayState"] = display_state
    if original_type:
        payload["originalEventType"] = original_type
    if battery is not None:
        payload["batteryPercentage"] = battery
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "connectorId": connector_id,
        "deviceId": device_id,
        "eventCategory": category,
        "eventType": event_type,
        "payload": payload,
    }


def send(event, api_key=None):
    headers = {"X-API-Key": api_key} if api_key else {}
    resp = requests.post(BACKEND_URL, json=event, headers=headers, timeout=10)
    print(f"✅ {event['eventType']} device={event['deviceId']} → HTTP {resp.status_code}: {resp.json()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate standardized device events")
    parser.add_argument("--connector", required=True, help="Connector id")
    parser.add_argument("--device", required=True, help="Vendor device id")
    parser.add_argument("--event", default="state", choices=list(EVENT_KINDS.keys()))
    parser.add_argument("--state", default=None, help="displayState, e.g. Open / Locked / Leak Detected")
    parser.add_argument("--original-type", default=None, help="Raw device type for unknown events")
    parser.add_argument("--battery", type=int, default=None)
    parser.add_argument("--url", default=BACKEND_URL)
    parser.add_argument("--api-key", default=None)
    args = parser.parse_args()

    BACKEND_URL = args.url
    send(build_event(args.event, args.connector, args.device, args.state, args.original_type, args.battery),
         api_key=args.api_key)
