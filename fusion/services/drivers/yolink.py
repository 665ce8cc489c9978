# fusion/services/drivers/yolink.py
"""
YoLink cloud API adapter.

Token endpoint: POST {YOLINK_TOKEN_URL} (form-encoded, client_credentials or refresh_token)
API endpoint:   POST {YOLINK_API_URL} (JSON BUDP envelope, Bearer token)

A BUDP response is successful when code == "000000". Token errors
(000103 invalid, 010104 expired) get exactly one retry with a forced refresh.
The client keeps the possibly-refreshed config on `self.config`; callers
check `config_changed` to persist new token fields.
"""

import time
from dataclasses import dataclass, field
from typing import Optional, Any
import httpx
from fusion.config import settings
from fusion.schemas.connector_config import YoLinkConfig
from fusion.services.device_mapping import DeviceType, TypedDeviceInfo
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

SUCCESS_CODE = "000000"
TOKEN_ERROR_CODES = {"000103", "010104"}
TOKEN_EXPIRY_MARGIN_MS = 5 * 60 * 1000

# Raw device types with a getState call the sync uses
STATEFUL_TYPES = {"Switch", "Outlet", "MultiOutlet"}
_STATE_METHODS = {
    "Switch": "Switch.getState",
    "Outlet": "Outlet.getState",
    "MultiOutlet": "Outlet.getState",     # MultiOutlet shares the Outlet API
}

_ERROR_MESSAGES = {
    "000101": "Cannot connect to Hub.",
    "000103": "API token is invalid.",
    "000106": "Invalid UAID.",
    "000201": "Cannot connect to the device (Offline?).",
    "000203": "Cannot connect to the device (Offline?).",
    "010000": "YoLink service is temporarily unavailable.",
    "010001": "YoLink internal connection unavailable.",
    "010101": "Invalid CSID (Authentication Error).",
    "010102": "Invalid SecKey (Authentication Error).",
    "010103": "Invalid Client Secret.",
    "010104": "API token has expired.",
    "010200": "Invalid request parameters sent to YoLink.",
    "010204": "Invalid data packet sent to YoLink.",
    "010301": "API rate limit reached. Please try again later.",
    "020101": "Device does not exist or is not associated with this account.",
    "020104": "Device is busy, please try again later.",
}


class YoLinkApiError(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


def describe_error(data: Any, status_code: Optional[int] = None) -> str:
    """Turn a YoLink error body into a readable message."""
    code = data.get("code") if isinstance(data, dict) else None
    if code in _ERROR_MESSAGES:
        return _ERROR_MESSAGES[code]
    msg = data.get("desc") or data.get("msg") if isinstance(data, dict) else None
    if msg:
        return f"YoLink API Error: {msg}" + (f" (Code: {code})" if code else "")
    if code:
        return f"YoLink API Error Code: {code}"
    return f"YoLink request failed with HTTP {status_code}" if status_code else "Unknown YoLink error"


@dataclass
class YoLinkDevice:
    device_id: str
    name: str
    type: str
    token: Optional[str] = None
    model_name: Optional[str] = None
    device_udid: Optional[str] = None
    parent_device_id: Optional[str] = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: dict) -> Optional["YoLinkDevice"]:
        """Returns None for entries without an id, name or type."""
        if not isinstance(item, dict):
            return None
        device_id, name, dev_type = item.get("deviceId"), item.get("name"), item.get("type")
        if not device_id or not name or not dev_type:
            return None
        return cls(
            device_id=str(device_id),
            name=str(name),
            type=str(dev_type),
            token=item.get("token"),
            model_name=item.get("modelName"),
            device_udid=item.get("deviceUDID"),
            parent_device_id=item.get("parentDeviceId"),
            raw=item,
        )


@dataclass
class YoLinkDeviceState:
    online: Optional[bool]
    state: Any = None              # str | dict | list, depends on the device class
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: Any) -> "YoLinkDeviceState":
        if not isinstance(data, dict):
            return cls(online=None, raw={})
        online = data.get("online")
        return cls(
            online=online if isinstance(online, bool) else None,
            state=data.get("state"),
            raw=data,
        )


def get_raw_state_string(device_info: TypedDeviceInfo, state: YoLinkDeviceState) -> Optional[str]:
    """
    Pull the raw state token out of a getState response.
      {"state": "open"}                       -> "open"
      {"state": {"state": "open"}}            -> "open"
      {"state": {"power": "on"}}              -> "on"
      {"state": ["open", "closed"]}           -> first outlet on a multi-outlet
      {"power": "on"}                         -> "on"
    """
    value = state.state
    if isinstance(value, dict):
        value = value.get("state", value.get("power"))
    if isinstance(value, list):
        if device_info.type != DeviceType.OUTLET or not value:
            return None
        value = value[0]
    if value is None:
        value = state.raw.get("power")
    if isinstance(value, str) and value.strip():
        return value.strip().lower()
    return None


def _now_ms() -> int:
    return int(time.time() * 1000)


def _json_body(response: httpx.Response) -> dict:
    """Response JSON as a dict; anything else (bad JSON, a list, null) becomes {}."""
    try:
        data = response.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class YoLinkClient:
    def __init__(self, config: YoLinkConfig, http: Optional[httpx.AsyncClient] = None):
        self.config = config
        self.config_changed = False
        self._http = http

    async def __aenter__(self):
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=settings.VENDOR_HTTP_TIMEOUT)
            self._owns_http = True
        return self

    async def __aexit__(self, *exc):
        if getattr(self, "_owns_http", False):
            await self._http.aclose()
            self._http = None

    # ── Tokens ──────────────────────────────────────────────────────────────
    async def _request_token(self, form: dict, label: str) -> dict:
        response = await self._http.post(settings.YOLINK_TOKEN_URL, data=form)
        data = _json_body(response)
        if response.status_code != 200 or not isinstance(data.get("access_token"), str):
            message = describe_error(data, response.status_code)
            raise YoLinkApiError(f"Failed to {label} YoLink token: {message}", data.get("code"))
        return data

    def _apply_token(self, data: dict):
        self.config.access_token = data["access_token"]
        if data.get("refresh_token"):
            self.config.refresh_token = data["refresh_token"]
        expires_in = data.get("expires_in") or 0
        self.config.token_expires_at = _now_ms() + int(expires_in) * 1000
        self.config_changed = True

    async def get_access_token(self, force_refresh: bool = False) -> str:
        """Reuse the stored token, else refresh it, else fetch a new one."""
        cfg = self.config
        if (not force_refresh and cfg.access_token and cfg.token_expires_at
                and cfg.token_expires_at - TOKEN_EXPIRY_MARGIN_MS > _now_ms()):
            return cfg.access_token

        if cfg.refresh_token and cfg.uaid:
            try:
                data = await self._request_token(
                    {"grant_type": "refresh_token", "client_id": cfg.uaid, "refresh_token": cfg.refresh_token},
                    "refresh",
                )
                self._apply_token(data)
                logger.info("[YOLINK] Access token refreshed")
                return cfg.access_token
            except (YoLinkApiError, httpx.HTTPError) as e:
                logger.warning(f"[YOLINK] Token refresh failed, requesting a new token: {e}")

        data = await self._request_token(
            {"grant_type": "client_credentials", "client_id": cfg.uaid, "client_secret": cfg.client_secret},
            "get new",
        )
        self._apply_token(data)
        logger.info("[YOLINK] New access token issued")
        return cfg.access_token

    # ── API ─────────────────────────────────────────────────────────────────
    async def call_api(self, body: dict, operation: str) -> Any:
        """POST a BUDP request and return its `data` field."""
        for attempt in (1, 2):
            token = await self.get_access_token(force_refresh=attempt == 2)
            response = await self._http.post(
                settings.YOLINK_API_URL,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
            data = _json_body(response)
            code = data.get("code")
            if response.status_code == 200 and code == SUCCESS_CODE:
                return data.get("data")

            if attempt == 1 and code in TOKEN_ERROR_CODES:
                logger.warning(f"[YOLINK] {operation}: token rejected ({code}) — refreshing and retrying once")
                continue
            raise YoLinkApiError(f"{operation} failed: {describe_error(data, response.status_code)}", code)

    async def get_device_list(self) -> list[YoLinkDevice]:
        data = await self.call_api({"method": "Home.getDeviceList"}, "Home.getDeviceList")
        items = data.get("devices", []) if isinstance(data, dict) else []
        devices = []
        for item in items:
            device = YoLinkDevice.from_api(item)
            if device is None:
                logger.warning(f"[YOLINK] Skipping device entry without id/name/type: {item!r}")
                continue
            devices.append(device)
        return devices

    async def get_device_state(self, device: YoLinkDevice) -> YoLinkDeviceState:
        method = _STATE_METHODS.get(device.type)
        if method is None:
            raise YoLinkApiError(f"Cannot get state for unsupported device type: {device.type}")
        if not device.token:
            raise YoLinkApiError(f"Missing device token for {device.device_id}")
        data = await self.call_api(
            {"method": method, "targetDevice": device.device_id, "token": device.token},
            method,
        )
        return YoLinkDeviceState.from_api(data)
