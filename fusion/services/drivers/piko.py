# fusion/services/drivers/piko.py
"""
Piko VMS adapter — cloud (relay) and local (direct to server) connections.

Cloud:  token from {PIKO_CLOUD_URL}/cdb/oauth2/token scoped to one system,
        REST calls via https://{systemId}.{PIKO_RELAY_DOMAIN}
Local:  token from https://{host}:{port}/rest/v3/login/sessions,
        REST calls direct to the server (self-signed certs allowed via ignoreTlsErrors)
"""

from dataclasses import dataclass, field
from typing import Optional, Any
import httpx
from fusion.config import settings
from fusion.schemas.connector_config import PikoConfig
from fusion.utils.json_parser import get_nested
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

CLOUD_CLIENT_ID = "3rdParty"


class PikoApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None, error_id: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.error_id = error_id


@dataclass
class PikoServerInfo:
    id: str
    name: str
    status: Optional[str] = None
    version: Optional[str] = None
    os_platform: Optional[str] = None
    os_variant_version: Optional[str] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, item: dict) -> Optional["PikoServerInfo"]:
        if not isinstance(item, dict) or not item.get("id") or not item.get("name"):
            return None
        return cls(
            id=str(item["id"]),
            name=str(item["name"]),
            status=item.get("status"),
            version=item.get("version"),
            os_platform=get_nested(item, "osInfo", "platform"),
            os_variant_version=get_nested(item, "osInfo", "variantVersion"),
            url=item.get("url"),
        )


@dataclass
class PikoDevice:
    id: str
    name: str
    device_type: Optional[str] = None
    model: Optional[str] = None
    vendor: Optional[str] = None
    server_id: Optional[str] = None
    status: Optional[str] = None
    url: Optional[str] = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: dict) -> Optional["PikoDevice"]:
        if not isinstance(item, dict) or not item.get("id") or not item.get("name"):
            return None
        return cls(
            id=str(item["id"]),
            name=str(item["name"]),
            device_type=item.get("deviceType"),
            model=item.get("model"),
            vendor=item.get("vendor"),
            server_id=item.get("serverId"),
            status=item.get("status"),
            url=item.get("url"),
            raw=item,
        )


def _error_message(data: Any, fallback: str) -> str:
    if isinstance(data, dict):
        return data.get("errorString") or data.get("error_description") or data.get("message") or fallback
    return fallback


class PikoClient:
    def __init__(self, config: PikoConfig, http: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._http = http
        self._token: Optional[str] = None

    async def __aenter__(self):
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=settings.VENDOR_HTTP_TIMEOUT,
                verify=not (self.config.type == "local" and self.config.ignore_tls_errors),
            )
            self._owns_http = True
        return self

    async def __aexit__(self, *exc):
        if getattr(self, "_owns_http", False):
            await self._http.aclose()
            self._http = None

    @property
    def is_cloud(self) -> bool:
        return self.config.type == "cloud"

    @property
    def base_url(self) -> str:
        if self.is_cloud:
            return f"https://{self.config.selected_system}.{settings.PIKO_RELAY_DOMAIN}"
        return f"https://{self.config.host}:{self.config.port}"

    # ── Auth ────────────────────────────────────────────────────────────────
    async def _fetch_cloud_token(self) -> str:
        payload = {
            "grant_type": "password",
            "response_type": "token",
            "client_id": CLOUD_CLIENT_ID,
            "username": self.config.username,
            "password": self.config.password,
            "scope": f"cloudSystemId={self.config.selected_system}",
        }
        response = await self._http.post(f"{settings.PIKO_CLOUD_URL}/cdb/oauth2/token", json=payload)
        data = self._json_object(response)
        if response.status_code != 200 or not data.get("access_token"):
            raise PikoApiError(
                _error_message(data, "Failed to fetch Piko Cloud token."),
                status_code=response.status_code,
                error_id=data.get("error"),
            )
        return data["access_token"]

    async def _fetch_local_token(self) -> str:
        payload = {"username": self.config.username, "password": self.config.password}
        response = await self._http.post(f"{self.base_url}/rest/v3/login/sessions", json=payload)
        data = self._json_object(response)
        if response.status_code != 200 or not data.get("token"):
            raise PikoApiError(
                _error_message(data, "Local auth response missing token or invalid structure."),
                status_code=response.status_code,
                error_id=data.get("errorId"),
            )
        return data["token"]

    async def get_token(self) -> str:
        if self._token is None:
            self._token = await (self._fetch_cloud_token() if self.is_cloud else self._fetch_local_token())
            logger.info(f"[PIKO] Authenticated ({self.config.type})")
        return self._token

    # ── REST ────────────────────────────────────────────────────────────────
    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if data is not None else {}

    @classmethod
    def _json_object(cls, response: httpx.Response) -> dict:
        """Auth endpoints must answer with an object; anything else reads as empty."""
        data = cls._json(response)
        return data if isinstance(data, dict) else {}

    async def _get(self, path: str) -> Any:
        token = await self.get_token()
        response = await self._http.get(
            f"{self.base_url}{path}",
            headers={"Authorization": f"Bearer {token}", "Accept": "application/json"},
        )
        data = self._json(response)
        if response.status_code != 200:
            raise PikoApiError(
                _error_message(data, f"Piko request {path} failed with HTTP {response.status_code}"),
                status_code=response.status_code,
                error_id=data.get("errorId") if isinstance(data, dict) else None,
            )
        return data

    async def get_system_servers(self) -> list[PikoServerInfo]:
        data = await self._get("/rest/v3/servers")
        items = data.get("servers", []) if isinstance(data, dict) else data
        servers = [PikoServerInfo.from_api(item) for item in items or []]
        return [s for s in servers if s is not None]

    async def get_system_devices(self) -> list[PikoDevice]:
        data = await self._get("/rest/v3/devices/")
        items = data.get("devices", []) if isinstance(data, dict) else data
        devices = []
        for item in items or []:
            device = PikoDevice.from_api(item)
            if device is None:
                logger.warning(f"[PIKO] Skipping device entry without id/name: {item!r}")
                continue
            devices.append(device)
        return devices
