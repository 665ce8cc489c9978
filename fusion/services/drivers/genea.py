# fusion/services/drivers/genea.py
"""
Genea access-control adapter.
Doors are listed page by page from /v2/customer/{customerUuid}/door.
"""

from dataclasses import dataclass, field
from typing import Optional, Any
import httpx
from fusion.config import settings
from fusion.schemas.connector_config import GeneaConfig
from fusion.utils.logger import get_logger

logger = get_logger(__name__)

PAGE_SIZE = 100
MAX_PAGES = 50


class GeneaApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class GeneaDoor:
    uuid: str
    name: str
    is_online: Optional[bool] = None
    is_locked: Optional[bool] = None
    reader_model: Optional[str] = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, item: dict) -> Optional["GeneaDoor"]:
        if not isinstance(item, dict) or not item.get("uuid") or not item.get("name"):
            return None
        is_online = item.get("is_online")
        is_locked = item.get("is_locked")
        return cls(
            uuid=str(item["uuid"]),
            name=str(item["name"]),
            is_online=is_online if isinstance(is_online, bool) else None,
            is_locked=is_locked if isinstance(is_locked, bool) else None,
            reader_model=item.get("reader_model"),
            raw=item,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        body: Any = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        meta = body.get("meta") if isinstance(body.get("meta"), dict) else {}
        message = meta.get("message") or body.get("error")
        if message:
            return str(message)
    return f"Genea API request failed with HTTP {response.status_code}"


async def get_doors(config: GeneaConfig, http: Optional[httpx.AsyncClient] = None) -> list[GeneaDoor]:
    """Fetch every door for the configured customer."""
    owns_http = http is None
    if owns_http:
        http = httpx.AsyncClient(timeout=settings.VENDOR_HTTP_TIMEOUT)

    url = f"{settings.GENEA_API_URL}/v2/customer/{config.customer_uuid}/door"
    headers = {"Authorization": f"Bearer {config.api_key}", "Accept": "application/json"}
    doors: list[GeneaDoor] = []
    try:
        for page in range(1, MAX_PAGES + 1):
            response = await http.get(url, headers=headers, params={"page": page, "limit": PAGE_SIZE})
            if response.status_code != 200:
                raise GeneaApiError(_error_message(response), response.status_code)

            body = response.json()
            items = body.get("data", []) if isinstance(body, dict) else body
            items = items or []
            for item in items:
                door = GeneaDoor.from_api(item)
                if door is None:
                    logger.warning(f"[GENEA] Skipping door entry without uuid/name: {item!r}")
                    continue
                doors.append(door)

            if len(items) < PAGE_SIZE:
                break
        else:
            logger.warning(f"[GENEA] Stopped after {MAX_PAGES} pages — door list may be incomplete")
    finally:
        if owns_http:
            await http.aclose()

    return doors
