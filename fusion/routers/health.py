# fusion/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + live store + vendor API reachability.
"""

import requests
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from fusion.database import get_db
from fusion.config import settings
from fusion.services.device_store import device_store
from datetime import datetime

router = APIRouter()


def _vendor_endpoints() -> dict:
    return {
        "yolink": settings.YOLINK_TOKEN_URL,
        "piko": settings.PIKO_CLOUD_URL,
        "genea": settings.GENEA_API_URL,
    }


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db), vendors: bool = True):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Number of devices held in the live state store
    - Vendor API reachability (skip with ?vendors=false)
    """
    state = device_store.get()
    result = {
        "status": "ok",
        "timestamp": datetime.utcnow().isoformat(),
        "backend": "ok",
        "database": "unknown",
        "store": {"connectors": len(state.connectors), "devices": len(state.device_states)},
        "vendors": {},
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    if not vendors:
        return result

    # Any HTTP answer means the API is reachable; auth is checked during sync
    for name, url in _vendor_endpoints().items():
        try:
            resp = requests.head(url, timeout=3, allow_redirects=True)
            result["vendors"][name] = "ok" if resp.status_code < 500 else f"http_{resp.status_code}"
        except requests.exceptions.ConnectionError:
            result["vendors"][name] = "unreachable"
        except requests.exceptions.Timeout:
            result["vendors"][name] = "timeout"
        except Exception as e:
            result["vendors"][name] = f"error: {str(e)}"

    return result
