# fusion/utils/json_parser.py
"""
Helpers for the loosely-shaped JSON that vendors return and that
connectors store in cfg_enc.
"""

import json
from typing import Optional, Any, Union


def safe_parse_json(raw: Union[str, bytes, None]) -> Optional[Any]:
    """Parse a JSON string or bytes safely. Returns None on error."""
    if raw is None:
        return None
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError):
        return None


def get_nested(data: dict, *keys: str, default: Any = None) -> Any:
    """Safely navigate nested dict keys. Returns default if any key is missing."""
    current = data
    for key in keys:
        if not isinstance(current, dict):
            return default
        current = current.get(key, default)
        if current is default:
            return default
    return current


def dump_json(data: Any) -> Optional[str]:
    """Serialize vendor payloads for raw_device_data columns. Non-JSON values fall back to str()."""
    if data is None:
        return None
    return json.dumps(data, default=str)
