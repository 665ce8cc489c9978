# fusion/services/connector_config.py
"""
Parse and validate a connector's stored config blob.
Raises ConnectorConfigError with an operator-facing message; the sync
records that message against the connector and moves on.
"""

from typing import Union
from pydantic import ValidationError
from fusion.schemas.connector_config import YoLinkConfig, PikoConfig, GeneaConfig
from fusion.utils.json_parser import safe_parse_json

PARSE_ERROR_MESSAGE = "Failed to parse connector configuration."

VendorConfig = Union[YoLinkConfig, PikoConfig, GeneaConfig]

_CONFIG_MODELS = {
    "yolink": YoLinkConfig,
    "piko": PikoConfig,
    "genea": GeneaConfig,
}

_VENDOR_NAMES = {
    "yolink": "YoLink",
    "piko": "Piko",
    "genea": "Genea",
}


class ConnectorConfigError(Exception):
    """Connector config blob is malformed or incomplete."""


def parse_connector_config(category: str, cfg_enc) -> Union[VendorConfig, dict]:
    """
    Parse `cfg_enc` (JSON text or an already-decoded dict) for `category`.
    Known categories return a validated config model; anything else returns
    the raw dict so callers can decide to skip it.
    """
    raw = cfg_enc if isinstance(cfg_enc, dict) else safe_parse_json(cfg_enc)
    if not isinstance(raw, dict):
        raise ConnectorConfigError(PARSE_ERROR_MESSAGE)

    key = (category or "").lower()
    model = _CONFIG_MODELS.get(key)
    if model is None:
        return raw

    try:
        config = model.model_validate(raw)
    except ValidationError:
        raise ConnectorConfigError(PARSE_ERROR_MESSAGE)

    missing = missing_required_fields(key, config)
    if missing:
        raise ConnectorConfigError(
            f"Missing required {_VENDOR_NAMES[key]} configuration fields: {', '.join(missing)}."
        )
    return config


def missing_required_fields(category: str, config: VendorConfig) -> list[str]:
    """Return the camelCase names of required fields that are empty."""
    if category == "yolink":
        required = {"uaid": config.uaid, "clientSecret": config.client_secret}
    elif category == "genea":
        required = {"apiKey": config.api_key, "customerUuid": config.customer_uuid}
    elif category == "piko":
        required = {"username": config.username, "password": config.password}
        if config.type == "cloud":
            required["selectedSystem"] = config.selected_system
        else:
            required["host"] = config.host
            required["port"] = config.port
    else:
        return []
    return [name for name, value in required.items() if value in (None, "")]
