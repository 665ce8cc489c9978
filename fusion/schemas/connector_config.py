# fusion/schemas/connector_config.py
"""
Typed views of the per-category connector config blob (connectors.cfg_enc).
Keys are stored camelCase. Every field is optional here; required-field
checks live in services/connector_config.py so the error text can list
exactly what is missing.
"""

from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Optional, Literal


class _VendorConfig(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"        # unknown keys survive a token write-back

    def to_blob(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class YoLinkConfig(_VendorConfig):
    uaid: Optional[str] = None
    client_secret: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expires_at: Optional[int] = None     # unix ms
    home_id: Optional[str] = None


class PikoConfig(_VendorConfig):
    type: Literal["cloud", "local"] = "cloud"
    username: Optional[str] = None
    password: Optional[str] = None
    host: Optional[str] = None
    port: Optional[int] = None
    ignore_tls_errors: bool = False
    selected_system: Optional[str] = None
    selected_system_name: Optional[str] = None


class GeneaConfig(_VendorConfig):
    api_key: Optional[str] = None
    customer_uuid: Optional[str] = None
