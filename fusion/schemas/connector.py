# fusion/schemas/connector.py
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class ConnectorCreate(BaseModel):
    category: str             # yolink | piko | genea
    name: str
    config: dict
    events_enabled: bool = False

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ConnectorOut(BaseModel):
    id: str
    category: str
    name: str
    events_enabled: bool
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True
