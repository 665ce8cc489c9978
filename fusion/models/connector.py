# fusion/models/connector.py
"""
Connectors table — one configured integration per vendor account
(YoLink home, Piko system, Genea customer).
cfg_enc holds the vendor-specific JSON config blob.
Deleting a connector cascades to its devices, Piko servers and associations.
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Boolean
from sqlalchemy.orm import relationship
from fusion.database import Base


class Connector(Base):
    __tablename__ = "connectors"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    category = Column(String(50), nullable=False, index=True)   # yolink | piko | genea
    name = Column(String(200), nullable=False)
    cfg_enc = Column(Text, nullable=False)
    events_enabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    devices = relationship(
        "Device", back_populates="connector",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    piko_servers = relationship(
        "PikoServer", back_populates="connector",
        cascade="all, delete-orphan", passive_deletes=True,
    )

    def __repr__(self):
        return f"<Connector {self.id} category={self.category} name={self.name}>"
