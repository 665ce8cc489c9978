# fusion/models/device.py
"""
Devices table — canonical record of every device pulled from a connector.
(connector_id, device_id) is unique and is the upsert key used by the sync.
`type` is the vendor's raw type; standardized_type/subtype are the mapped values.
`status` is the last known display state (or None when nothing is known).
"""

import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Text, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from fusion.database import Base


class Device(Base):
    __tablename__ = "devices"
    __table_args__ = (
        UniqueConstraint("connector_id", "device_id", name="uq_devices_connector_device"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    device_id = Column(String(200), nullable=False, index=True)
    connector_id = Column(
        String(36), ForeignKey("connectors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    type = Column(String(100), nullable=False)
    status = Column(String(50))
    server_id = Column(
        String(100), ForeignKey("piko_servers.server_id", ondelete="SET NULL"), index=True
    )
    vendor = Column(String(100))
    model = Column(String(200))
    url = Column(String(500))
    standardized_device_type = Column(String(50), index=True)
    standardized_device_subtype = Column(String(50))
    is_security_device = Column(Boolean, default=False, nullable=False)
    raw_device_data = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    connector = relationship("Connector", back_populates="devices")

    def __repr__(self):
        return f"<Device {self.device_id} type={self.type} status={self.status}>"
