# fusion/models/piko_server.py
"""
Piko VMS servers discovered during a cloud connector sync.
server_id is the vendor-assigned id and is unique across the table.
Rows are upserted on every sync and never pruned.
"""

from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from fusion.database import Base


class PikoServer(Base):
    __tablename__ = "piko_servers"

    server_id = Column(String(100), primary_key=True)
    connector_id = Column(
        String(36), ForeignKey("connectors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(200), nullable=False)
    status = Column(String(50))
    version = Column(String(50))
    os_platform = Column(String(100))
    os_variant_version = Column(String(100))
    url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    connector = relationship("Connector", back_populates="piko_servers")

    def __repr__(self):
        return f"<PikoServer {self.server_id} name={self.name} status={self.status}>"
