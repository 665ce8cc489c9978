# fusion/models/camera_association.py
"""
Links a device (door, lock, sensor...) to a Piko camera device.
Both columns reference devices.id. Rows are not deduplicated here;
association counting sums both directions per device.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from fusion.database import Base


class CameraAssociation(Base):
    __tablename__ = "camera_associations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(
        String(36), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    piko_camera_id = Column(
        String(36), ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<CameraAssociation device={self.device_id} camera={self.piko_camera_id}>"
