# Fusion device sync: database models
# Import all models here for SQLAlchemy discovery

from fusion.models.connector import Connector                   # noqa
from fusion.models.piko_server import PikoServer                # noqa
from fusion.models.device import Device                         # noqa
from fusion.models.camera_association import CameraAssociation  # noqa
