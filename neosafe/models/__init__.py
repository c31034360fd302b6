# Models package
from neosafe.models.user import User, UserRole
from neosafe.models.safe_box import SafeBox, BoxStatus
from neosafe.models.box_sensor import BoxSensor, SensorType, DEFAULT_SENSOR_TYPES
from neosafe.models.box_transfer_request import BoxTransferRequest, TransferStatus
from neosafe.models.box_command import BoxCommand, CommandType
from neosafe.models.sensor_reading import SensorReading
from neosafe.models.revoked_token import RevokedToken
