from dwella.models.user import User
from dwella.models.home import Home, HomeAccess
from dwella.models.verification import HomeVerification
from dwella.models.record import Record
from dwella.models.service_record import ServiceRecord
from dwella.models.connection import Connection
from dwella.models.attachment import Attachment
from dwella.models.notification import Notification

__all__ = [
    "User",
    "Home",
    "HomeAccess",
    "HomeVerification",
    "Record",
    "ServiceRecord",
    "Connection",
    "Attachment",
    "Notification",
]
