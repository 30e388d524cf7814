"""Enumerations shared by the messaging tables."""

from enum import Enum


class Channel(str, Enum):
    WHATSAPP = "WHATSAPP"


class OffsetUnit(str, Enum):
    MINUTES = "MINUTES"
    HOURS = "HOURS"
    DAYS = "DAYS"


class ReferencePoint(str, Enum):
    APPOINTMENT_START = "APPOINTMENT_START"
    # Recognized but not resolvable yet: appointments carry no creation timestamp.
    APPOINTMENT_CREATION = "APPOINTMENT_CREATION"


class SendStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"
    # No code path sets this; kept for cancelling a queued reminder before it is sent.
    CANCELLED = "CANCELLED"


class ExecutionStatus(str, Enum):
    SUCCESS = "SUCCESS"
    PARTIAL = "PARTIAL"
    ERROR = "ERROR"


class PayloadContentType(str, Enum):
    JSON = "json"
    FORM_DATA = "form-data"


CANCELLED_APPOINTMENT_STATUS = "cancelado"
