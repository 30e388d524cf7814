"""Civil-time arithmetic for appointments.

Appointments are written down as a naive date + time in Brasília civil time.
The offset is a fixed UTC-3 rather than ``America/Sao_Paulo`` from the tz
database, so historical DST dates keep the -03:00 offset.
"""

import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Optional, Union

import pytz

from whatsapp_scheduler.domain.enums import OffsetUnit, ReferencePoint

BRASILIA = pytz.FixedOffset(-180)

Clock = Callable[[], datetime]

_OFFSET_WITHOUT_MINUTES = re.compile(r"([+-]\d{2})$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def civil_timezone_for(company_id: Optional[str] = None) -> tzinfo:
    """Civil timezone in which a tenant's appointments are authored.

    Every tenant is in Brasília today; this is the single place to plug a
    per-company tz database lookup if multi-region tenants appear.
    """
    return BRASILIA


def to_civil(instant: datetime, company_id: Optional[str] = None) -> datetime:
    return instant.astimezone(civil_timezone_for(company_id))


def to_civil_iso(instant: datetime, company_id: Optional[str] = None) -> str:
    """Render an instant as ``YYYY-MM-DDTHH:MM:SS-03:00``, the stored form of ``scheduled_for``."""
    return to_civil(instant, company_id).replace(microsecond=0).isoformat()


def civil_today(now: datetime, company_id: Optional[str] = None) -> date:
    return to_civil(now, company_id).date()


def _coerce_date(value: Union[date, str]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value).strip()[:10])


def _coerce_time(value: Union[time, str]) -> time:
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    # 'HH:MM' or 'HH:MM:SS'; seconds are ignored
    hour, minute = str(value).strip()[:5].split(":")
    return time(int(hour), int(minute))


def build_reference_instant(
    appointment_date: Union[date, str, None],
    appointment_time: Union[time, str, None],
    reference: Union[ReferencePoint, str],
    company_id: Optional[str] = None,
) -> Optional[datetime]:
    """Absolute instant a rule offset is measured from, or None when unresolvable.

    Only APPOINTMENT_START resolves. APPOINTMENT_CREATION always yields None so
    the rule is skipped for that appointment without being treated as an error.
    """
    if ReferencePoint(reference) is not ReferencePoint.APPOINTMENT_START:
        return None
    if appointment_date is None or appointment_time is None:
        return None
    try:
        day = _coerce_date(appointment_date)
        clock_time = _coerce_time(appointment_time)
    except (TypeError, ValueError):
        return None
    tz = civil_timezone_for(company_id)
    naive = datetime.combine(day, clock_time)
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def apply_offset(reference: datetime, value: int, unit: Union[OffsetUnit, str]) -> datetime:
    unit = OffsetUnit(unit)
    if unit is OffsetUnit.MINUTES:
        return reference + timedelta(minutes=value)
    if unit is OffsetUnit.HOURS:
        return reference + timedelta(hours=value)
    return reference + timedelta(days=value)


def parse_timestamp(value: Union[str, datetime, None], company_id: Optional[str] = None) -> Optional[datetime]:
    """Parse a stored timestamp into an aware datetime, tolerating mixed representations.

    Accepts ``Z`` and ``+00`` style offsets; naive values are read as civil time
    since that is how ``scheduled_for`` is written. Returns None when unparseable.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        if len(text) > 10:
            text = _OFFSET_WITHOUT_MINUTES.sub(r"\1:00", text)
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        tz = civil_timezone_for(company_id)
        parsed = tz.localize(parsed) if hasattr(tz, "localize") else parsed.replace(tzinfo=tz)
    return parsed


def format_appointment_datetime(
    appointment_date: Union[date, str, None],
    appointment_time: Union[time, str, None],
) -> str:
    """``DD/MM/YYYY às HH:mm`` from the stored date/time, empty when either is missing."""
    if not appointment_date or appointment_time is None or appointment_time == "":
        return ""
    try:
        day = _coerce_date(appointment_date)
        clock_time = _coerce_time(appointment_time)
    except (TypeError, ValueError):
        return f"{appointment_date} {appointment_time}"
    return f"{day.strftime('%d/%m/%Y')} às {clock_time.strftime('%H:%M')}"
