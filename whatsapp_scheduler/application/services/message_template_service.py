"""Reminder text rendering — bracket placeholders filled from client, company and appointment."""

import re
from typing import Mapping, Optional

from whatsapp_scheduler.domain.civil_time import format_appointment_datetime
from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.company import Company
from whatsapp_scheduler.domain.models.message_template import MessageTemplate

DEFAULT_BODY_TEMPLATE = "Olá, [CLIENTE]! [EMPRESA]"


def apply_template(template: str, params: Mapping[str, Optional[str]]) -> str:
    """Replace every ``[KEY]`` for the given keys; missing values become empty strings.

    Brackets whose key is not in ``params`` are left untouched.
    """
    result = template
    for key, value in params.items():
        result = re.sub(rf"\[{re.escape(key)}\]", lambda _m: value or "", result)
    return result


def render_reminder_text(
    template: Optional[MessageTemplate],
    client: Optional[Client],
    company: Optional[Company],
    appointment: Optional[Appointment],
) -> str:
    body = template.body_template if template and template.body_template else DEFAULT_BODY_TEMPLATE
    data_hora = ""
    if appointment is not None:
        data_hora = format_appointment_datetime(appointment.appointment_date, appointment.appointment_time)
    return apply_template(
        body,
        {
            "CLIENTE": client.name if client else "",
            "EMPRESA": company.name if company else "",
            "DATA_HORA": data_hora,
        },
    )
