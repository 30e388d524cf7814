from datetime import date, time

from whatsapp_scheduler.application.services.message_template_service import (
    DEFAULT_BODY_TEMPLATE,
    apply_template,
    render_reminder_text,
)
from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.company import Company
from whatsapp_scheduler.domain.models.message_template import MessageTemplate


def test_apply_template_replaces_every_occurrence():
    text = apply_template("[CLIENTE], [CLIENTE]!", {"CLIENTE": "Ana"})
    assert text == "Ana, Ana!"


def test_missing_values_become_empty_strings():
    assert apply_template("Olá [CLIENTE] - [EMPRESA]", {"CLIENTE": None, "EMPRESA": ""}) == "Olá  - "


def test_unknown_placeholders_are_left_alone():
    assert apply_template("[PROMO] para [CLIENTE]", {"CLIENTE": "Ana"}) == "[PROMO] para Ana"


def test_values_are_not_treated_as_regex_replacements():
    assert apply_template("[CLIENTE]", {"CLIENTE": r"Ana \1 & Cia"}) == r"Ana \1 & Cia"


def test_fallback_body_when_no_template():
    text = render_reminder_text(None, Client(name="Maria"), Company(name="Salão Bela"), None)
    assert DEFAULT_BODY_TEMPLATE == "Olá, [CLIENTE]! [EMPRESA]"
    assert text == "Olá, Maria! Salão Bela"
    assert "[" not in text


def test_template_with_appointment_datetime():
    template = MessageTemplate(body_template="Oi [CLIENTE], seu horário na [EMPRESA] é [DATA_HORA].")
    appointment = Appointment(appointment_date=date(2024, 3, 10), appointment_time=time(14, 30))
    text = render_reminder_text(template, Client(name="Maria"), Company(name="Salão Bela"), appointment)
    assert text == "Oi Maria, seu horário na Salão Bela é 10/03/2024 às 14:30."


def test_missing_lookups_render_empty():
    template = MessageTemplate(body_template="[CLIENTE]|[EMPRESA]|[DATA_HORA]")
    assert render_reminder_text(template, None, None, None) == "||"
