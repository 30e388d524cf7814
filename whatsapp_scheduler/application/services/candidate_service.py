"""Candidate resolution and queuing of reminders.

For every active rule of every enabled company, appointments in a bounded
date window get their reference instant, the rule offset is applied, and the
resulting send time is kept if it lands within ±CANDIDATE_WINDOW of now.
Offsets reaching outside the ±APPOINTMENT_SCAN_DAYS date window are never
found.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

import logging

from whatsapp_scheduler.domain.civil_time import apply_offset, build_reference_instant, civil_today, to_civil_iso
from whatsapp_scheduler.domain.enums import Channel, ReferencePoint, SendStatus
from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.message_send_log import MessageSendLog
from whatsapp_scheduler.domain.models.message_template import MessageTemplate
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.models.scheduling_rule import SchedulingRule
from whatsapp_scheduler.domain.phone import to_e164_brazil
from whatsapp_scheduler.domain.repositories.message_log_repository import MessageLogRepository
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository

logger = logging.getLogger(__name__)

TemplateKey = Tuple[str, str]


@dataclass
class ReminderCandidate:
    company_id: str
    appointment_id: str
    client_id: Optional[str]
    message_kind_id: str
    rule_id: str
    scheduled_for: datetime


def index_templates(templates: Iterable[MessageTemplate]) -> Dict[TemplateKey, MessageTemplate]:
    """Templates keyed by (company_id, message_kind_id); a later duplicate wins."""
    return {(t.company_id, t.message_kind_id): t for t in templates}


def resolve_send_time(appointment: Appointment, rule: SchedulingRule) -> Optional[datetime]:
    reference = build_reference_instant(
        appointment.appointment_date,
        appointment.appointment_time,
        rule.reference,
        appointment.company_id,
    )
    if reference is None:
        return None
    try:
        return apply_offset(reference, rule.offset_value, rule.offset_unit)
    except (TypeError, ValueError):
        logger.warning(f"Rule {rule.id} has an invalid offset: {rule.offset_value} {rule.offset_unit}")
        return None


def resolve_candidates(
    repo: SchedulingRepository,
    rules: Iterable[SchedulingRule],
    now: datetime,
    window_minutes: int = 5,
    scan_days: int = 7,
) -> List[ReminderCandidate]:
    """Reminders whose send time falls within now ± window_minutes.

    One appointment matched by several rules yields one candidate per rule.
    """
    window = timedelta(minutes=window_minutes)
    earliest, latest = now - window, now + window

    appointments_by_company: Dict[str, List[Appointment]] = {}
    clients: Dict[str, Client] = {}
    candidates: List[ReminderCandidate] = []

    for rule in rules:
        if rule.reference != ReferencePoint.APPOINTMENT_START.value:
            logger.debug(f"Rule {rule.id}: reference {rule.reference} cannot be resolved, skipping")
            continue

        company_id = rule.company_id
        if company_id not in appointments_by_company:
            today = civil_today(now, company_id)
            appointments = repo.get_appointments_between(
                company_id,
                today - timedelta(days=scan_days),
                today + timedelta(days=scan_days),
            )
            appointments_by_company[company_id] = appointments
            missing = {a.client_id for a in appointments if a.client_id and a.client_id not in clients}
            clients.update(repo.get_clients_by_ids(missing))

        for appointment in appointments_by_company[company_id]:
            scheduled_for = resolve_send_time(appointment, rule)
            if scheduled_for is None:
                logger.warning(
                    f"Could not build reference instant for appointment {appointment.id} "
                    f"({appointment.appointment_date} {appointment.appointment_time})"
                )
                continue

            if not earliest <= scheduled_for <= latest:
                continue

            client = clients.get(appointment.client_id) if appointment.client_id else None
            if to_e164_brazil(client.phone if client else None) is None:
                logger.warning(f"Skipping appointment {appointment.id}: client {appointment.client_id} has no valid phone")
                continue

            candidates.append(
                ReminderCandidate(
                    company_id=company_id,
                    appointment_id=appointment.id,
                    client_id=appointment.client_id,
                    message_kind_id=rule.message_kind_id,
                    rule_id=rule.id,
                    scheduled_for=scheduled_for,
                )
            )

    logger.info(f"Resolved {len(candidates)} reminder candidates")
    return candidates


def queue_candidates(
    log_repo: MessageLogRepository,
    candidates: Iterable[ReminderCandidate],
    templates: Dict[TemplateKey, MessageTemplate],
    provider: MessagingProvider,
    dedup_minutes: int = 5,
) -> List[MessageSendLog]:
    """Insert a PENDING log for each candidate not already queued.

    Each insert is committed before the next dedup check, so a candidate
    repeated within one run is also caught. Overlapping runs can still both
    pass the check before either inserts; delivery is at-least-once.
    """
    window = timedelta(minutes=dedup_minutes)
    inserted: List[MessageSendLog] = []

    for candidate in candidates:
        existing = log_repo.find_existing(
            candidate.company_id,
            candidate.appointment_id,
            candidate.message_kind_id,
            Channel.WHATSAPP.value,
            candidate.scheduled_for - window,
            candidate.scheduled_for + window,
        )
        if existing is not None:
            logger.debug(f"Reminder for appointment {candidate.appointment_id} already queued as {existing.id}")
            continue

        template = templates.get((candidate.company_id, candidate.message_kind_id))
        log = log_repo.create(
            {
                "company_id": candidate.company_id,
                "client_id": candidate.client_id,
                "appointment_id": candidate.appointment_id,
                "message_kind_id": candidate.message_kind_id,
                "channel": Channel.WHATSAPP.value,
                "template_id": template.id if template else None,
                "provider_id": provider.id,
                "scheduled_for": to_civil_iso(candidate.scheduled_for, candidate.company_id),
                "sent_at": None,
                "status": SendStatus.PENDING.value,
            }
        )
        logger.info(f"Queued reminder {log.id} for appointment {candidate.appointment_id} at {log.scheduled_for}")
        inserted.append(log)

    return inserted
