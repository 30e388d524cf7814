"""
SQLAlchemy Implementation of the Scheduling Repository.
"""

from datetime import date
from typing import Dict, Iterable, List

from sqlalchemy import or_
from sqlalchemy.orm import Session

from whatsapp_scheduler.domain.enums import CANCELLED_APPOINTMENT_STATUS
from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.company import Company
from whatsapp_scheduler.domain.models.message_template import MessageTemplate
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.models.scheduling_rule import SchedulingRule
from whatsapp_scheduler.domain.repositories.scheduling_repository import SchedulingRepository


class SQLAlchemySchedulingRepository(SchedulingRepository):
    """Scheduling reads using SQLAlchemy."""

    def __init__(self, db: Session):
        self.db = db

    def get_enabled_companies(self) -> List[Company]:
        return (
            self.db.query(Company)
            .filter(Company.whatsapp_messaging_enabled.is_(True))
            .all()
        )

    def get_active_providers(self, channel: str) -> List[MessagingProvider]:
        return (
            self.db.query(MessagingProvider)
            .filter(
                MessagingProvider.channel == channel,
                MessagingProvider.is_active.is_(True),
            )
            .order_by(MessagingProvider.id.asc())
            .all()
        )

    def get_active_rules(self, company_ids: Iterable[str], channel: str) -> List[SchedulingRule]:
        ids = list(company_ids)
        if not ids:
            return []
        return (
            self.db.query(SchedulingRule)
            .filter(
                SchedulingRule.company_id.in_(ids),
                SchedulingRule.channel == channel,
                SchedulingRule.is_active.is_(True),
            )
            .all()
        )

    def get_active_templates(self, company_ids: Iterable[str], channel: str) -> List[MessageTemplate]:
        ids = list(company_ids)
        if not ids:
            return []
        return (
            self.db.query(MessageTemplate)
            .filter(
                MessageTemplate.company_id.in_(ids),
                MessageTemplate.channel == channel,
                MessageTemplate.is_active.is_(True),
            )
            .all()
        )

    def get_appointments_between(self, company_id: str, start: date, end: date) -> List[Appointment]:
        return (
            self.db.query(Appointment)
            .filter(
                Appointment.company_id == company_id,
                or_(
                    Appointment.status.is_(None),
                    Appointment.status != CANCELLED_APPOINTMENT_STATUS,
                ),
                Appointment.appointment_date >= start,
                Appointment.appointment_date <= end,
            )
            .order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
            .all()
        )

    def get_appointments_by_ids(self, ids: Iterable[str]) -> Dict[str, Appointment]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = self.db.query(Appointment).filter(Appointment.id.in_(ids)).all()
        return {a.id: a for a in rows}

    def get_clients_by_ids(self, ids: Iterable[str]) -> Dict[str, Client]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = self.db.query(Client).filter(Client.id.in_(ids)).all()
        return {c.id: c for c in rows}

    def get_companies_by_ids(self, ids: Iterable[str]) -> Dict[str, Company]:
        ids = list(set(ids))
        if not ids:
            return {}
        rows = self.db.query(Company).filter(Company.id.in_(ids)).all()
        return {c.id: c for c in rows}
