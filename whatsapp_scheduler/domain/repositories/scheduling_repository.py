"""
Scheduling Repository Interface.
Read-only access to the tenant configuration and appointment data the scheduler consumes.
"""

from datetime import date
from typing import Dict, Iterable, List, Protocol

from whatsapp_scheduler.domain.models.appointment import Appointment
from whatsapp_scheduler.domain.models.client import Client
from whatsapp_scheduler.domain.models.company import Company
from whatsapp_scheduler.domain.models.message_template import MessageTemplate
from whatsapp_scheduler.domain.models.messaging_provider import MessagingProvider
from whatsapp_scheduler.domain.models.scheduling_rule import SchedulingRule


class SchedulingRepository(Protocol):
    """Interface for the scheduler's read side."""

    def get_enabled_companies(self) -> List[Company]:
        """Companies with WhatsApp messaging enabled."""
        ...

    def get_active_providers(self, channel: str) -> List[MessagingProvider]:
        """All active providers for a channel, in a stable order."""
        ...

    def get_active_rules(self, company_ids: Iterable[str], channel: str) -> List[SchedulingRule]:
        """Active scheduling rules of the given companies."""
        ...

    def get_active_templates(self, company_ids: Iterable[str], channel: str) -> List[MessageTemplate]:
        """Active message templates of the given companies."""
        ...

    def get_appointments_between(self, company_id: str, start: date, end: date) -> List[Appointment]:
        """Non-cancelled appointments of a company with date in [start, end]."""
        ...

    def get_appointments_by_ids(self, ids: Iterable[str]) -> Dict[str, Appointment]:
        """Appointments keyed by id."""
        ...

    def get_clients_by_ids(self, ids: Iterable[str]) -> Dict[str, Client]:
        """Clients keyed by id."""
        ...

    def get_companies_by_ids(self, ids: Iterable[str]) -> Dict[str, Company]:
        """Companies keyed by id, enabled or not."""
        ...
