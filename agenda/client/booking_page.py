"""
Public booking page state.

Owns everything a customer-facing booking view needs: the tenant's catalogue,
the appointment snapshot of the selected date, the computed slot grid and the
booking queue that submits confirmed choices. Remote failures never propagate
to the caller; they are logged and shown as notifications.
"""

import logging
from datetime import date, datetime
from typing import Callable

import httpx
from pydantic import ValidationError

from agenda.booking_queue import BookingQueue, QueuedBooking
from agenda.client.api import AgendaApiClient
from agenda.core import config
from agenda.notifications import NotificationService, NotificationVariant
from agenda.routes.appointment_routes import AppointmentResponse, CreateAppointmentRequest
from agenda.routes.availability_routes import BusinessHoursResponse, TimeBlockResponse
from agenda.routes.tenant_routes import ProfessionalResponse, ServiceResponse, TenantResponse
from agenda.scheduling.availability import SlotAvailability, compute_availability, find_slot, select_time_slot

logger = logging.getLogger(__name__)


class PublicBookingPage:
    def __init__(
        self,
        api: AgendaApiClient,
        slug: str,
        notifier: NotificationService,
        now: Callable[[], datetime] = datetime.now,
        queue_interval_seconds: float = config.BOOKING_QUEUE_INTERVAL_SECONDS,
        queue_max_attempts: int = config.BOOKING_QUEUE_MAX_ATTEMPTS,
    ):
        self.api = api
        self.slug = slug
        self.notifier = notifier
        self._now = now

        self.tenant: TenantResponse | None = None
        self.services: list[ServiceResponse] = []
        self.professionals: list[ProfessionalResponse] = []
        self.business_hours: list[BusinessHoursResponse] = []

        self.selected_date: date | None = None
        self.selected_service_id: int | None = None
        self.selected_professional_id: int | None = None
        self.selected_time: str | None = None

        self.appointments: list[AppointmentResponse] = []
        self.time_blocks: list[TimeBlockResponse] = []

        self.queue = BookingQueue(
            submit=api.create_appointment,
            notifier=notifier,
            on_committed=self.refresh,
            interval_seconds=queue_interval_seconds,
            max_attempts=queue_max_attempts,
        )

    @property
    def selected_service(self) -> ServiceResponse | None:
        for service in self.services:
            if service.id == self.selected_service_id:
                return service
        return None

    async def load(self) -> bool:
        try:
            self.tenant = await self.api.get_tenant(self.slug)
            self.services = await self.api.list_services(self.tenant.id)
            self.professionals = await self.api.list_professionals(self.tenant.id)
            self.business_hours = await self.api.list_business_hours(self.tenant.id)
        except httpx.HTTPError:
            logger.exception('Loading booking page %s failed', self.slug)
            self.notifier.notify(
                'Could not load booking page',
                'Please check your connection and try again.',
                NotificationVariant.DESTRUCTIVE,
            )
            return False

        logger.info(
            'Loaded booking page %s (%s services, %s professionals)',
            self.slug,
            len(self.services),
            len(self.professionals),
        )
        return True

    async def refresh(self) -> None:
        """Reload the appointment snapshot of the selected date, keeping the old one on failure."""
        if self.tenant is None or self.selected_date is None:
            return

        try:
            appointments = await self.api.list_appointments(self.tenant.id, self.selected_date)
            time_blocks = await self.api.list_time_blocks(self.tenant.id, self.selected_date)
        except httpx.HTTPError:
            logger.exception('Fetching appointments for %s failed', self.selected_date.isoformat())
            self.notifier.notify(
                'Could not load available times',
                'Showing the last known schedule.',
                NotificationVariant.DESTRUCTIVE,
            )
            return

        self.appointments = appointments
        self.time_blocks = time_blocks

        # A refresh can take away the slot the customer had picked.
        if self.selected_time is not None:
            slot = find_slot(self.slots, self.selected_time)
            if slot is None or slot.is_disabled:
                self.selected_time = None

    async def select_date(self, day: date) -> None:
        self.selected_date = day
        self.selected_time = None
        await self.refresh()

    def select_service(self, service_id: int | None) -> None:
        self.selected_service_id = service_id
        self.selected_time = None

    def select_professional(self, professional_id: int | None) -> None:
        self.selected_professional_id = professional_id
        self.selected_time = None

    @property
    def slots(self) -> list[SlotAvailability]:
        if self.selected_date is None:
            return []

        return compute_availability(
            self.selected_date,
            business_hours=self.business_hours,
            appointments=self.appointments,
            time_blocks=self.time_blocks,
            service=self.selected_service,
            professional_id=self.selected_professional_id,
            now=self._now(),
            selected_time=self.selected_time,
        )

    def select_time(self, label: str) -> str | None:
        slot = find_slot(self.slots, label)
        if slot is None:
            return None

        chosen = select_time_slot(slot)
        if chosen is not None:
            self.selected_time = chosen
        return chosen

    def submit(self, customer_name: str, customer_contact: str, notes: str | None = None) -> QueuedBooking | None:
        if self.tenant is None or self.selected_service_id is None or self.selected_date is None or self.selected_time is None:
            self.notifier.notify(
                'Incomplete booking',
                'Choose a service, a date and a time.',
                NotificationVariant.DESTRUCTIVE,
            )
            return None

        try:
            payload = CreateAppointmentRequest(
                tenant_id=self.tenant.id,
                service_id=self.selected_service_id,
                professional_id=self.selected_professional_id,
                customer_name=customer_name,
                customer_contact=customer_contact,
                date=self.selected_date,
                time=self.selected_time,
                notes=notes,
            )
        except ValidationError as exc:
            message = exc.errors()[0]['msg'].removeprefix('Value error, ')
            self.notifier.notify('Check your details', message, NotificationVariant.DESTRUCTIVE)
            return None

        booking = self.queue.enqueue(payload)
        self.selected_time = None
        return booking

    async def aclose(self) -> None:
        await self.queue.aclose()
