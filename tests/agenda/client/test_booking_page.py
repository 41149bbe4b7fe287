import asyncio
from datetime import date, datetime, time, timedelta

import httpx

from agenda.client.booking_page import PublicBookingPage
from agenda.notifications import NotificationService, NotificationVariant
from agenda.routes.appointment_routes import AppointmentResponse
from agenda.routes.availability_routes import BusinessHoursResponse
from agenda.routes.tenant_routes import ProfessionalResponse, ServiceResponse, TenantResponse
from agenda.scheduling.availability import SlotState

MONDAY = date(2030, 1, 7)


class FakeAgendaApi:
    """In-memory stand-in for AgendaApiClient."""

    def __init__(self):
        self.tenant = TenantResponse(id=1, name='Studio Bela', slug='studio-bela', theme_variant='salon')
        self.services = [
            ServiceResponse(id=10, tenant_id=1, name='Haircut', duration_minutes=30, price_cents=5000, active=True),
            ServiceResponse(id=11, tenant_id=1, name='Coloring', duration_minutes=60, price_cents=9000, active=True),
        ]
        self.professionals = [ProfessionalResponse(id=20, tenant_id=1, name='Ana', active=True)]
        self.business_hours = [
            BusinessHoursResponse(weekday=1, open_time=time(9, 0), close_time=time(12, 0), closed=False)
        ]
        self.appointments: list[AppointmentResponse] = []
        self.fail_listing = False
        self.created = []

    async def get_tenant(self, slug):
        if slug != self.tenant.slug:
            raise httpx.HTTPStatusError(
                'not found',
                request=httpx.Request('GET', f'http://agenda.test/tenants/by-slug/{slug}'),
                response=httpx.Response(404),
            )
        return self.tenant

    async def list_services(self, tenant_id):
        return self.services

    async def list_professionals(self, tenant_id):
        return self.professionals

    async def list_business_hours(self, tenant_id):
        return self.business_hours

    async def list_appointments(self, tenant_id, day):
        if self.fail_listing:
            raise httpx.ConnectError('connection refused')
        return list(self.appointments)

    async def list_time_blocks(self, tenant_id, day):
        return []

    async def create_appointment(self, payload):
        start = datetime.combine(payload.date, time.fromisoformat(payload.time))
        appointment = AppointmentResponse(
            id=len(self.created) + 1,
            tenant_id=payload.tenant_id,
            customer_name=payload.customer_name,
            professional_id=payload.professional_id,
            service_id=payload.service_id,
            start_time=start,
            end_time=start + timedelta(minutes=30),
            status='scheduled',
        )
        self.created.append(payload)
        self.appointments.append(appointment)
        return appointment


def make_page(api: FakeAgendaApi, notifier: NotificationService, slug: str = 'studio-bela') -> PublicBookingPage:
    return PublicBookingPage(
        api,
        slug,
        notifier,
        now=lambda: datetime(2030, 1, 7, 8, 0),
        queue_interval_seconds=0,
    )


def test_load_and_select_date_computes_slots() -> None:
    api = FakeAgendaApi()
    api.appointments.append(
        AppointmentResponse(
            id=1,
            tenant_id=1,
            customer_name='Joao',
            start_time=datetime(2030, 1, 7, 10, 0),
            end_time=datetime(2030, 1, 7, 10, 30),
            status='confirmed',
        )
    )

    async def scenario():
        page = make_page(api, NotificationService())
        assert await page.load()
        await page.select_date(MONDAY)
        page.select_service(11)
        slots = page.slots
        await page.aclose()
        return slots

    slots = asyncio.run(scenario())

    assert [(slot.label, slot.state) for slot in slots] == [
        ('09:00', SlotState.AVAILABLE),
        ('09:30', SlotState.MULTI_CONFLICT),
        ('10:00', SlotState.BOOKED),
        ('10:30', SlotState.AVAILABLE),
        ('11:00', SlotState.AVAILABLE),
        ('11:30', SlotState.AVAILABLE),
    ]


def test_load_failure_is_reported() -> None:
    notifier = NotificationService()

    async def scenario():
        page = make_page(FakeAgendaApi(), notifier, slug='missing')
        loaded = await page.load()
        await page.aclose()
        return loaded

    assert asyncio.run(scenario()) is False
    assert notifier.history[-1].title == 'Could not load booking page'
    assert notifier.history[-1].variant == NotificationVariant.DESTRUCTIVE


def test_refresh_failure_keeps_last_snapshot() -> None:
    api = FakeAgendaApi()
    notifier = NotificationService()

    async def scenario():
        page = make_page(api, notifier)
        await page.load()
        page.select_service(10)
        await page.select_date(MONDAY)
        api.appointments.append(
            AppointmentResponse(
                id=5,
                tenant_id=1,
                customer_name='Joao',
                start_time=datetime(2030, 1, 7, 9, 0),
                end_time=datetime(2030, 1, 7, 9, 30),
                status='scheduled',
            )
        )
        api.fail_listing = True
        await page.refresh()
        snapshot = list(page.appointments)
        await page.aclose()
        return snapshot

    assert asyncio.run(scenario()) == []
    assert notifier.history[-1].title == 'Could not load available times'


def test_select_time_ignores_disabled_slots() -> None:
    api = FakeAgendaApi()
    api.appointments.append(
        AppointmentResponse(
            id=1,
            tenant_id=1,
            customer_name='Joao',
            start_time=datetime(2030, 1, 7, 10, 0),
            end_time=datetime(2030, 1, 7, 10, 30),
            status='scheduled',
        )
    )

    async def scenario():
        page = make_page(api, NotificationService())
        await page.load()
        page.select_service(10)
        await page.select_date(MONDAY)
        rejected = page.select_time('10:00')
        accepted = page.select_time('10:30')
        selected_state = page.slots[3].state
        await page.aclose()
        return rejected, accepted, page.selected_time, selected_state

    rejected, accepted, selected_time, selected_state = asyncio.run(scenario())

    assert rejected is None
    assert accepted == '10:30'
    assert selected_time == '10:30'
    assert selected_state == SlotState.SELECTED


def test_submit_requires_complete_selection() -> None:
    notifier = NotificationService()

    async def scenario():
        page = make_page(FakeAgendaApi(), notifier)
        await page.load()
        booking = page.submit('Maria', 'maria@example.com')
        await page.aclose()
        return booking

    assert asyncio.run(scenario()) is None
    assert notifier.history[-1].title == 'Incomplete booking'


def test_submit_reports_invalid_contact() -> None:
    notifier = NotificationService()

    async def scenario():
        page = make_page(FakeAgendaApi(), notifier)
        await page.load()
        page.select_service(10)
        await page.select_date(MONDAY)
        page.select_time('09:00')
        booking = page.submit('Maria', 'not a phone')
        await page.aclose()
        return booking

    assert asyncio.run(scenario()) is None
    assert notifier.history[-1].title == 'Check your details'
    assert notifier.history[-1].description == 'Enter a valid phone number (e.g. (11) 99999-9999).'


def test_submit_queues_booking_and_refreshes_after_commit() -> None:
    api = FakeAgendaApi()
    notifier = NotificationService()

    async def scenario():
        page = make_page(api, notifier)
        await page.load()
        page.select_service(10)
        page.select_professional(20)
        await page.select_date(MONDAY)
        page.select_time('11:00')
        booking = page.submit('Maria', '(11) 99999-9999', notes='First visit')
        await page.queue.join()
        state = page.slots[4].state
        await page.aclose()
        return booking, state

    booking, state = asyncio.run(scenario())

    assert booking.payload.time == '11:00'
    assert booking.payload.professional_id == 20
    assert api.created[0].customer_contact == '5511999999999'
    assert state == SlotState.BOOKED
    assert [notification.title for notification in notifier.history] == ['Booking queued', 'Booking confirmed!']
