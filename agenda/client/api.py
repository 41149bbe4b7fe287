import logging
from datetime import date
from typing import Any

import httpx

from agenda.core import config
from agenda.routes.appointment_routes import AppointmentResponse, CreateAppointmentRequest
from agenda.routes.availability_routes import BusinessHoursResponse, TimeBlockResponse
from agenda.routes.tenant_routes import ProfessionalResponse, ServiceResponse, TenantResponse

logger = logging.getLogger(__name__)


class AgendaApiClient:
    """Async client for the Agenda HTTP API used by the public booking page."""

    def __init__(
        self,
        base_url: str = config.AGENDA_API_BASE_URL,
        timeout: float = config.AGENDA_API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._client.get(path, params=params)
        if response.is_error:
            logger.error('GET %s failed with %s: %s', path, response.status_code, response.text)
        response.raise_for_status()
        return response.json()

    async def get_tenant(self, slug: str) -> TenantResponse:
        return TenantResponse.model_validate(await self._get(f'/tenants/by-slug/{slug}'))

    async def list_services(self, tenant_id: int) -> list[ServiceResponse]:
        payload = await self._get(f'/tenants/{tenant_id}/services')
        return [ServiceResponse.model_validate(item) for item in payload]

    async def list_professionals(self, tenant_id: int) -> list[ProfessionalResponse]:
        payload = await self._get(f'/tenants/{tenant_id}/professionals')
        return [ProfessionalResponse.model_validate(item) for item in payload]

    async def list_business_hours(self, tenant_id: int) -> list[BusinessHoursResponse]:
        payload = await self._get(f'/availability/{tenant_id}/business-hours')
        return [BusinessHoursResponse.model_validate(item) for item in payload]

    async def list_time_blocks(self, tenant_id: int, day: date) -> list[TimeBlockResponse]:
        payload = await self._get(f'/availability/{tenant_id}/time-blocks', params={'day': day.isoformat()})
        return [TimeBlockResponse.model_validate(item) for item in payload]

    async def list_appointments(self, tenant_id: int, day: date) -> list[AppointmentResponse]:
        payload = await self._get(
            '/appointments',
            params={
                'tenant_id': tenant_id,
                'start_date': day.isoformat(),
                'end_date': day.isoformat(),
            },
        )
        return [AppointmentResponse.model_validate(item) for item in payload]

    async def create_appointment(self, payload: CreateAppointmentRequest) -> AppointmentResponse:
        response = await self._client.post('/appointments', json=payload.model_dump(mode='json'))
        if response.is_error:
            logger.warning('Creating appointment failed with %s: %s', response.status_code, response.text)
        response.raise_for_status()
        return AppointmentResponse.model_validate(response.json())

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> 'AgendaApiClient':
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
