from datetime import datetime

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from agenda.models.appointment import Appointment
from agenda.models.professional import Professional
from agenda.models.service import Service
from agenda.routes.tenant_routes import (
    CreateProfessionalRequest,
    CreateServiceRequest,
    CreateTenantRequest,
    UpdateProfessionalRequest,
    UpdateServiceRequest,
    create_professional,
    create_service,
    create_tenant,
    delete_professional,
    delete_service,
    get_tenant_by_slug,
    list_professionals,
    list_services,
    update_professional,
    update_service,
)


def test_create_tenant_request_normalizes_slug_and_theme() -> None:
    request = CreateTenantRequest(name=' Barbearia Centro ', slug=' Barbearia-Centro ', theme_variant='BARBER')

    assert request.name == 'Barbearia Centro'
    assert request.slug == 'barbearia-centro'
    assert request.theme_variant == 'barber'


@pytest.mark.parametrize(
    'fields',
    [
        {'name': '   ', 'slug': 'ok'},
        {'name': 'Shop', 'slug': 'has spaces'},
        {'name': 'Shop', 'slug': 'shop', 'theme_variant': 'neon'},
    ],
)
def test_create_tenant_request_rejects_invalid_fields(fields: dict) -> None:
    with pytest.raises(ValidationError):
        CreateTenantRequest(**fields)


def test_create_service_request_rejects_non_positive_duration() -> None:
    with pytest.raises(ValidationError):
        CreateServiceRequest(name='Beard trim', duration_minutes=0)


def test_create_tenant_and_fetch_by_slug(agenda_db) -> None:
    tenant = create_tenant(data=CreateTenantRequest(name='Studio Bela', slug='studio-bela'), db=agenda_db)

    found = get_tenant_by_slug(slug=' STUDIO-BELA ', db=agenda_db)

    assert found.id == tenant.id
    assert found.theme_variant == 'salon'


def test_create_tenant_rejects_duplicate_slug(agenda_db) -> None:
    create_tenant(data=CreateTenantRequest(name='First', slug='shared'), db=agenda_db)

    with pytest.raises(HTTPException) as exception_info:
        create_tenant(data=CreateTenantRequest(name='Second', slug='shared'), db=agenda_db)

    assert exception_info.value.status_code == 409
    assert exception_info.value.detail == 'This booking page address is already taken.'


def test_get_tenant_by_slug_returns_not_found(agenda_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        get_tenant_by_slug(slug='missing', db=agenda_db)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Business not found.'


def test_services_and_professionals_are_listed_by_name(agenda_db, salon) -> None:
    tenant_id = salon['tenant'].id

    create_service(
        tenant_id=tenant_id,
        data=CreateServiceRequest(name='Beard trim', duration_minutes=20, price_cents=3000),
        db=agenda_db,
    )
    create_professional(tenant_id=tenant_id, data=CreateProfessionalRequest(name='Carla'), db=agenda_db)

    assert [service.name for service in list_services(tenant_id=tenant_id, db=agenda_db)] == [
        'Beard trim',
        'Coloring',
        'Haircut',
    ]
    assert [professional.name for professional in list_professionals(tenant_id=tenant_id, db=agenda_db)] == [
        'Ana',
        'Bruno',
        'Carla',
    ]


def test_list_services_hides_inactive_services(agenda_db, salon) -> None:
    salon['coloring'].active = False
    agenda_db.commit()

    services = list_services(tenant_id=salon['tenant'].id, db=agenda_db)

    assert [service.name for service in services] == ['Haircut']


def test_create_service_requires_existing_tenant(agenda_db) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_service(
            tenant_id=999,
            data=CreateServiceRequest(name='Haircut', duration_minutes=30),
            db=agenda_db,
        )

    assert exception_info.value.status_code == 404


def test_update_service_request_rejects_invalid_fields() -> None:
    with pytest.raises(ValidationError):
        UpdateServiceRequest(duration_minutes=0)
    with pytest.raises(ValidationError):
        UpdateServiceRequest(name='  ')
    with pytest.raises(ValidationError):
        UpdateServiceRequest(price_cents=-1)


def test_update_service_changes_only_given_fields(agenda_db, salon) -> None:
    haircut = salon['haircut']

    updated = update_service(
        tenant_id=salon['tenant'].id,
        service_id=haircut.id,
        data=UpdateServiceRequest(name=' Haircut & wash ', duration_minutes=45),
        db=agenda_db,
    )

    assert updated.name == 'Haircut & wash'
    assert updated.duration_minutes == 45
    assert updated.price_cents == 5000
    assert updated.active is True


def test_deactivated_service_and_professional_leave_the_lists(agenda_db, salon) -> None:
    tenant_id = salon['tenant'].id

    update_service(
        tenant_id=tenant_id,
        service_id=salon['coloring'].id,
        data=UpdateServiceRequest(active=False),
        db=agenda_db,
    )
    update_professional(
        tenant_id=tenant_id,
        professional_id=salon['bruno'].id,
        data=UpdateProfessionalRequest(active=False),
        db=agenda_db,
    )

    assert [service.name for service in list_services(tenant_id=tenant_id, db=agenda_db)] == ['Haircut']
    assert [professional.name for professional in list_professionals(tenant_id=tenant_id, db=agenda_db)] == ['Ana']

    reactivated = update_professional(
        tenant_id=tenant_id,
        professional_id=salon['bruno'].id,
        data=UpdateProfessionalRequest(name='Bruno Lima', active=True),
        db=agenda_db,
    )
    assert reactivated.name == 'Bruno Lima'
    assert reactivated.active is True


def test_delete_service_and_professional(agenda_db, salon) -> None:
    tenant_id = salon['tenant'].id

    delete_service(tenant_id=tenant_id, service_id=salon['coloring'].id, db=agenda_db)
    delete_professional(tenant_id=tenant_id, professional_id=salon['bruno'].id, db=agenda_db)

    assert agenda_db.query(Service).count() == 1
    assert agenda_db.query(Professional).count() == 1


def test_delete_refuses_rows_with_appointments(agenda_db, salon) -> None:
    tenant_id = salon['tenant'].id
    agenda_db.add(
        Appointment(
            tenant_id=tenant_id,
            customer_name='Maria',
            service_id=salon['haircut'].id,
            professional_id=salon['ana'].id,
            start_time=datetime(2030, 1, 7, 10, 0),
            end_time=datetime(2030, 1, 7, 10, 30),
            status='scheduled',
        )
    )
    agenda_db.commit()

    with pytest.raises(HTTPException) as service_error:
        delete_service(tenant_id=tenant_id, service_id=salon['haircut'].id, db=agenda_db)
    with pytest.raises(HTTPException) as professional_error:
        delete_professional(tenant_id=tenant_id, professional_id=salon['ana'].id, db=agenda_db)

    assert service_error.value.status_code == 409
    assert professional_error.value.status_code == 409
    assert agenda_db.query(Service).count() == 2


@pytest.mark.parametrize('tenant_offset', [0, 1])
def test_update_and_delete_return_not_found(agenda_db, salon, tenant_offset: int) -> None:
    # An id from another business is treated like a missing one.
    tenant_id = salon['tenant'].id + tenant_offset
    service_id = 999 if tenant_offset == 0 else salon['haircut'].id
    professional_id = 999 if tenant_offset == 0 else salon['ana'].id

    with pytest.raises(HTTPException) as service_error:
        update_service(
            tenant_id=tenant_id,
            service_id=service_id,
            data=UpdateServiceRequest(name='Shave'),
            db=agenda_db,
        )
    with pytest.raises(HTTPException) as professional_error:
        delete_professional(tenant_id=tenant_id, professional_id=professional_id, db=agenda_db)

    assert service_error.value.status_code == 404
    assert service_error.value.detail == 'Service not found.'
    assert professional_error.value.status_code == 404
    assert professional_error.value.detail == 'Professional not found.'
