from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.database import get_db
from agenda.models.appointment import Appointment
from agenda.models.professional import Professional
from agenda.models.service import Service
from agenda.models.tenant import Tenant

router = APIRouter(tags=['tenants'])

THEME_VARIANTS = {'salon', 'barber'}
DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class CreateTenantRequest(BaseModel):
    name: str
    slug: str
    theme_variant: str = 'salon'

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Business name is required.')
        return normalized

    @field_validator('slug')
    @classmethod
    def validate_slug(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not normalized or not all(character.isalnum() or character == '-' for character in normalized):
            raise ValueError('Slug may only contain letters, numbers and dashes.')
        return normalized

    @field_validator('theme_variant')
    @classmethod
    def validate_theme_variant(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in THEME_VARIANTS:
            raise ValueError('Invalid theme variant.')
        return normalized


class TenantResponse(BaseModel):
    id: int
    name: str
    slug: str
    theme_variant: str | None = None

    class Config:
        from_attributes = True


class CreateServiceRequest(BaseModel):
    name: str
    duration_minutes: int
    price_cents: int = 0

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name is required.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration_minutes(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    @field_validator('price_cents')
    @classmethod
    def validate_price_cents(cls, value: int) -> int:
        if value < 0:
            raise ValueError('Price cannot be negative.')
        return value


class UpdateServiceRequest(BaseModel):
    name: str | None = None
    duration_minutes: int | None = None
    price_cents: int | None = None
    active: bool | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError('Service name is required.')
        return normalized

    @field_validator('duration_minutes')
    @classmethod
    def validate_duration_minutes(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return value

    @field_validator('price_cents')
    @classmethod
    def validate_price_cents(cls, value: int | None) -> int | None:
        if value is not None and value < 0:
            raise ValueError('Price cannot be negative.')
        return value


class ServiceResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    duration_minutes: int
    price_cents: int
    active: bool

    class Config:
        from_attributes = True


class CreateProfessionalRequest(BaseModel):
    name: str

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Professional name is required.')
        return normalized


class UpdateProfessionalRequest(BaseModel):
    name: str | None = None
    active: bool | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return value
        normalized = value.strip()
        if not normalized:
            raise ValueError('Professional name is required.')
        return normalized


class ProfessionalResponse(BaseModel):
    id: int
    tenant_id: int
    name: str
    active: bool

    class Config:
        from_attributes = True


def get_tenant_or_404(tenant_id: int, db: Session) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Business not found.',
        )
    return tenant


def get_service_or_404(tenant_id: int, service_id: int, db: Session) -> Service:
    service = db.query(Service).filter(Service.id == service_id, Service.tenant_id == tenant_id).first()
    if not service:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service


def get_professional_or_404(tenant_id: int, professional_id: int, db: Session) -> Professional:
    professional = db.query(Professional).filter(
        Professional.id == professional_id,
        Professional.tenant_id == tenant_id,
    ).first()
    if not professional:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Professional not found.',
        )
    return professional


@router.post('', response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
def create_tenant(data: CreateTenantRequest, db: Session = Depends(get_db)):
    try:
        if db.query(Tenant).filter(Tenant.slug == data.slug).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This booking page address is already taken.',
            )

        tenant = Tenant(name=data.name, slug=data.slug, theme_variant=data.theme_variant)
        db.add(tenant)
        db.commit()
        db.refresh(tenant)

        return tenant
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This booking page address is already taken.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/by-slug/{slug}', response_model=TenantResponse)
def get_tenant_by_slug(slug: str, db: Session = Depends(get_db)):
    try:
        tenant = db.query(Tenant).filter(Tenant.slug == slug.strip().lower()).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Business not found.',
        )

    return tenant


@router.get('/{tenant_id}/services', response_model=list[ServiceResponse])
def list_services(tenant_id: int, db: Session = Depends(get_db)):
    try:
        return db.query(Service).filter(
            Service.tenant_id == tenant_id,
            Service.active.is_(True),
        ).order_by(Service.name.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.post('/{tenant_id}/services', response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
def create_service(tenant_id: int, data: CreateServiceRequest, db: Session = Depends(get_db)):
    try:
        get_tenant_or_404(tenant_id, db)

        service = Service(
            tenant_id=tenant_id,
            name=data.name,
            duration_minutes=data.duration_minutes,
            price_cents=data.price_cents,
            active=True,
        )
        db.add(service)
        db.commit()
        db.refresh(service)

        return service
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.patch('/{tenant_id}/services/{service_id}', response_model=ServiceResponse)
def update_service(tenant_id: int, service_id: int, data: UpdateServiceRequest, db: Session = Depends(get_db)):
    try:
        service = get_service_or_404(tenant_id, service_id, db)

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(service, field, value)

        db.commit()
        db.refresh(service)

        return service
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/{tenant_id}/services/{service_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_service(tenant_id: int, service_id: int, db: Session = Depends(get_db)):
    try:
        service = get_service_or_404(tenant_id, service_id, db)

        # Booked history keeps its service; those rows can only be deactivated.
        if db.query(Appointment).filter(Appointment.service_id == service.id).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This service has appointments. Deactivate it instead.',
            )

        db.delete(service)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This service has appointments. Deactivate it instead.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{tenant_id}/professionals', response_model=list[ProfessionalResponse])
def list_professionals(tenant_id: int, db: Session = Depends(get_db)):
    try:
        return db.query(Professional).filter(
            Professional.tenant_id == tenant_id,
            Professional.active.is_(True),
        ).order_by(Professional.name.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.post('/{tenant_id}/professionals', response_model=ProfessionalResponse, status_code=status.HTTP_201_CREATED)
def create_professional(tenant_id: int, data: CreateProfessionalRequest, db: Session = Depends(get_db)):
    try:
        get_tenant_or_404(tenant_id, db)

        professional = Professional(tenant_id=tenant_id, name=data.name, active=True)
        db.add(professional)
        db.commit()
        db.refresh(professional)

        return professional
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.patch('/{tenant_id}/professionals/{professional_id}', response_model=ProfessionalResponse)
def update_professional(
    tenant_id: int,
    professional_id: int,
    data: UpdateProfessionalRequest,
    db: Session = Depends(get_db),
):
    try:
        professional = get_professional_or_404(tenant_id, professional_id, db)

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(professional, field, value)

        db.commit()
        db.refresh(professional)

        return professional
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/{tenant_id}/professionals/{professional_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_professional(tenant_id: int, professional_id: int, db: Session = Depends(get_db)):
    try:
        professional = get_professional_or_404(tenant_id, professional_id, db)

        if db.query(Appointment).filter(Appointment.professional_id == professional.id).first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This professional has appointments. Deactivate them instead.',
            )

        db.delete(professional)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This professional has appointments. Deactivate them instead.',
        ) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc
