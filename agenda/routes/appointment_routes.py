import logging
from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core import config
from agenda.database import ensure_appointment_schema, get_db
from agenda.models.appointment import Appointment
from agenda.models.customer import Customer
from agenda.models.professional import Professional
from agenda.models.service import Service
from agenda.routes.tenant_routes import DATABASE_UNAVAILABLE_DETAIL, get_tenant_or_404
from agenda.scheduling.availability import service_duration_minutes, to_time
from agenda.scheduling.conflicts import find_blocking_time_block, find_conflicting_appointment
from agenda.scheduling.status import (
    AppointmentStatus,
    can_transition,
    is_terminal,
    parse_status,
    status_color,
    status_icon,
    status_label,
    stored_status_values,
)
from agenda.validators import format_br_phone, validate_contact

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)

MAX_APPOINTMENT_NOTES_LENGTH = 600


class CreateAppointmentRequest(BaseModel):
    tenant_id: int
    service_id: int
    professional_id: int | None = None
    customer_name: str
    customer_contact: str
    date: date
    time: str
    notes: str | None = None

    @field_validator('customer_name')
    @classmethod
    def validate_customer_name(cls, value: str) -> str:
        normalized = ' '.join(value.split())
        if not normalized:
            raise ValueError('Customer name is required.')
        return normalized

    @field_validator('customer_contact')
    @classmethod
    def validate_customer_contact(cls, value: str) -> str:
        return validate_contact(value)

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        try:
            return to_time(value).strftime('%H:%M')
        except ValueError as exc:
            raise ValueError('Time must use the HH:MM format.') from exc

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus

    @field_validator('status', mode='before')
    @classmethod
    def validate_status(cls, value):
        return parse_status(value)


class AppointmentResponse(BaseModel):
    id: int
    tenant_id: int
    customer_id: int | None = None
    customer_name: str
    customer_contact: str | None = None
    professional_id: int | None = None
    professional_name: str | None = None
    service_id: int | None = None
    service_name: str | None = None
    service_price_cents: int | None = None
    start_time: datetime
    end_time: datetime
    status: str
    status_label: str | None = None
    status_icon: str | None = None
    status_color: str | None = None
    is_terminal: bool = False
    customer_contact_display: str | None = None
    notes: str | None = None


class AutoCompleteResponse(BaseModel):
    completed_count: int
    processed_at: datetime


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def normalize_stored_status(value: str | None) -> str:
    try:
        return parse_status(value or '').value
    except ValueError:
        return value or AppointmentStatus.SCHEDULED.value


def status_presentation(value: str | None) -> dict:
    try:
        current = parse_status(value or AppointmentStatus.SCHEDULED.value)
    except ValueError:
        return {'status_label': value, 'status_icon': None, 'status_color': None, 'is_terminal': False}

    return {
        'status_label': status_label(current),
        'status_icon': status_icon(current),
        'status_color': status_color(current),
        'is_terminal': is_terminal(current),
    }


def display_contact(contact: str | None) -> str | None:
    if not contact or '@' in contact:
        return contact
    return format_br_phone(contact)


def to_appointment_response(
    appointment: Appointment,
    service: Service | None = None,
    professional: Professional | None = None,
) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        tenant_id=appointment.tenant_id,
        customer_id=appointment.customer_id,
        customer_name=appointment.customer_name,
        customer_contact=appointment.customer_contact,
        professional_id=appointment.professional_id,
        professional_name=professional.name if professional else None,
        service_id=appointment.service_id,
        service_name=service.name if service else None,
        service_price_cents=service.price_cents if service else None,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=normalize_stored_status(appointment.status),
        **status_presentation(appointment.status),
        customer_contact_display=display_contact(appointment.customer_contact),
        notes=appointment.notes,
    )


def get_or_create_customer(db: Session, tenant_id: int, name: str, contact: str) -> Customer:
    customer = db.query(Customer).filter(
        Customer.tenant_id == tenant_id,
        Customer.contact == contact,
    ).first()

    if customer is None:
        customer = Customer(tenant_id=tenant_id, name=name, contact=contact)
        db.add(customer)
        db.flush()

    return customer


def get_appointment_or_404(appointment_id: int, db: Session) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment not found.',
        )
    return appointment


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    tenant_id: int,
    start_date: date | None = None,
    end_date: date | None = None,
    status_filter: str | None = None,
    professional_id: int | None = None,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    if start_date and end_date and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='End date must not be before start date.',
        )

    try:
        query = db.query(Appointment, Service, Professional).outerjoin(
            Service, Appointment.service_id == Service.id
        ).outerjoin(
            Professional, Appointment.professional_id == Professional.id
        ).filter(Appointment.tenant_id == tenant_id)

        if start_date is not None:
            query = query.filter(Appointment.start_time >= datetime.combine(start_date, time.min))
        if end_date is not None:
            query = query.filter(Appointment.start_time < datetime.combine(end_date + timedelta(days=1), time.min))
        if status_filter:
            try:
                wanted = parse_status(status_filter)
            except ValueError as exc:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail='Invalid appointment status.',
                ) from exc
            query = query.filter(Appointment.status.in_(stored_status_values(wanted)))
        if professional_id is not None:
            query = query.filter(Appointment.professional_id == professional_id)

        rows = query.order_by(Appointment.start_time.asc()).all()

        return [
            to_appointment_response(appointment, service, professional)
            for appointment, service, professional in rows
        ]
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(data: CreateAppointmentRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        get_tenant_or_404(data.tenant_id, db)

        service = db.query(Service).filter(
            Service.id == data.service_id,
            Service.tenant_id == data.tenant_id,
        ).first()
        if not service:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Service not found.',
            )

        professional = None
        if data.professional_id is not None:
            professional = db.query(Professional).filter(
                Professional.id == data.professional_id,
                Professional.tenant_id == data.tenant_id,
            ).first()
            if not professional:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail='Professional not found.',
                )

        start_time = datetime.combine(data.date, to_time(data.time))
        end_time = start_time + timedelta(minutes=service_duration_minutes(service))

        if end_time <= start_time:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='Appointment must end after it starts.',
            )

        if find_blocking_time_block(db, data.tenant_id, start_time, end_time):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This time is blocked.',
            )

        conflict = find_conflicting_appointment(db, data.tenant_id, data.professional_id, start_time, end_time)
        if conflict:
            logger.info(
                'Rejected booking for tenant %s at %s: overlaps appointment %s',
                data.tenant_id,
                start_time,
                conflict.id,
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='There is already an appointment for this professional at this time.',
            )

        customer = get_or_create_customer(db, data.tenant_id, data.customer_name, data.customer_contact)

        appointment = Appointment(
            tenant_id=data.tenant_id,
            customer_id=customer.id,
            customer_name=data.customer_name,
            customer_contact=data.customer_contact,
            professional_id=data.professional_id,
            service_id=service.id,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED.value,
            notes=data.notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        return to_appointment_response(appointment, service, professional)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)

        try:
            current = parse_status(appointment.status)
        except ValueError:
            current = AppointmentStatus.SCHEDULED

        if not can_transition(current, data.status):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f'Cannot change an appointment from {current.value} to {data.status.value}.',
            )

        appointment.status = data.status.value
        db.commit()
        db.refresh(appointment)

        service = db.query(Service).filter(Service.id == appointment.service_id).first()
        professional = db.query(Professional).filter(Professional.id == appointment.professional_id).first()

        return to_appointment_response(appointment, service, professional)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(appointment_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = get_appointment_or_404(appointment_id, db)

        db.delete(appointment)
        db.commit()
        logger.info('Deleted appointment %s for tenant %s', appointment_id, appointment.tenant_id)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def complete_past_appointments(db: Session, now: datetime, after_hours: int = config.AUTO_COMPLETE_AFTER_HOURS) -> int:
    """Mark confirmed appointments that ended more than ``after_hours`` ago as completed."""
    cutoff = now - timedelta(hours=after_hours)
    appointments = db.query(Appointment).filter(
        Appointment.status.in_(stored_status_values(AppointmentStatus.CONFIRMED)),
        Appointment.end_time < cutoff,
    ).all()

    for appointment in appointments:
        appointment.status = AppointmentStatus.COMPLETED.value

    db.commit()

    if appointments:
        logger.info('Auto-completed %s appointment(s) that ended before %s', len(appointments), cutoff)

    return len(appointments)


@router.post('/auto-complete', response_model=AutoCompleteResponse)
def auto_complete_appointments(
    x_cron_secret: str | None = Header(default=None),
    db: Session = Depends(get_db),
):
    if x_cron_secret != config.CRON_SECRET:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Unauthorized request.',
        )

    ensure_database_ready()

    now = datetime.now()
    try:
        completed_count = complete_past_appointments(db, now)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return AutoCompleteResponse(completed_count=completed_count, processed_at=now)
