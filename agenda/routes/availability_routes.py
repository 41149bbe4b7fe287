from datetime import date, datetime, time, timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.database import ensure_appointment_schema, ensure_time_block_schema, get_db
from agenda.models.appointment import Appointment
from agenda.models.business_hours import BusinessHours
from agenda.models.service import Service
from agenda.models.time_block import TimeBlock
from agenda.routes.tenant_routes import DATABASE_UNAVAILABLE_DETAIL, get_tenant_or_404
from agenda.scheduling.availability import (
    DEFAULT_BUSINESS_HOURS,
    SlotState,
    classify_slot,
    compute_availability,
    format_slot_time,
    generate_time_slots,
    select_time_slot,
    slots_required,
    to_time,
)
from agenda.scheduling.status import CANCELLED_STATUS_VALUES

router = APIRouter(tags=['availability'])

SLOT_STATE_DETAILS = {
    SlotState.BOOKED: 'This time is already booked.',
    SlotState.BLOCKED: 'This time is blocked.',
    SlotState.PAST: 'This time has already passed.',
    SlotState.MULTI_CONFLICT: 'The selected service does not fit before the next booking.',
    SlotState.PARTIAL_OCCUPIED: 'This time is taken by a longer appointment.',
}


class BusinessHoursEntry(BaseModel):
    weekday: int
    open_time: time
    close_time: time
    closed: bool = False

    @field_validator('weekday')
    @classmethod
    def validate_weekday(cls, value: int) -> int:
        if value < 0 or value > 6:
            raise ValueError('Weekday must be between 0 (Sunday) and 6 (Saturday).')
        return value

    @model_validator(mode='after')
    def validate_range(self) -> 'BusinessHoursEntry':
        if not self.closed and self.close_time <= self.open_time:
            raise ValueError('Closing time must be after opening time.')
        return self


class BusinessHoursResponse(BaseModel):
    weekday: int
    open_time: time
    close_time: time
    closed: bool
    is_default: bool = False


class CreateTimeBlockRequest(BaseModel):
    start_time: datetime
    end_time: datetime
    professional_id: int | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    @model_validator(mode='after')
    def validate_range(self) -> 'CreateTimeBlockRequest':
        if self.end_time <= self.start_time:
            raise ValueError('A time block must end after it starts.')
        return self


class TimeBlockResponse(BaseModel):
    id: int
    tenant_id: int
    professional_id: int | None = None
    start_time: datetime
    end_time: datetime
    reason: str | None = None

    class Config:
        from_attributes = True


class SlotResponse(BaseModel):
    time: str
    start_time: datetime
    state: SlotState
    is_available: bool
    is_booked: bool
    is_blocked: bool
    is_past: bool
    is_multi_slot_conflict: bool
    is_partially_occupied: bool
    is_selected: bool


class SelectSlotRequest(BaseModel):
    date: date
    time: str
    service_id: int | None = None
    professional_id: int | None = None

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        try:
            return to_time(value).strftime('%H:%M')
        except ValueError as exc:
            raise ValueError('Time must use the HH:MM format.') from exc


class SelectSlotResponse(BaseModel):
    time: str
    slots_required: int


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
        ensure_time_block_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


def local_day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def get_business_hours_rows(tenant_id: int, db: Session) -> list[BusinessHours]:
    return db.query(BusinessHours).filter(BusinessHours.tenant_id == tenant_id).all()


def get_day_appointments(tenant_id: int, day: date, db: Session) -> list[Appointment]:
    day_start, day_end = local_day_bounds(day)
    return db.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.start_time >= day_start,
        Appointment.start_time < day_end,
    ).order_by(Appointment.start_time.asc()).all()


def get_day_time_blocks(tenant_id: int, day: date, db: Session) -> list[TimeBlock]:
    day_start, day_end = local_day_bounds(day)
    return db.query(TimeBlock).filter(
        TimeBlock.tenant_id == tenant_id,
        TimeBlock.start_time < day_end,
        TimeBlock.end_time > day_start,
    ).order_by(TimeBlock.start_time.asc()).all()


def get_service_for_tenant(tenant_id: int, service_id: int | None, db: Session) -> Service | None:
    if service_id is None:
        return None

    service = db.query(Service).filter(Service.id == service_id, Service.tenant_id == tenant_id).first()
    if not service:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Service not found.',
        )
    return service


@router.get('/{tenant_id}/business-hours', response_model=list[BusinessHoursResponse])
def list_business_hours(tenant_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        get_tenant_or_404(tenant_id, db)
        configured = {row.weekday: row for row in get_business_hours_rows(tenant_id, db)}
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    response: list[BusinessHoursResponse] = []
    for weekday in range(7):
        row = configured.get(weekday)
        if row is not None:
            response.append(
                BusinessHoursResponse(
                    weekday=weekday,
                    open_time=row.open_time,
                    close_time=row.close_time,
                    closed=bool(row.closed),
                )
            )
        else:
            default = DEFAULT_BUSINESS_HOURS[weekday]
            response.append(
                BusinessHoursResponse(
                    weekday=weekday,
                    open_time=default.open_time,
                    close_time=default.close_time,
                    closed=default.closed,
                    is_default=True,
                )
            )

    return response


@router.put('/{tenant_id}/business-hours', response_model=list[BusinessHoursResponse])
def replace_business_hours(tenant_id: int, entries: list[BusinessHoursEntry], db: Session = Depends(get_db)):
    ensure_database_ready()

    weekdays = [entry.weekday for entry in entries]
    if len(weekdays) != len(set(weekdays)):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Each weekday may only appear once.',
        )

    try:
        get_tenant_or_404(tenant_id, db)
        existing = {row.weekday: row for row in get_business_hours_rows(tenant_id, db)}

        for entry in entries:
            row = existing.get(entry.weekday)
            if row is None:
                row = BusinessHours(tenant_id=tenant_id, weekday=entry.weekday)
                db.add(row)
            row.open_time = entry.open_time
            row.close_time = entry.close_time
            row.closed = entry.closed

        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return list_business_hours(tenant_id, db)


@router.post('/{tenant_id}/time-blocks', response_model=TimeBlockResponse, status_code=status.HTTP_201_CREATED)
def create_time_block(tenant_id: int, data: CreateTimeBlockRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        get_tenant_or_404(tenant_id, db)

        # A block closes the time for every professional.
        overlapping_appointment = db.query(Appointment).filter(
            Appointment.tenant_id == tenant_id,
            Appointment.start_time < data.end_time,
            Appointment.end_time > data.start_time,
            Appointment.status.notin_(CANCELLED_STATUS_VALUES),
        ).first()

        if overlapping_appointment:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail='This time is already booked by an appointment.',
            )

        time_block = TimeBlock(
            tenant_id=tenant_id,
            professional_id=data.professional_id,
            start_time=data.start_time,
            end_time=data.end_time,
            reason=data.reason,
        )
        db.add(time_block)
        db.commit()
        db.refresh(time_block)

        return time_block
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{tenant_id}/time-blocks', response_model=list[TimeBlockResponse])
def list_time_blocks(tenant_id: int, day: date | None = None, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        if day is not None:
            return get_day_time_blocks(tenant_id, day, db)

        return db.query(TimeBlock).filter(
            TimeBlock.tenant_id == tenant_id,
            TimeBlock.end_time >= datetime.now(),
        ).order_by(TimeBlock.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.delete('/{tenant_id}/time-blocks/{block_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_time_block(tenant_id: int, block_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        time_block = db.query(TimeBlock).filter(
            TimeBlock.id == block_id,
            TimeBlock.tenant_id == tenant_id,
        ).first()

        if not time_block:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='Time block not found.',
            )

        db.delete(time_block)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/{tenant_id}/slots', response_model=list[SlotResponse])
def list_slots(
    tenant_id: int,
    day: date,
    service_id: int | None = None,
    professional_id: int | None = None,
    selected_time: str | None = None,
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        service = get_service_for_tenant(tenant_id, service_id, db)
        slots = compute_availability(
            day,
            business_hours=get_business_hours_rows(tenant_id, db),
            appointments=get_day_appointments(tenant_id, day, db),
            time_blocks=get_day_time_blocks(tenant_id, day, db),
            service=service,
            professional_id=professional_id,
            now=datetime.now(),
            selected_time=selected_time,
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    return [
        SlotResponse(
            time=slot.label,
            start_time=slot.start,
            state=slot.state,
            is_available=slot.is_available,
            is_booked=slot.is_booked,
            is_blocked=slot.is_blocked,
            is_past=slot.is_past,
            is_multi_slot_conflict=slot.is_multi_slot_conflict,
            is_partially_occupied=slot.is_partially_occupied,
            is_selected=slot.is_selected,
        )
        for slot in slots
    ]


@router.post('/{tenant_id}/select', response_model=SelectSlotResponse)
def select_slot(tenant_id: int, data: SelectSlotRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        service = get_service_for_tenant(tenant_id, data.service_id, db)
        business_hours = get_business_hours_rows(tenant_id, db)

        candidates = [
            slot for slot in generate_time_slots(data.date, business_hours)
            if format_slot_time(slot) == data.time
        ]
        if not candidates:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail='This time is outside business hours.',
            )

        slot = classify_slot(
            candidates[0],
            appointments=get_day_appointments(tenant_id, data.date, db),
            time_blocks=get_day_time_blocks(tenant_id, data.date, db),
            service=service,
            professional_id=data.professional_id,
            now=datetime.now(),
        )
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    selected = select_time_slot(slot)
    if selected is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=SLOT_STATE_DETAILS.get(slot.state, 'This time is not available.'),
        )

    return SelectSlotResponse(time=selected, slots_required=slots_required(service))
