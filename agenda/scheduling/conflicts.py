"""
Conflict detection for new appointments.

Runs inside the create-appointment operation, right before the insert, so a
booking computed against a stale availability snapshot is still rejected.
"""

from datetime import datetime, time, timedelta

from sqlalchemy.orm import Session

from agenda.models.appointment import Appointment
from agenda.models.time_block import TimeBlock
from agenda.scheduling.status import CANCELLED_STATUS_VALUES


def intervals_overlap(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Half-open intersection: touching intervals do not overlap."""
    return start_a < end_b and end_a > start_b


def day_bounds(moment: datetime) -> tuple[datetime, datetime]:
    day_start = datetime.combine(moment.date(), time.min)
    return day_start, day_start + timedelta(days=1)


def find_conflicting_appointment(
    db: Session,
    tenant_id: int,
    professional_id: int | None,
    start_time: datetime,
    end_time: datetime,
    exclude_appointment_id: int | None = None,
) -> Appointment | None:
    day_start, day_end = day_bounds(start_time)

    query = db.query(Appointment).filter(
        Appointment.tenant_id == tenant_id,
        Appointment.start_time >= day_start,
        Appointment.start_time < day_end,
        Appointment.status.notin_(CANCELLED_STATUS_VALUES),
    )

    if professional_id is None:
        query = query.filter(Appointment.professional_id.is_(None))
    else:
        query = query.filter(Appointment.professional_id == professional_id)

    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)

    for existing in query.order_by(Appointment.start_time.asc()).all():
        if intervals_overlap(existing.start_time, existing.end_time, start_time, end_time):
            return existing

    return None


def find_blocking_time_block(
    db: Session,
    tenant_id: int,
    start_time: datetime,
    end_time: datetime,
) -> TimeBlock | None:
    return db.query(TimeBlock).filter(
        TimeBlock.tenant_id == tenant_id,
        TimeBlock.start_time < end_time,
        TimeBlock.end_time > start_time,
    ).order_by(TimeBlock.start_time.asc()).first()
