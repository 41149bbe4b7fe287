"""
Availability Engine

Computes the bookable time slots of a single day and classifies each one:
- Booked (an appointment starts in the slot)
- Blocked (a time block covers the slot)
- Past (earlier today)
- Multi-slot conflict (the selected service would run into a booked slot)
- Partially occupied (inside a longer appointment)

Slots are defined in the tenant's local wall-clock time. Business hours are
stored as time-of-day values and appointments as naive local datetimes, so
nothing here converts between timezones.
"""

import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import StrEnum
from typing import Any, Iterable, Sequence

from agenda.core import config
from agenda.scheduling.status import occupies_time, parse_status

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_DURATION_MINUTES = 30


@dataclass(frozen=True)
class DayHours:
    open_time: time
    close_time: time
    closed: bool = False


# Keyed by weekday with 0 = Sunday, the convention used by stored business hours.
DEFAULT_BUSINESS_HOURS: dict[int, DayHours] = {
    0: DayHours(time(9, 0), time(18, 0), closed=True),
    1: DayHours(time(9, 0), time(18, 0)),
    2: DayHours(time(9, 0), time(18, 0)),
    3: DayHours(time(9, 0), time(18, 0)),
    4: DayHours(time(9, 0), time(18, 0)),
    5: DayHours(time(9, 0), time(18, 0)),
    6: DayHours(time(9, 0), time(17, 0)),
}


class SlotState(StrEnum):
    AVAILABLE = 'available'
    BOOKED = 'booked'
    BLOCKED = 'blocked'
    PAST = 'past'
    MULTI_CONFLICT = 'multi_conflict'
    PARTIAL_OCCUPIED = 'partial_occupied'
    SELECTED = 'selected'


@dataclass(frozen=True)
class SlotAvailability:
    start: datetime
    state: SlotState
    is_booked: bool = False
    is_blocked: bool = False
    is_past: bool = False
    is_multi_slot_conflict: bool = False
    is_partially_occupied: bool = False
    is_selected: bool = False

    @property
    def label(self) -> str:
        return format_slot_time(self.start)

    @property
    def is_disabled(self) -> bool:
        return (
            self.is_booked
            or self.is_blocked
            or self.is_past
            or self.is_multi_slot_conflict
            or self.is_partially_occupied
        )

    @property
    def is_available(self) -> bool:
        return not self.is_disabled


def sunday_based_weekday(day: date) -> int:
    return (day.weekday() + 1) % 7


def format_slot_time(slot: datetime) -> str:
    return slot.strftime('%H:%M')


def to_time(value: Any) -> time:
    """Accept ``time`` objects, ``HH:MM[:SS]`` strings and timedeltas from midnight."""
    if isinstance(value, datetime):
        return value.time()
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        return (datetime.min + value).time()
    if isinstance(value, str):
        parts = value.strip().split(':')
        if len(parts) not in (2, 3):
            raise ValueError(f'Invalid time of day: {value!r}')
        hour, minute = int(parts[0]), int(parts[1])
        second = int(float(parts[2])) if len(parts) == 3 else 0
        return time(hour, minute, second)
    raise ValueError(f'Cannot convert {type(value).__name__} to time')


def get_business_hours_for_day(day: date, business_hours: Iterable[Any]) -> DayHours:
    weekday = sunday_based_weekday(day)

    for row in business_hours:
        if row.weekday == weekday:
            return DayHours(
                open_time=to_time(row.open_time),
                close_time=to_time(row.close_time),
                closed=bool(row.closed),
            )

    logger.debug('No business hours configured for weekday %s, using defaults', weekday)
    return DEFAULT_BUSINESS_HOURS[weekday]


def generate_time_slots(
    day: date,
    business_hours: Iterable[Any],
    interval_minutes: int = config.SLOT_INTERVAL_MINUTES,
) -> list[datetime]:
    hours = get_business_hours_for_day(day, business_hours)
    if hours.closed:
        return []

    slots: list[datetime] = []
    current = datetime.combine(day, hours.open_time).replace(second=0, microsecond=0)
    close = datetime.combine(day, hours.close_time)
    step = timedelta(minutes=interval_minutes)

    while current < close:
        slots.append(current)
        current += step

    return slots


def is_same_slot(first: datetime, second: datetime) -> bool:
    """Same calendar day, hour and minute; seconds are jitter."""
    return (
        first.date() == second.date()
        and first.hour == second.hour
        and first.minute == second.minute
    )


def _holds_time(appointment: Any) -> bool:
    try:
        return occupies_time(parse_status(appointment.status))
    except ValueError:
        return True


def _matches_professional(record: Any, professional_id: Any) -> bool:
    return professional_id is None or record.professional_id == professional_id


def _occupying(appointments: Iterable[Any], professional_id: Any) -> list[Any]:
    return [
        appointment
        for appointment in appointments
        if _holds_time(appointment) and _matches_professional(appointment, professional_id)
    ]


def service_duration_minutes(service: Any | None) -> int:
    duration = getattr(service, 'duration_minutes', None) if service is not None else None
    if not duration or duration <= 0:
        return DEFAULT_SERVICE_DURATION_MINUTES
    return int(duration)


def slots_required(service: Any | None, interval_minutes: int = config.SLOT_INTERVAL_MINUTES) -> int:
    return math.ceil(service_duration_minutes(service) / interval_minutes)


def is_slot_booked(slot: datetime, appointments: Iterable[Any], professional_id: Any = None) -> bool:
    return any(
        is_same_slot(appointment.start_time, slot)
        for appointment in _occupying(appointments, professional_id)
    )


def is_slot_blocked(slot: datetime, time_blocks: Iterable[Any]) -> bool:
    """Any block closes the slot, whoever it was recorded for."""
    return any(block.start_time <= slot < block.end_time for block in time_blocks)


def is_slot_past(slot: datetime, now: datetime) -> bool:
    if slot.date() != now.date():
        return False
    return slot < now


def is_slot_multi_slot_conflict(
    slot: datetime,
    appointments: Sequence[Any],
    service: Any | None = None,
    professional_id: Any = None,
    interval_minutes: int = config.SLOT_INTERVAL_MINUTES,
) -> bool:
    needed = slots_required(service, interval_minutes)
    if needed <= 1:
        return False

    for offset in range(needed):
        covered = slot + timedelta(minutes=offset * interval_minutes)
        if is_slot_booked(covered, appointments, professional_id):
            return True

    return False


def is_slot_partially_occupied(slot: datetime, appointments: Iterable[Any], professional_id: Any = None) -> bool:
    for appointment in _occupying(appointments, professional_id):
        start = appointment.start_time.replace(second=0, microsecond=0)
        if start.date() != slot.date() or is_same_slot(start, slot):
            continue
        if start < slot < appointment.end_time:
            return True
    return False


def classify_slot(
    slot: datetime,
    *,
    appointments: Sequence[Any],
    time_blocks: Sequence[Any] = (),
    service: Any | None = None,
    professional_id: Any = None,
    now: datetime | None = None,
    selected_time: str | None = None,
    interval_minutes: int = config.SLOT_INTERVAL_MINUTES,
) -> SlotAvailability:
    now = now or datetime.now()

    booked = is_slot_booked(slot, appointments, professional_id)
    blocked = is_slot_blocked(slot, time_blocks)
    past = is_slot_past(slot, now)
    multi_conflict = is_slot_multi_slot_conflict(slot, appointments, service, professional_id, interval_minutes)
    partial = is_slot_partially_occupied(slot, appointments, professional_id)
    selected = selected_time is not None and selected_time == format_slot_time(slot)

    if booked:
        state = SlotState.BOOKED
    elif blocked:
        state = SlotState.BLOCKED
    elif past:
        state = SlotState.PAST
    elif multi_conflict:
        state = SlotState.MULTI_CONFLICT
    elif partial:
        state = SlotState.PARTIAL_OCCUPIED
    elif selected:
        state = SlotState.SELECTED
    else:
        state = SlotState.AVAILABLE

    return SlotAvailability(
        start=slot,
        state=state,
        is_booked=booked,
        is_blocked=blocked,
        is_past=past,
        is_multi_slot_conflict=multi_conflict,
        is_partially_occupied=partial,
        is_selected=selected,
    )


def compute_availability(
    selected_date: date,
    *,
    business_hours: Sequence[Any],
    appointments: Sequence[Any],
    time_blocks: Sequence[Any] = (),
    service: Any | None = None,
    professional_id: Any = None,
    now: datetime | None = None,
    selected_time: str | None = None,
    interval_minutes: int = config.SLOT_INTERVAL_MINUTES,
) -> list[SlotAvailability]:
    """Classify every slot of ``selected_date``.

    A pure function of its arguments: the same snapshot always yields the same
    list. ``now`` is read once so all slots are judged against one instant.
    """
    now = now or datetime.now()
    slots = generate_time_slots(selected_date, business_hours, interval_minutes)

    logger.debug('Generated %s slots for %s', len(slots), selected_date.isoformat())

    return [
        classify_slot(
            slot,
            appointments=appointments,
            time_blocks=time_blocks,
            service=service,
            professional_id=professional_id,
            now=now,
            selected_time=selected_time,
            interval_minutes=interval_minutes,
        )
        for slot in slots
    ]


def select_time_slot(slot: SlotAvailability) -> str | None:
    """Return the ``HH:MM`` local time of ``slot``, or ``None`` when it cannot be chosen."""
    if slot.is_disabled:
        logger.debug('Slot %s is not selectable (%s)', slot.label, slot.state)
        return None
    return slot.label


def find_slot(slots: Iterable[SlotAvailability], label: str) -> SlotAvailability | None:
    for slot in slots:
        if slot.label == label:
            return slot
    return None
