"""Appointment status values and their per-status behaviour.

Every dispatch on a status goes through a ``match`` that ends in
``assert_never`` so that adding a member fails type checking until each
function handles it.
"""

from enum import StrEnum
from typing import assert_never


class AppointmentStatus(StrEnum):
    SCHEDULED = 'scheduled'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'


# Rows written by the first version of the booking page used Portuguese values.
LEGACY_STATUS_ALIASES = {
    'agendado': AppointmentStatus.SCHEDULED,
    'confirmado': AppointmentStatus.CONFIRMED,
    'concluido': AppointmentStatus.COMPLETED,
    'cancelado': AppointmentStatus.CANCELLED,
    'nao_compareceu': AppointmentStatus.NO_SHOW,
}


def stored_status_values(status: AppointmentStatus) -> frozenset[str]:
    """Every value a row may hold for ``status``, legacy aliases included."""
    return frozenset(
        {status.value} | {alias for alias, alias_status in LEGACY_STATUS_ALIASES.items() if alias_status is status}
    )


# Stored values that mean the appointment no longer holds its time range.
CANCELLED_STATUS_VALUES = stored_status_values(AppointmentStatus.CANCELLED)


def parse_status(value: str | AppointmentStatus) -> AppointmentStatus:
    if isinstance(value, AppointmentStatus):
        return value

    normalized = (value or '').strip().lower().replace('-', '_')
    if normalized in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[normalized]
    try:
        return AppointmentStatus(normalized)
    except ValueError:
        raise ValueError(f'Unknown appointment status: {value!r}') from None


def is_terminal(status: AppointmentStatus) -> bool:
    match status:
        case AppointmentStatus.SCHEDULED | AppointmentStatus.CONFIRMED:
            return False
        case AppointmentStatus.COMPLETED | AppointmentStatus.CANCELLED | AppointmentStatus.NO_SHOW:
            return True
        case _:
            assert_never(status)


def occupies_time(status: AppointmentStatus) -> bool:
    """Whether an appointment in this status still holds its time range."""
    match status:
        case AppointmentStatus.CANCELLED:
            return False
        case (
            AppointmentStatus.SCHEDULED
            | AppointmentStatus.CONFIRMED
            | AppointmentStatus.COMPLETED
            | AppointmentStatus.NO_SHOW
        ):
            return True
        case _:
            assert_never(status)


def allowed_transitions(status: AppointmentStatus) -> frozenset[AppointmentStatus]:
    """Statuses reachable from ``status`` in one step.

    The order scheduled -> confirmed -> completed only moves forward;
    cancellation is reachable from every non-terminal status.
    """
    match status:
        case AppointmentStatus.SCHEDULED:
            return frozenset(
                {
                    AppointmentStatus.CONFIRMED,
                    AppointmentStatus.COMPLETED,
                    AppointmentStatus.NO_SHOW,
                    AppointmentStatus.CANCELLED,
                }
            )
        case AppointmentStatus.CONFIRMED:
            return frozenset({AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW, AppointmentStatus.CANCELLED})
        case AppointmentStatus.COMPLETED | AppointmentStatus.CANCELLED | AppointmentStatus.NO_SHOW:
            return frozenset()
        case _:
            assert_never(status)


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    if current == target:
        return True
    return target in allowed_transitions(current)


def status_label(status: AppointmentStatus) -> str:
    match status:
        case AppointmentStatus.SCHEDULED:
            return 'Scheduled'
        case AppointmentStatus.CONFIRMED:
            return 'Confirmed'
        case AppointmentStatus.COMPLETED:
            return 'Completed'
        case AppointmentStatus.CANCELLED:
            return 'Cancelled'
        case AppointmentStatus.NO_SHOW:
            return 'No-show'
        case _:
            assert_never(status)


def status_icon(status: AppointmentStatus) -> str:
    match status:
        case AppointmentStatus.SCHEDULED:
            return 'calendar'
        case AppointmentStatus.CONFIRMED | AppointmentStatus.COMPLETED:
            return 'check-circle'
        case AppointmentStatus.CANCELLED:
            return 'x-circle'
        case AppointmentStatus.NO_SHOW:
            return 'alert-circle'
        case _:
            assert_never(status)


def status_color(status: AppointmentStatus) -> str:
    match status:
        case AppointmentStatus.SCHEDULED:
            return 'blue'
        case AppointmentStatus.CONFIRMED:
            return 'green'
        case AppointmentStatus.COMPLETED:
            return 'gray'
        case AppointmentStatus.CANCELLED:
            return 'red'
        case AppointmentStatus.NO_SHOW:
            return 'orange'
        case _:
            assert_never(status)
