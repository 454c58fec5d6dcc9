from __future__ import annotations

from tracker.domain.errors import InvalidStatusError
from tracker.domain.models import SubmissionStatus


def allowed_next_statuses(status: SubmissionStatus) -> frozenset[SubmissionStatus]:
    match status:
        case SubmissionStatus.NEW:
            return frozenset({SubmissionStatus.PROCESSING, SubmissionStatus.REJECTED})
        case SubmissionStatus.PROCESSING:
            return frozenset({SubmissionStatus.DONE, SubmissionStatus.REJECTED})
        case SubmissionStatus.DONE | SubmissionStatus.REJECTED:
            return frozenset()


ALLOWED_TRANSITIONS: dict[SubmissionStatus, frozenset[SubmissionStatus]] = {
    status: allowed_next_statuses(status) for status in SubmissionStatus
}

# Ordering used whenever allowed statuses are shown to a caller.
STATUS_ORDER: tuple[SubmissionStatus, ...] = tuple(SubmissionStatus)


def is_terminal(status: SubmissionStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


def sorted_statuses(statuses: frozenset[SubmissionStatus]) -> list[SubmissionStatus]:
    return [status for status in STATUS_ORDER if status in statuses]


def parse_status(value: object) -> SubmissionStatus:
    if not isinstance(value, str) or not value:
        raise InvalidStatusError(value)
    try:
        return SubmissionStatus(value)
    except ValueError as exc:
        raise InvalidStatusError(value) from exc
