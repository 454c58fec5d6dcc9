import pytest

from tracker.domain.errors import InvalidStatusError
from tracker.domain.lifecycle import (
    ALLOWED_TRANSITIONS,
    STATUS_ORDER,
    allowed_next_statuses,
    is_terminal,
    parse_status,
    sorted_statuses,
)
from tracker.domain.models import SubmissionStatus


@pytest.mark.unit
def test_transition_table_matches_forward_only_lifecycle() -> None:
    assert ALLOWED_TRANSITIONS[SubmissionStatus.NEW] == {SubmissionStatus.PROCESSING, SubmissionStatus.REJECTED}
    assert ALLOWED_TRANSITIONS[SubmissionStatus.PROCESSING] == {SubmissionStatus.DONE, SubmissionStatus.REJECTED}


@pytest.mark.unit
@pytest.mark.parametrize("status", [SubmissionStatus.DONE, SubmissionStatus.REJECTED])
def test_final_statuses_allow_nothing(status: SubmissionStatus) -> None:
    assert allowed_next_statuses(status) == frozenset()
    assert is_terminal(status) is True


@pytest.mark.unit
def test_every_status_has_a_transition_entry() -> None:
    assert set(ALLOWED_TRANSITIONS) == set(SubmissionStatus)
    assert STATUS_ORDER == (
        SubmissionStatus.NEW,
        SubmissionStatus.PROCESSING,
        SubmissionStatus.DONE,
        SubmissionStatus.REJECTED,
    )


@pytest.mark.unit
def test_sorted_statuses_follow_lifecycle_order() -> None:
    assert sorted_statuses(frozenset({SubmissionStatus.REJECTED, SubmissionStatus.DONE})) == [
        SubmissionStatus.DONE,
        SubmissionStatus.REJECTED,
    ]
    assert sorted_statuses(frozenset()) == []


@pytest.mark.unit
def test_parse_status_accepts_canonical_names() -> None:
    assert parse_status("PROCESSING") is SubmissionStatus.PROCESSING


@pytest.mark.unit
@pytest.mark.parametrize("value", ["processing", "ARCHIVED", "", None, 3, " NEW"])
def test_parse_status_rejects_unknown_values(value: object) -> None:
    with pytest.raises(InvalidStatusError) as exc_info:
        parse_status(value)

    assert exc_info.value.value == value
