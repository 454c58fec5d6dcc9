import json

import pytest

from tracker.api.http_app import domain_error_response
from tracker.domain import errors
from tracker.domain.errors import (
    ConflictingTransitionError,
    DomainError,
    IllegalTransitionError,
    InvalidStatusError,
    NoOpTransitionError,
    SubmissionNotFoundError,
)
from tracker.domain.models import SubmissionStatus


def _body(response) -> dict[str, object]:
    return json.loads(response.body)


@pytest.mark.unit
def test_conflicting_transition_maps_to_409() -> None:
    response = domain_error_response(
        ConflictingTransitionError(
            submission_id="sub_1",
            expected_status=SubmissionStatus.NEW,
            attempted_status=SubmissionStatus.REJECTED,
            current_status=SubmissionStatus.PROCESSING,
        )
    )

    assert response.status_code == 409
    body = _body(response)
    assert body["current_status"] == "PROCESSING"
    assert body["attempted_status"] == "REJECTED"


@pytest.mark.unit
def test_illegal_transition_maps_to_400_with_empty_allowed_list() -> None:
    response = domain_error_response(
        IllegalTransitionError(
            current_status=SubmissionStatus.DONE,
            attempted_status=SubmissionStatus.PROCESSING,
            allowed_statuses=[],
        )
    )

    assert response.status_code == 400
    body = _body(response)
    assert body["current_status"] == "DONE"
    assert body["attempted_status"] == "PROCESSING"
    assert body["allowed_statuses"] == []


@pytest.mark.unit
def test_no_op_and_invalid_status_map_to_400() -> None:
    no_op = domain_error_response(NoOpTransitionError(SubmissionStatus.NEW))
    invalid = domain_error_response(InvalidStatusError(None))

    assert no_op.status_code == 400
    assert _body(no_op)["attempted_status"] == "NEW"
    assert invalid.status_code == 400
    assert _body(invalid) == {"message": "invalid status"}


@pytest.mark.unit
def test_not_found_maps_to_404_without_identifier_leak() -> None:
    response = domain_error_response(SubmissionNotFoundError("sub_missing"))

    assert response.status_code == 404
    assert _body(response) == {"message": "submission not found"}


@pytest.mark.unit
def test_every_domain_error_class_is_a_4xx_transition_error() -> None:
    defined = {
        name
        for name, value in vars(errors).items()
        if isinstance(value, type) and issubclass(value, DomainError) and value.__module__ == errors.__name__
    }

    assert defined == {
        "DomainError",
        "DomainValidationError",
        "DomainInvariantError",
        "InvalidStatusError",
        "SubmissionNotFoundError",
        "NoOpTransitionError",
        "IllegalTransitionError",
        "ConflictingTransitionError",
    }
    assert domain_error_response(errors.DomainInvariantError("tracking code already exists")).status_code == 400
