"""Error taxonomy: stable codes and HTTP statuses."""

import pytest

from questline.errors import (
    AlreadyAssigned,
    Conflict,
    InvalidArgument,
    NotFound,
    ProgressionError,
    ResourceExhausted,
    Unavailable,
)


@pytest.mark.parametrize(
    ("error_cls", "code", "status"),
    [
        (NotFound, "not_found", 404),
        (Conflict, "conflict", 409),
        (AlreadyAssigned, "already_assigned", 409),
        (InvalidArgument, "invalid_argument", 400),
        (Unavailable, "unavailable", 503),
        (ResourceExhausted, "resource_exhausted", 500),
    ],
)
def test_error_codes(error_cls, code, status):
    err = error_cls("boom")
    assert isinstance(err, ProgressionError)
    assert err.code == code
    assert err.status_code == status
    assert err.message == "boom"
    assert str(err) == "boom"


def test_invalid_argument_is_value_error():
    with pytest.raises(ValueError, match="bad"):
        raise InvalidArgument("bad")


def test_already_assigned_carries_assignment():
    marker = object()
    err = AlreadyAssigned("dup", assignment=marker)
    assert err.assignment is marker
