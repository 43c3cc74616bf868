"""Tests for drive error kinds."""

import pytest

from server.apps.drive.exceptions import (
    CycleDetectedError,
    DriveError,
    DuplicateNameError,
    ErrorKind,
    InvalidInputError,
    NotFoundError,
    PathEscapeError,
    QuotaExceededError,
    StorageError,
)


@pytest.mark.parametrize(('error', 'kind'), [
    (InvalidInputError('bad'), ErrorKind.INVALID_INPUT),
    (PathEscapeError('escape'), ErrorKind.PATH_ESCAPE),
    (NotFoundError('missing'), ErrorKind.NOT_FOUND),
    (DuplicateNameError('Docs'), ErrorKind.DUPLICATE_NAME),
    (CycleDetectedError('cycle'), ErrorKind.CYCLE_DETECTED),
    (QuotaExceededError(10, 5, 6), ErrorKind.QUOTA_EXCEEDED),
    (StorageError('io'), ErrorKind.STORAGE_ERROR),
])
def test_error_kinds(error, kind):
    """Test every error carries its kind."""
    assert isinstance(error, DriveError)
    assert error.kind is kind
    assert error.is_transient is (kind is ErrorKind.STORAGE_ERROR)


def test_quota_exceeded_message():
    """Test the message states need, availability and usage."""
    error = QuotaExceededError(
        quota_bytes=1000,
        used_bytes=600,
        required_bytes=500,
    )

    assert str(error) == (
        'Quota exceeded: need 500 bytes, only 400 bytes available '
        '(quota: 1000, used: 600)'
    )


def test_duplicate_name_message():
    """Test the conflicting name is kept on the error."""
    error = DuplicateNameError('Reports')

    assert error.name == 'Reports'
    assert 'Reports' in str(error)
