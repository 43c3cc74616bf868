"""Exceptions for drive app.

Every failure the engine reports is a ``DriveError`` with a ``kind``
taken from the closed ``ErrorKind`` set. Callers can either catch the
concrete subclass or match on ``error.kind``.
"""

import enum
from typing import ClassVar, final


@final
class ErrorKind(enum.Enum):
    """All failure kinds reported by the drive engine."""

    INVALID_INPUT = 'invalid_input'
    PATH_ESCAPE = 'path_escape'
    NOT_FOUND = 'not_found'
    DUPLICATE_NAME = 'duplicate_name'
    CYCLE_DETECTED = 'cycle_detected'
    QUOTA_EXCEEDED = 'quota_exceeded'
    STORAGE_ERROR = 'storage_error'


class DriveError(Exception):
    """Base class for drive engine failures."""

    kind: ClassVar[ErrorKind]

    @property
    def is_transient(self) -> bool:
        """Whether retrying the same operation may succeed.

        Only storage I/O failures are transient; quota and tree
        violations will fail the same way every time.
        """
        return self.kind is ErrorKind.STORAGE_ERROR


@final
class InvalidInputError(DriveError):
    """Raised for empty uploads and unsafe names."""

    kind = ErrorKind.INVALID_INPUT


@final
class PathEscapeError(DriveError):
    """Raised when a destination resolves outside the owner directory."""

    kind = ErrorKind.PATH_ESCAPE


@final
class NotFoundError(DriveError):
    """Raised when a file, folder or share token lookup misses."""

    kind = ErrorKind.NOT_FOUND


@final
class DuplicateNameError(DriveError):
    """Raised when a sibling folder with the same name exists."""

    kind = ErrorKind.DUPLICATE_NAME

    def __init__(self, name: str) -> None:
        """Initialize DuplicateNameError.

        Args:
            name: The conflicting folder name.
        """
        self.name = name
        super().__init__(f"Folder with name '{name}' already exists")


@final
class CycleDetectedError(DriveError):
    """Raised when a folder would be moved into itself or a descendant."""

    kind = ErrorKind.CYCLE_DETECTED


@final
class QuotaExceededError(DriveError):
    """Raised when upload would exceed owner's storage quota."""

    kind = ErrorKind.QUOTA_EXCEEDED

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = max(0, quota_bytes - used_bytes)
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )


@final
class StorageError(DriveError):
    """Raised when writing, reading or deleting bytes fails."""

    kind = ErrorKind.STORAGE_ERROR
