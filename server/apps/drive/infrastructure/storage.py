"""Owner-scoped filesystem storage backend for uploaded bytes."""

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, BinaryIO, final, override

from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import File as DjangoFile
from django.core.files.storage import FileSystemStorage, default_storage

from server.apps.drive.exceptions import (
    InvalidInputError,
    NotFoundError,
    PathEscapeError,
    StorageError,
)
from server.apps.drive.infrastructure.metadata import (
    calculate_checksum,
    generate_stored_name,
    validate_original_name,
)

logger = logging.getLogger(__name__)


@final
@dataclasses.dataclass(frozen=True)
class PlacedFile:
    """Result of writing uploaded bytes to storage."""

    stored_name: str
    storage_path: str
    size_bytes: int
    checksum_sha256: str | None


@final
class OwnerFileStorage(FileSystemStorage):
    """Filesystem storage backend for owner files.

    Extends Django's FileSystemStorage with:
    - Placement under ``{location}/{owner_id}/{uuid}.{ext}``
    - Escape checks on every resolved destination
    - Checksums computed from the bytes as written
    - Owner directory purge
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str | None,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file with error handling and logging.

        Args:
            name: Storage name for the file, relative to the root.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage name used.

        Raises:
            OSError: If the write fails.
        """
        try:
            logger.info('Writing file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully wrote file: %s', saved_name)
        except Exception:
            logger.exception('Failed to write file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file with error handling and logging.

        Missing files are ignored.

        Args:
            name: Storage name of file to delete.

        Raises:
            OSError: If the delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def owner_directory(self, owner_id: int) -> str:
        """Get the absolute directory holding an owner's bytes.

        Args:
            owner_id: Owner's user ID.

        Returns:
            Normalized absolute directory path.
        """
        return os.path.normpath(os.path.join(self.location, str(owner_id)))

    def place(
        self,
        owner_id: int,
        content: BinaryIO | DjangoFile,
        original_name: str,
    ) -> PlacedFile:
        """Write uploaded content under a generated name.

        The checksum is computed by reading the written file back, so it
        certifies what was actually persisted. A checksum failure leaves
        the checksum empty instead of failing the placement.

        Args:
            owner_id: Owner's user ID.
            content: Uploaded bytes.
            original_name: User supplied filename.

        Returns:
            Stored name, absolute path, size and checksum of the bytes.

        Raises:
            InvalidInputError: If content is empty or the name is unsafe.
            PathEscapeError: If the destination leaves the owner directory.
            StorageError: If writing the bytes fails.
        """
        validate_original_name(original_name)
        upload = _as_django_file(content)
        if not upload.size:
            raise InvalidInputError('Cannot store empty file')

        name = self._resolve_owner_name(
            owner_id,
            generate_stored_name(original_name),
        )

        try:
            saved_name = self.save(name, upload)
        except OSError as error:
            raise StorageError(
                f'Failed to store file: {original_name}',
            ) from error

        written_size = self.size(saved_name)
        if written_size != upload.size:
            self.rollback_upload(saved_name)
            raise StorageError(
                f'Short write for {original_name}: '
                f'{written_size} of {upload.size} bytes',
            )

        return PlacedFile(
            stored_name=Path(saved_name).name,
            storage_path=self.path(saved_name),
            size_bytes=written_size,
            checksum_sha256=self._checksum_or_none(saved_name),
        )

    def load(self, storage_path: str) -> DjangoFile:
        """Open stored bytes for reading.

        Args:
            storage_path: Absolute path recorded at placement.

        Returns:
            Open binary file; the caller closes it.

        Raises:
            NotFoundError: If the file is missing or unreadable.
        """
        name = self._relative_name(storage_path)
        try:
            return self.open(name, 'rb')
        except OSError as error:
            logger.warning('Could not read file: %s', storage_path)
            raise NotFoundError(f'Could not read file: {name}') from error

    def remove(self, storage_path: str) -> None:
        """Delete stored bytes; removing a missing file is not an error.

        Args:
            storage_path: Absolute path recorded at placement.

        Raises:
            StorageError: If the file exists but cannot be deleted.
        """
        name = self._relative_name(storage_path)
        try:
            self.delete(name)
        except OSError as error:
            raise StorageError(f'Could not delete file: {name}') from error

    def remove_owner_directory(self, owner_id: int) -> int:
        """Recursively delete an owner's directory, deepest entries first.

        Args:
            owner_id: Owner's user ID.

        Returns:
            Number of filesystem entries removed.

        Raises:
            StorageError: On the first entry that cannot be deleted;
                entries removed before it stay removed.
        """
        owner_dir = Path(self.owner_directory(owner_id))
        if not owner_dir.exists():
            return 0

        # Reverse path order puts every child before its parent
        entries = sorted(owner_dir.rglob('*'), reverse=True)
        entries.append(owner_dir)

        removed = 0
        for entry in entries:
            try:
                if entry.is_dir() and not entry.is_symlink():
                    entry.rmdir()
                else:
                    entry.unlink()
            except OSError as error:
                logger.exception(
                    'Owner directory purge stopped at %s (%d removed)',
                    entry,
                    removed,
                )
                raise StorageError(f'Could not delete: {entry}') from error
            removed += 1

        logger.info(
            'Owner directory deleted: owner=%s, entries=%d',
            owner_id,
            removed,
        )
        return removed

    def rollback_upload(self, name: str) -> None:
        """Delete written bytes after a failed catalog write.

        This is a best-effort operation - if deletion fails, the error
        is logged but not raised, as the caller is already reporting the
        original failure.

        Args:
            name: Storage name of file to delete.
        """
        try:
            logger.warning('Rolling back upload, deleting file: %s', name)
            self.delete(name)
            logger.info('Successfully rolled back file upload: %s', name)
        except OSError:
            # The file remains on disk without a catalog record
            logger.exception(
                'Failed to rollback upload, orphaned file: %s',
                name,
            )

    def _resolve_owner_name(self, owner_id: int, stored_name: str) -> str:
        owner_dir = self.owner_directory(owner_id)
        name = f'{owner_id}/{stored_name}'
        try:
            destination = os.path.normpath(self.path(name))
        except SuspiciousFileOperation as error:
            raise PathEscapeError(
                'Cannot store file outside owner directory',
            ) from error

        if os.path.dirname(destination) != owner_dir:
            raise PathEscapeError('Cannot store file outside owner directory')
        return name

    def _relative_name(self, storage_path: str) -> str:
        try:
            relative = Path(os.path.normpath(storage_path)).relative_to(
                self.location,
            )
        except ValueError as error:
            raise PathEscapeError(
                f'Path is outside storage root: {storage_path}',
            ) from error
        return relative.as_posix()

    def _checksum_or_none(self, name: str) -> str | None:
        try:
            with self.open(name, 'rb') as stored_file:
                return calculate_checksum(stored_file)
        except OSError:
            logger.warning(
                'Failed to calculate checksum for file: %s',
                name,
                exc_info=True,
            )
            return None


def get_storage() -> OwnerFileStorage:
    """Get the configured default storage backend.

    Returns:
        OwnerFileStorage instance configured in STORAGES.
    """
    return default_storage  # type: ignore[return-value]


def _as_django_file(content: BinaryIO | DjangoFile) -> DjangoFile:
    if isinstance(content, DjangoFile):
        return content
    return DjangoFile(content)
