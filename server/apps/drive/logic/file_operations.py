"""Business logic for file catalog operations."""

import dataclasses
import logging
from collections.abc import Iterable
from typing import Any, BinaryIO, final

from django.core.files.base import File as DjangoFile
from django.db.models import F, QuerySet

from server.apps.drive.exceptions import (
    InvalidInputError,
    NotFoundError,
    PathEscapeError,
    StorageError,
)
from server.apps.drive.infrastructure.metadata import validate_original_name
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.logic.folder_operations import (
    list_root_folders,
    resolve_folder,
)
from server.apps.drive.logic.quota_operations import (
    get_or_create_quota,
    owner_lock,
    release_quota,
    reserve_quota,
)
from server.apps.drive.models import StoredFile

# User type for Django's dynamic user model
_User = Any

_DEFAULT_CONTENT_TYPE = 'application/octet-stream'

logger = logging.getLogger(__name__)


@final
@dataclasses.dataclass(frozen=True)
class StorageStats:
    """Aggregate storage figures for an owner."""

    used_bytes: int
    max_bytes: int
    file_count: int
    root_folder_count: int

    @property
    def available_bytes(self) -> int:
        """Bytes left before the quota is reached."""
        return max(0, self.max_bytes - self.used_bytes)

    @property
    def used_percentage(self) -> float:
        """Share of the quota in use, 0-100."""
        if self.max_bytes <= 0:
            return 0.0
        return self.used_bytes * 100 / self.max_bytes


def get_file(file_id: int, user: _User) -> StoredFile:
    """Get a file owned by the user.

    Args:
        file_id: ID of the file.
        user: Owner of the file.

    Returns:
        StoredFile instance.

    Raises:
        NotFoundError: If no such file belongs to the user.
    """
    try:
        return StoredFile.objects.get(id=file_id, owner=user)
    except StoredFile.DoesNotExist as error:
        raise NotFoundError(f'File not found: {file_id}') from error


def upload_file(  # noqa: WPS211
    user: _User,
    file_obj: BinaryIO | DjangoFile,
    original_name: str,
    content_type: str = '',
    folder_id: int | None = None,
) -> StoredFile:
    """Place uploaded bytes and create their catalog record.

    Order: reserve quota, write bytes, create record. Writing bytes can't
    be rolled back by a database transaction, so every failure after the
    reservation runs compensating actions before the error is re-raised:
    written bytes are deleted and the reservation is released.

    Args:
        user: Owner of the file.
        file_obj: File-like object to upload.
        original_name: User supplied filename, display only.
        content_type: MIME type reported by the client.
        folder_id: Destination folder, None for the owner's root.

    Returns:
        Created StoredFile instance.

    Raises:
        InvalidInputError: If the file is empty or its name is unsafe.
        NotFoundError: If the folder is not owned by the user.
        QuotaExceededError: If the upload would exceed the quota.
        PathEscapeError: If the destination leaves the owner directory.
        StorageError: If writing the bytes fails.
    """
    resolve_folder(folder_id, user)

    validate_original_name(original_name)
    upload = file_obj if isinstance(file_obj, DjangoFile) else DjangoFile(
        file_obj,
    )
    file_size = upload.size
    if not file_size:
        raise InvalidInputError('Cannot store empty file')

    # Step 1: Charge the owner
    reserve_quota(user, file_size)

    storage = get_storage()

    # Step 2: Write bytes
    try:
        placed = storage.place(user.pk, upload, original_name)
    except Exception:
        logger.warning(
            'Placement failed, releasing %d reserved bytes for user %s',
            file_size,
            user.pk,
        )
        release_quota(user, file_size)
        raise

    # Step 3: Create database record under the owner lock, against a
    # folder that still exists
    try:
        with owner_lock(user):
            folder = resolve_folder(folder_id, user)
            stored_file = StoredFile.objects.create(
                owner=user,
                folder=folder,
                stored_name=placed.stored_name,
                original_name=original_name,
                content_type=content_type or _DEFAULT_CONTENT_TYPE,
                size_bytes=placed.size_bytes,
                storage_path=placed.storage_path,
                checksum_sha256=placed.checksum_sha256,
            )
    except Exception:
        # Rollback: bytes and reservation both go
        logger.exception(
            'Failed to record upload, rolling back: %s',
            placed.storage_path,
        )
        storage.rollback_upload(f'{user.pk}/{placed.stored_name}')
        release_quota(user, file_size)
        raise

    logger.info(
        'File uploaded: userId=%s, fileId=%d, size=%d',
        user.pk,
        stored_file.id,
        stored_file.size_bytes,
    )
    return stored_file


def upload_files(
    user: _User,
    uploads: Iterable[tuple[BinaryIO | DjangoFile, str, str]],
    folder_id: int | None = None,
) -> list[StoredFile]:
    """Upload several files into one folder.

    Each file is charged and placed on its own; a failure stops the batch
    and leaves the files uploaded before it in place.

    Args:
        user: Owner of the files.
        uploads: (content, original name, content type) triples.
        folder_id: Destination folder, None for the owner's root.

    Returns:
        Created StoredFile instances in upload order.
    """
    stored_files = [
        upload_file(user, content, name, content_type, folder_id)
        for content, name, content_type in uploads
    ]
    logger.info(
        'Batch upload completed: userId=%s, fileCount=%d',
        user.pk,
        len(stored_files),
    )
    return stored_files


def download_file(file_id: int, user: _User) -> DjangoFile:
    """Open a file's bytes and count the download.

    The counter only moves once the bytes were opened.

    Args:
        file_id: ID of the file.
        user: Owner of the file.

    Returns:
        Open binary file; the caller closes it.

    Raises:
        NotFoundError: If the file record or its bytes are missing.
    """
    stored_file = get_file(file_id, user)
    content = get_storage().load(stored_file.storage_path)
    increment_download_count(stored_file)
    logger.debug('File downloaded: fileId=%d', file_id)
    return content


def increment_download_count(stored_file: StoredFile) -> None:
    """Atomically increment the download counter.

    Args:
        stored_file: File that was retrieved.
    """
    StoredFile.objects.filter(id=stored_file.id).update(
        download_count=F('download_count') + 1,
    )
    stored_file.refresh_from_db(fields=['download_count'])


def delete_file(file_id: int, user: _User) -> bool:
    """Delete a file's bytes and record, releasing its quota.

    A failure to remove the bytes is logged and does not block the
    quota release or record deletion.

    Args:
        file_id: ID of file to delete.
        user: Owner of the file.

    Returns:
        True if the bytes were removed, False if they were left orphaned.

    Raises:
        NotFoundError: If the file is not owned by the user, or was
            deleted by a concurrent call.
    """
    with owner_lock(user):
        stored_file = get_file(file_id, user)

        logger.info(
            'Deleting file: ID=%d, path=%s',
            file_id,
            stored_file.storage_path,
        )

        bytes_removed = True
        try:
            get_storage().remove(stored_file.storage_path)
        except (StorageError, PathEscapeError):
            logger.exception(
                'Failed to delete file from storage (orphaned): %s',
                stored_file.storage_path,
            )
            bytes_removed = False

        release_quota(user, stored_file.size_bytes)
        stored_file.delete()

    logger.info('File deleted: userId=%s, fileId=%d', user.pk, file_id)
    return bytes_removed


def rename_file(file_id: int, user: _User, new_name: str) -> StoredFile:
    """Change a file's display name.

    Display names are not unique; the stored name never changes.

    Args:
        file_id: ID of the file.
        user: Owner of the file.
        new_name: New display name.

    Returns:
        Updated StoredFile instance.
    """
    validate_original_name(new_name)
    stored_file = get_file(file_id, user)
    stored_file.original_name = new_name
    stored_file.save(update_fields=['original_name', 'modified_at'])
    return stored_file


def move_file(
    file_id: int,
    user: _User,
    folder_id: int | None = None,
) -> StoredFile:
    """Move a file to another folder of the same owner.

    Only the catalog changes; bytes stay where they were placed.

    Args:
        file_id: ID of the file.
        user: Owner of the file.
        folder_id: Destination folder, None for the owner's root.

    Returns:
        Updated StoredFile instance.

    Raises:
        NotFoundError: If the file or folder is not owned by the user.
    """
    with owner_lock(user):
        stored_file = get_file(file_id, user)
        stored_file.folder = resolve_folder(folder_id, user)
        stored_file.save(update_fields=['folder', 'modified_at'])

    logger.info(
        'File moved: userId=%s, fileId=%d, folderId=%s',
        user.pk,
        file_id,
        folder_id,
    )
    return stored_file


def list_files(user: _User) -> QuerySet[StoredFile]:
    """List all of the owner's files.

    Args:
        user: Owner of files.

    Returns:
        QuerySet of StoredFile objects.
    """
    return StoredFile.objects.filter(owner=user)


def list_root_files(user: _User) -> QuerySet[StoredFile]:
    """List files that are not inside any folder.

    Args:
        user: Owner of files.

    Returns:
        QuerySet of root-level StoredFile objects.
    """
    return StoredFile.objects.filter(owner=user, folder__isnull=True)


def list_folder_files(user: _User, folder_id: int) -> QuerySet[StoredFile]:
    """List files directly inside a folder.

    Args:
        user: Owner of files.
        folder_id: ID of the folder.

    Returns:
        QuerySet of StoredFile objects.

    Raises:
        NotFoundError: If the folder is not owned by the user.
    """
    folder = resolve_folder(folder_id, user)
    return StoredFile.objects.filter(owner=user, folder=folder)


def search_files(user: _User, query: str) -> QuerySet[StoredFile]:
    """Find files whose display name contains ``query``, ignoring case.

    Args:
        user: Owner of files.
        query: Substring to look for.

    Returns:
        QuerySet of matching StoredFile objects.
    """
    return StoredFile.objects.filter(
        owner=user,
        original_name__icontains=query,
    )


def get_storage_stats(user: _User) -> StorageStats:
    """Collect storage figures for an owner.

    ``used_bytes`` comes from the ledger, the authoritative counter.

    Args:
        user: Owner to report on.

    Returns:
        StorageStats for the owner.
    """
    quota = get_or_create_quota(user)
    return StorageStats(
        used_bytes=quota.used_bytes,
        max_bytes=quota.max_bytes,
        file_count=list_files(user).count(),
        root_folder_count=list_root_folders(user).count(),
    )
