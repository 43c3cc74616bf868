"""Business logic for folder tree operations.

Every mutation runs under ``owner_lock`` so the duplicate-name and cycle
checks see the same tree that the write is applied to.
"""

import dataclasses
import logging
from typing import Any, final

from django.db.models import QuerySet

from server.apps.drive.exceptions import (
    CycleDetectedError,
    DuplicateNameError,
    NotFoundError,
    PathEscapeError,
    StorageError,
)
from server.apps.drive.infrastructure.metadata import validate_folder_name
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.logic.quota_operations import owner_lock, release_quota
from server.apps.drive.models import Folder, StoredFile

# User type for Django's dynamic user model
_User = Any

logger = logging.getLogger(__name__)


@final
@dataclasses.dataclass(frozen=True)
class FolderContents:
    """A folder with its direct children."""

    folder: Folder
    subfolders: list[Folder]
    files: list[StoredFile]


@final
@dataclasses.dataclass(frozen=True)
class CascadeResult:
    """Outcome of a cascading folder delete."""

    folders_deleted: int
    files_deleted: int
    bytes_released: int
    # Storage paths whose bytes could not be removed from disk
    failed_paths: list[str]


def get_folder(folder_id: int, user: _User) -> Folder:
    """Get a folder owned by the user.

    Args:
        folder_id: ID of the folder.
        user: Owner of the folder.

    Returns:
        Folder instance.

    Raises:
        NotFoundError: If no such folder belongs to the user.
    """
    try:
        return Folder.objects.get(id=folder_id, owner=user)
    except Folder.DoesNotExist as error:
        raise NotFoundError(f'Folder not found: {folder_id}') from error


def resolve_folder(folder_id: int | None, user: _User) -> Folder | None:
    """Resolve an optional folder reference; None means the owner's root.

    Args:
        folder_id: ID of the folder or None.
        user: Owner of the folder.

    Returns:
        Folder instance or None for root.

    Raises:
        NotFoundError: If an ID is given but not owned by the user.
    """
    if folder_id is None:
        return None
    return get_folder(folder_id, user)


def create_folder(
    name: str,
    user: _User,
    parent_id: int | None = None,
) -> Folder:
    """Create a folder under a parent (or at root).

    Args:
        name: Folder name.
        user: Owner of the folder.
        parent_id: Parent folder ID, None for root level.

    Returns:
        Created Folder instance.

    Raises:
        InvalidInputError: If the name is not valid.
        NotFoundError: If the parent is not owned by the user.
        DuplicateNameError: If a sibling already has this name.
    """
    validate_folder_name(name)

    with owner_lock(user):
        parent = resolve_folder(parent_id, user)
        _validate_unique_name(name, user, parent)
        folder = Folder.objects.create(name=name, owner=user, parent=parent)

    logger.info(
        'Folder created: userId=%s, folderId=%d, name=%s',
        user.pk,
        folder.id,
        name,
    )
    return folder


def rename_folder(folder_id: int, user: _User, new_name: str) -> Folder:
    """Rename a folder, keeping names unique among its siblings.

    Args:
        folder_id: ID of the folder.
        user: Owner of the folder.
        new_name: New folder name.

    Returns:
        Updated Folder instance.

    Raises:
        InvalidInputError: If the name is not valid.
        NotFoundError: If the folder is not owned by the user.
        DuplicateNameError: If a sibling already has this name.
    """
    validate_folder_name(new_name)

    with owner_lock(user):
        folder = get_folder(folder_id, user)
        if folder.name == new_name:
            return folder
        _validate_unique_name(new_name, user, folder.parent)
        folder.name = new_name
        folder.save(update_fields=['name', 'updated_at'])

    logger.info('Folder renamed: folderId=%d, name=%s', folder_id, new_name)
    return folder


def move_folder(
    folder_id: int,
    user: _User,
    new_parent_id: int | None = None,
) -> Folder:
    """Reparent a folder.

    A folder may move under a new parent only if the parent is root or
    the folder does not appear on the path from the parent to the root.

    Args:
        folder_id: ID of the folder to move.
        user: Owner of the folder.
        new_parent_id: Destination parent ID, None for root level.

    Returns:
        Updated Folder instance.

    Raises:
        NotFoundError: If either folder is not owned by the user.
        CycleDetectedError: If the destination is the folder itself or
            one of its descendants.
        DuplicateNameError: If the destination already has a folder with
            this name.
    """
    with owner_lock(user):
        folder = get_folder(folder_id, user)
        new_parent = resolve_folder(new_parent_id, user)

        if new_parent is not None and is_same_or_ancestor(folder, new_parent):
            logger.warning(
                'Rejected folder move: folderId=%d into %d',
                folder_id,
                new_parent.id,
            )
            raise CycleDetectedError(
                'Cannot move folder into itself or its children',
            )

        if folder.parent_id == new_parent_id:
            return folder

        _validate_unique_name(folder.name, user, new_parent)
        folder.parent = new_parent
        folder.save(update_fields=['parent', 'updated_at'])

    logger.info(
        'Folder moved: userId=%s, folderId=%d, newParentId=%s',
        user.pk,
        folder_id,
        new_parent_id,
    )
    return folder


def delete_folder(folder_id: int, user: _User) -> CascadeResult:
    """Delete a folder with every descendant folder and file.

    The whole subtree is deleted as one unit under the owner lock. Bytes
    are removed first; a removal failure is logged and reported in the
    result but does not stop the quota release or the record deletion.
    Quota is released and records are deleted in the same transaction.

    Args:
        folder_id: ID of the folder to delete.
        user: Owner of the folder.

    Returns:
        CascadeResult describing what was removed.

    Raises:
        NotFoundError: If the folder is not owned by the user.
    """
    storage = get_storage()

    with owner_lock(user):
        folder = get_folder(folder_id, user)
        subtree_ids = collect_subtree_ids(folder)
        files = list(
            StoredFile.objects.filter(owner=user, folder_id__in=subtree_ids),
        )

        failed_paths = []
        for stored_file in files:
            try:
                storage.remove(stored_file.storage_path)
            except (StorageError, PathEscapeError):
                logger.exception(
                    'Failed to delete file bytes during folder delete '
                    '(orphaned): %s',
                    stored_file.storage_path,
                )
                failed_paths.append(stored_file.storage_path)

        released = sum(stored_file.size_bytes for stored_file in files)
        release_quota(user, released)
        StoredFile.objects.filter(
            id__in=[stored_file.id for stored_file in files],
        ).delete()
        Folder.objects.filter(id__in=subtree_ids).delete()

    logger.info(
        'Folder deleted: userId=%s, folderId=%d, folders=%d, files=%d, '
        'bytes=%d',
        user.pk,
        folder_id,
        len(subtree_ids),
        len(files),
        released,
    )
    return CascadeResult(
        folders_deleted=len(subtree_ids),
        files_deleted=len(files),
        bytes_released=released,
        failed_paths=failed_paths,
    )


def list_root_folders(user: _User) -> QuerySet[Folder]:
    """List the owner's root-level folders.

    Args:
        user: Owner of the folders.

    Returns:
        QuerySet of folders without a parent.
    """
    return Folder.objects.filter(owner=user, parent__isnull=True)


def list_subfolders(parent_id: int, user: _User) -> QuerySet[Folder]:
    """List the direct children of a folder.

    Args:
        parent_id: ID of the parent folder.
        user: Owner of the folders.

    Returns:
        QuerySet of child folders.

    Raises:
        NotFoundError: If the parent is not owned by the user.
    """
    parent = get_folder(parent_id, user)
    return Folder.objects.filter(owner=user, parent=parent)


def get_folder_with_contents(folder_id: int, user: _User) -> FolderContents:
    """Get a folder with its direct subfolders and files.

    Args:
        folder_id: ID of the folder.
        user: Owner of the folder.

    Returns:
        FolderContents for the folder.

    Raises:
        NotFoundError: If the folder is not owned by the user.
    """
    folder = get_folder(folder_id, user)
    return FolderContents(
        folder=folder,
        subfolders=list(folder.subfolders.all()),
        files=list(folder.files.all()),
    )


def is_same_or_ancestor(folder: Folder, candidate: Folder) -> bool:
    """Check whether ``folder`` is ``candidate`` or one of its ancestors.

    Walks the candidate's parent chain by id up to the root.

    Args:
        folder: Folder being moved.
        candidate: Proposed new parent.

    Returns:
        True if ``folder`` is on the path from ``candidate`` to the root.
    """
    seen: set[int] = set()
    current_id: int | None = candidate.id
    while current_id is not None:
        if current_id == folder.id:
            return True
        if current_id in seen:
            # A corrupt chain must not loop forever
            raise CycleDetectedError(
                f'Folder chain revisits folder {current_id}',
            )
        seen.add(current_id)
        current_id = Folder.objects.filter(id=current_id).values_list(
            'parent_id',
            flat=True,
        ).first()
    return False


def collect_subtree_ids(folder: Folder) -> list[int]:
    """Collect the IDs of a folder and all of its descendants.

    Args:
        folder: Root of the subtree.

    Returns:
        Folder IDs, the given folder first.
    """
    subtree_ids = [folder.id]
    level = [folder.id]
    while level:
        level = list(
            Folder.objects.filter(
                owner_id=folder.owner_id,
                parent_id__in=level,
            ).exclude(
                id__in=subtree_ids,
            ).values_list('id', flat=True),
        )
        subtree_ids.extend(level)
    return subtree_ids


def _validate_unique_name(
    name: str,
    user: _User,
    parent: Folder | None,
) -> None:
    if Folder.objects.filter(owner=user, parent=parent, name=name).exists():
        raise DuplicateNameError(name)
