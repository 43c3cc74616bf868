"""Database models for drive app."""

from typing import Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_STORED_NAME_MAX_LENGTH: Final = 300
_STORAGE_PATH_MAX_LENGTH: Final = 1024
_CONTENT_TYPE_MAX_LENGTH: Final = 255
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length
_SHARE_TOKEN_MAX_LENGTH: Final = 64

_PATH_SEPARATOR: Final = '/'


def default_max_bytes() -> int:
    """Quota given to a newly created quota row.

    Returns:
        Configured per-owner ceiling in bytes.
    """
    return settings.DRIVE_MAX_OWNER_STORAGE


@final
class StorageQuota(models.Model):
    """Storage ledger for an owner.

    ``used_bytes`` is the single authoritative counter of bytes charged to
    the owner. It only changes through ``logic.quota_operations``, which
    locks this row for every mutation.
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='storage_quota',
        primary_key=True,
    )

    max_bytes = models.BigIntegerField(
        default=default_max_bytes,
        help_text='Storage quota limit in bytes',
    )

    used_bytes = models.BigIntegerField(
        default=0,
        help_text='Currently used storage in bytes',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'Storage Quota'  # type: ignore[mutable-override]
        verbose_name_plural = 'Storage Quotas'  # type: ignore[mutable-override]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(max_bytes__gte=0),
                name='drive_max_bytes_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(used_bytes__gte=0),
                name='drive_used_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user_id}: {self.used_bytes}/{self.max_bytes}'

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= self.max_bytes

    def available_bytes(self) -> int:
        """Get available storage space.

        Returns:
            Available bytes (never negative).
        """
        return max(0, self.max_bytes - self.used_bytes)


@final
class Folder(models.Model):
    """Folder in an owner's tree.

    Relationships are plain foreign keys; the tree is walked by id.
    A folder's parent chain is always finite and never revisits a folder,
    which ``logic.folder_operations`` guarantees on every move.
    """

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    # Null parent means a root-level folder
    parent = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        related_name='subfolders',
        null=True,
        blank=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['name']

        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'parent', 'name'],
                name='drive_folder_sibling_name_unique',
            ),
            # NULL parents never collide in SQL, root level needs its own
            models.UniqueConstraint(
                fields=['owner', 'name'],
                condition=models.Q(parent__isnull=True),
                name='drive_folder_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.path()}'

    def path(self) -> str:
        """Render the folder location from the owner's root.

        Example: folder 'B' inside root-level folder 'A' -> '/A/B'

        Returns:
            Slash-separated path of folder names.
        """
        names = [self.name]
        current = self.parent
        while current is not None:
            names.append(current.name)
            current = current.parent
        return _PATH_SEPARATOR + _PATH_SEPARATOR.join(reversed(names))


@final
class StoredFile(models.Model):
    """Catalog record for bytes placed on durable storage.

    ``storage_path`` is the absolute location of the bytes, written under
    ``{storage_root}/{owner_id}/{stored_name}``. ``size_bytes`` is the
    exact byte length written there and never changes.
    """

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='stored_files',
        db_index=True,
    )

    # Null folder means the file sits at the owner's root.
    # RESTRICT: folder deletion must remove its files explicitly.
    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='files',
        null=True,
        blank=True,
    )

    stored_name = models.CharField(
        max_length=_STORED_NAME_MAX_LENGTH,
        help_text='Generated filesystem name: {uuid}.{extension}',
    )

    original_name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        help_text='User supplied name, display only',
    )

    content_type = models.CharField(
        max_length=_CONTENT_TYPE_MAX_LENGTH,
        blank=True,
        default='',
    )

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    storage_path = models.CharField(
        max_length=_STORAGE_PATH_MAX_LENGTH,
        help_text='Absolute path of the stored bytes',
    )

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        null=True,
        blank=True,
        help_text='SHA256 of the bytes as written, null if unavailable',
        db_index=True,
    )

    is_public = models.BooleanField(default=False)

    share_token = models.CharField(
        max_length=_SHARE_TOKEN_MAX_LENGTH,
        null=True,
        blank=True,
        unique=True,
    )

    download_count = models.PositiveBigIntegerField(default=0)

    uploaded_at = models.DateTimeField(auto_now_add=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Stored File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Stored Files'  # type: ignore[mutable-override]
        ordering = ['-uploaded_at']

        indexes = [
            # Optimize folder listing queries
            models.Index(
                fields=['owner', 'folder'],
                name='drive_file_owner_folder_idx',
            ),
        ]

        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'stored_name'],
                name='drive_file_stored_name_unique',
            ),
            # share_token is present if and only if the file is public
            models.CheckConstraint(
                condition=(
                    models.Q(is_public=True, share_token__isnull=False) |
                    models.Q(is_public=False, share_token__isnull=True)
                ),
                name='drive_file_share_token_public',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.owner_id}:{self.original_name}'

    def get_extension(self) -> str:
        """Extract stored file extension.

        Example: '1f0c....pdf' -> 'pdf'

        Returns:
            Extension without dot, empty if the file has none.
        """
        _, dot, extension = self.stored_name.rpartition('.')
        return extension if dot else ''
