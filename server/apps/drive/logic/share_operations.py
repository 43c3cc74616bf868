"""Business logic for public sharing via share tokens."""

import dataclasses
import logging
import secrets
from typing import Any, Final, final

from django.core.files.base import File as DjangoFile

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.logic.file_operations import (
    get_file,
    increment_download_count,
)
from server.apps.drive.models import StoredFile

# User type for Django's dynamic user model
_User = Any

# Token entropy in bytes (256 bits, 43 URL-safe characters)
_SHARE_TOKEN_BYTES: Final = 32

logger = logging.getLogger(__name__)


@final
@dataclasses.dataclass(frozen=True)
class SharedFileInfo:
    """Public description of a shared file."""

    name: str
    content_type: str
    size_bytes: int
    download_count: int


def generate_share_token() -> str:
    """Generate an unguessable URL-safe share token.

    Returns:
        Random token string.
    """
    return secrets.token_urlsafe(_SHARE_TOKEN_BYTES)


def share_file(file_id: int, user: _User) -> StoredFile:
    """Make a file publicly retrievable by a fresh share token.

    Sharing an already shared file replaces its token, so the old link
    stops working.

    Args:
        file_id: ID of the file.
        user: Owner of the file.

    Returns:
        Updated StoredFile instance.

    Raises:
        NotFoundError: If the file is not owned by the user.
    """
    stored_file = get_file(file_id, user)
    stored_file.share_token = generate_share_token()
    stored_file.is_public = True
    stored_file.save(update_fields=['share_token', 'is_public', 'modified_at'])

    logger.info('File shared: userId=%s, fileId=%d', user.pk, file_id)
    return stored_file


def unshare_file(file_id: int, user: _User) -> StoredFile:
    """Stop public sharing and drop the share token.

    Args:
        file_id: ID of the file.
        user: Owner of the file.

    Returns:
        Updated StoredFile instance.

    Raises:
        NotFoundError: If the file is not owned by the user.
    """
    stored_file = get_file(file_id, user)
    stored_file.share_token = None
    stored_file.is_public = False
    stored_file.save(update_fields=['share_token', 'is_public', 'modified_at'])

    logger.info('File unshared: userId=%s, fileId=%d', user.pk, file_id)
    return stored_file


def resolve_share_token(share_token: str) -> StoredFile:
    """Find a publicly shared file by its token, without an owner check.

    Args:
        share_token: Token from a share link.

    Returns:
        StoredFile instance.

    Raises:
        NotFoundError: If no file has this token or it is not public.
    """
    if not share_token:
        raise NotFoundError('Shared file not found')

    try:
        stored_file = StoredFile.objects.get(share_token=share_token)
    except StoredFile.DoesNotExist as error:
        raise NotFoundError('Shared file not found') from error

    if not stored_file.is_public:
        raise NotFoundError('Shared file not found')
    return stored_file


def get_shared_file_info(share_token: str) -> SharedFileInfo:
    """Describe a shared file for an anonymous visitor.

    Args:
        share_token: Token from a share link.

    Returns:
        SharedFileInfo for the file.

    Raises:
        NotFoundError: If the token does not resolve to a public file.
    """
    stored_file = resolve_share_token(share_token)
    return SharedFileInfo(
        name=stored_file.original_name,
        content_type=stored_file.content_type,
        size_bytes=stored_file.size_bytes,
        download_count=stored_file.download_count,
    )


def download_shared_file(share_token: str) -> tuple[StoredFile, DjangoFile]:
    """Open a shared file's bytes and count the download.

    Args:
        share_token: Token from a share link.

    Returns:
        The file record and its open binary content.

    Raises:
        NotFoundError: If the token does not resolve to a public file or
            its bytes are missing.
    """
    stored_file = resolve_share_token(share_token)
    content = get_storage().load(stored_file.storage_path)
    increment_download_count(stored_file)

    logger.debug('Shared file downloaded: fileId=%d', stored_file.id)
    return stored_file, content
