"""Signal handlers for drive app."""

import logging

from django.conf import settings
from django.db.models.signals import post_delete
from django.dispatch import receiver

from server.apps.drive.exceptions import StorageError
from server.apps.drive.infrastructure.storage import get_storage

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=settings.AUTH_USER_MODEL)
def delete_owner_storage(
    sender: type,
    instance: object,
    **kwargs: object,
) -> None:
    """Delete the owner's storage directory when the user is deleted.

    Folder and file records go with the user through the database
    cascade; this removes the bytes they pointed to.

    Args:
        sender: The user model class.
        instance: The user being deleted.
        **kwargs: Additional signal arguments.
    """
    owner_id = instance.pk  # type: ignore[attr-defined]
    logger.info('Deleting storage for removed owner: %s', owner_id)

    try:
        get_storage().remove_owner_directory(owner_id)
    except StorageError:
        # Log error but don't raise - DB delete already succeeded
        logger.exception(
            'Failed to delete owner storage (orphaned): %s',
            owner_id,
        )
