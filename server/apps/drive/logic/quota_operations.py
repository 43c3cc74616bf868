"""Business logic for the per-owner storage ledger.

Every mutation of ``StorageQuota.used_bytes`` locks the owner's quota row
(``select_for_update``) inside an atomic block, so the check-and-increment
of a reservation is a single critical section per owner.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from django.db import transaction
from django.db.models import Sum  # noqa: WPS347

from server.apps.drive.exceptions import QuotaExceededError
from server.apps.drive.infrastructure.metadata import format_bytes
from server.apps.drive.models import StorageQuota, StoredFile

# User type for Django's dynamic user model
_User = Any

# Field name constant to avoid string literal over-use
_USED_BYTES_FIELD = 'used_bytes'  # noqa: WPS226

logger = logging.getLogger(__name__)


def get_or_create_quota(user: _User) -> StorageQuota:
    """Get or create quota for user (on-demand creation).

    Args:
        user: User to get quota for.

    Returns:
        StorageQuota instance for the user.
    """
    quota, created = StorageQuota.objects.get_or_create(user=user)
    if created:
        logger.info(
            'Created quota for user %s: %d bytes',
            user.pk,
            quota.max_bytes,
        )
    return quota


@contextmanager
def owner_lock(user: _User) -> Iterator[StorageQuota]:
    """Serialize work for one owner.

    Opens an atomic block and locks the owner's quota row for its
    duration. Folder tree mutations run under this lock so a cycle check
    and the write that follows it can't interleave with another mutation.

    Args:
        user: Owner to lock.

    Yields:
        The locked StorageQuota row.
    """
    get_or_create_quota(user)
    with transaction.atomic():
        yield StorageQuota.objects.select_for_update().get(user=user)


def reserve_quota(user: _User, size_bytes: int) -> None:
    """Atomically check the quota and charge ``size_bytes`` to the owner.

    Args:
        user: User to charge.
        size_bytes: Bytes to add to usage.

    Raises:
        QuotaExceededError: If the charge would exceed the quota. Usage is
            left unchanged.
    """
    with owner_lock(user) as quota:
        if not quota.has_space_for(size_bytes):
            logger.warning(
                'Quota exceeded for user %s: need %s, have %s available',
                user.pk,
                format_bytes(size_bytes),
                format_bytes(quota.available_bytes()),
            )
            raise QuotaExceededError(
                quota_bytes=quota.max_bytes,
                used_bytes=quota.used_bytes,
                required_bytes=size_bytes,
            )

        quota.used_bytes += size_bytes
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.debug(
        'Reserved %d bytes for user %s (new: %d)',
        size_bytes,
        user.pk,
        quota.used_bytes,
    )


def release_quota(user: _User, size_bytes: int) -> None:
    """Atomically give ``size_bytes`` back to the owner.

    Usage is clamped to 0. A release larger than the current usage means
    some caller released twice; it is logged as an error rather than
    raised so the surrounding delete still completes.

    Args:
        user: User to credit.
        size_bytes: Bytes to subtract from usage.
    """
    with owner_lock(user) as quota:
        if size_bytes > quota.used_bytes:
            logger.error(
                'Release of %d bytes exceeds usage %d for user %s',
                size_bytes,
                quota.used_bytes,
                user.pk,
            )

        quota.used_bytes = max(0, quota.used_bytes - size_bytes)
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.debug(
        'Released %d bytes for user %s (new: %d)',
        size_bytes,
        user.pk,
        quota.used_bytes,
    )


def calculate_stored_bytes(user: _User) -> int:
    """Sum the sizes of the owner's live catalog records.

    Args:
        user: Owner of the files.

    Returns:
        Total size in bytes.
    """
    return StoredFile.objects.filter(owner=user).aggregate(
        total=Sum('size_bytes'),
    )['total'] or 0


def usage_discrepancy(user: _User) -> int:
    """Compare the ledger with the catalog.

    Args:
        user: Owner to check.

    Returns:
        ``used_bytes`` minus the sum of live file sizes; 0 when the
        ledger is consistent.
    """
    quota = get_or_create_quota(user)
    return quota.used_bytes - calculate_stored_bytes(user)


def recalculate_usage(user: _User) -> int:
    """Recalculate user's storage usage from actual files.

    This is useful for fixing inconsistencies left by a crash between
    writing bytes and recording them.

    Args:
        user: User to recalculate usage for.

    Returns:
        New calculated usage in bytes.
    """
    with owner_lock(user) as quota:
        total = calculate_stored_bytes(user)
        old_usage = quota.used_bytes
        quota.used_bytes = total
        quota.save(update_fields=[_USED_BYTES_FIELD])

    logger.info(
        'Recalculated usage for user %s: %d -> %d bytes',
        user.pk,
        old_usage,
        total,
    )

    return total
