"""Management command to reconcile storage quotas with stored files."""

import logging
from typing import Any

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

from server.apps.drive.logic.quota_operations import (
    recalculate_usage,
    usage_discrepancy,
)

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Reset each owner's used bytes to the sum of their file sizes."""

    help = 'Recalculate storage usage from stored file records'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--owner',
            type=int,
            default=None,
            help='Only recalculate this user ID',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show drift without fixing it',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the recalculation command.

        Args:
            args: Positional arguments (unused).
            options: Command options.

        Raises:
            CommandError: If the given owner does not exist.
        """
        dry_run = options['dry_run']
        owner_id = options['owner']

        users = get_user_model().objects.order_by('pk')
        if owner_id is not None:
            users = users.filter(pk=owner_id)
            if not users.exists():
                raise CommandError(f'User {owner_id} does not exist')

        checked = 0
        drifted = 0

        for user in users:
            checked += 1
            drift = usage_discrepancy(user)
            if not drift:
                continue

            drifted += 1
            self.stdout.write(
                f'User {user.pk}: ledger off by {drift} bytes',
            )
            if not dry_run:
                recalculate_usage(user)
                logger.info('Fixed ledger drift for user %s', user.pk)

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(
                    f'Would fix {drifted} of {checked} owners',
                ),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f'Fixed {drifted} of {checked} owners'),
            )
