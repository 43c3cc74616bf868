"""Shared fixtures for drive app tests."""

import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile

from server.apps.drive.infrastructure.storage import get_storage
from server.apps.drive.models import StorageQuota

User = get_user_model()


@pytest.fixture(autouse=True)
def storage_root(settings, tmp_path):
    """Point the default storage backend at a temporary directory.

    Returns:
        Path of the storage root.
    """
    root = tmp_path / 'storage'
    settings.STORAGES = {
        'default': {
            'BACKEND': (
                'server.apps.drive.infrastructure.storage.OwnerFileStorage'
            ),
            'OPTIONS': {'location': str(root)},
        },
        'staticfiles': {
            'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
        },
    }
    return root


@pytest.fixture
def storage(storage_root):
    """Storage backend rooted at the temporary directory.

    Returns:
        OwnerFileStorage instance.
    """
    return get_storage()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def quota(user):
    """Give the test user a small 1000 byte quota.

    Returns:
        StorageQuota instance.
    """
    return StorageQuota.objects.create(user=user, max_bytes=1000)


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')
