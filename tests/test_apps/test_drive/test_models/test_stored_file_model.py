"""Tests for StoredFile model."""

import pytest
from django.db import IntegrityError, transaction

from server.apps.drive.models import Folder, StoredFile


def _record(user, **kwargs):
    fields = {
        'owner': user,
        'stored_name': 'abc.pdf',
        'original_name': 'Report.pdf',
        'size_bytes': 100,
        'storage_path': f'/nowhere/{user.pk}/abc.pdf',
    }
    fields.update(kwargs)
    return StoredFile.objects.create(**fields)


@pytest.mark.django_db
def test_stored_file_defaults(user):
    """Test a fresh record is private with no downloads."""
    stored = _record(user)

    assert not stored.is_public
    assert stored.share_token is None
    assert stored.download_count == 0
    assert stored.content_type == ''
    assert stored.checksum_sha256 is None
    assert str(stored) == f'{user.pk}:Report.pdf'


@pytest.mark.django_db
def test_get_extension(user):
    """Test extension is taken from the stored name."""
    assert _record(user).get_extension() == 'pdf'
    assert _record(user, stored_name='plain').get_extension() == ''


@pytest.mark.django_db
def test_public_requires_token(user):
    """Test a public file must carry a share token."""
    with pytest.raises(IntegrityError), transaction.atomic():
        _record(user, is_public=True)


@pytest.mark.django_db
def test_token_requires_public(user):
    """Test a private file can't carry a share token."""
    with pytest.raises(IntegrityError), transaction.atomic():
        _record(user, share_token='leftover')


@pytest.mark.django_db
def test_stored_name_unique_per_owner(user, other_user):
    """Test stored names don't repeat within an owner."""
    _record(user)
    _record(other_user)

    with pytest.raises(IntegrityError), transaction.atomic():
        _record(user)


@pytest.mark.django_db
def test_folder_with_files_cannot_be_deleted_directly(user):
    """Test the database refuses to orphan files of a deleted folder."""
    folder = Folder.objects.create(name='Docs', owner=user)
    _record(user, folder=folder)

    with pytest.raises(IntegrityError), transaction.atomic():
        folder.delete()
