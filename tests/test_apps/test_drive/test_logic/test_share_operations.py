"""Tests for public sharing business logic."""

import re
from io import BytesIO

import pytest

from server.apps.drive.exceptions import NotFoundError
from server.apps.drive.logic.file_operations import upload_file
from server.apps.drive.logic.share_operations import (
    download_shared_file,
    generate_share_token,
    get_shared_file_info,
    resolve_share_token,
    share_file,
    unshare_file,
)
from server.apps.drive.models import StoredFile


@pytest.fixture
def stored_file(user):
    """Upload a small text file for the test user.

    Returns:
        StoredFile instance.
    """
    return upload_file(user, BytesIO(b'shared bytes'), 'notes.txt', 'text/plain')


def test_generate_share_token_is_url_safe_and_long():
    """Test tokens carry at least 128 bits in URL-safe characters."""
    token = generate_share_token()

    assert re.fullmatch('[A-Za-z0-9_-]+', token)
    # 6 bits per character
    assert len(token) * 6 >= 128
    assert generate_share_token() != token


@pytest.mark.django_db
def test_share_file(user, stored_file):
    """Test sharing sets a token and marks the file public."""
    shared = share_file(stored_file.id, user)

    assert shared.is_public
    assert shared.share_token
    assert resolve_share_token(shared.share_token) == stored_file


@pytest.mark.django_db
def test_reshare_regenerates_token(user, stored_file):
    """Test sharing again replaces the token."""
    old_token = share_file(stored_file.id, user).share_token

    new_token = share_file(stored_file.id, user).share_token

    assert new_token != old_token
    with pytest.raises(NotFoundError):
        resolve_share_token(old_token)


@pytest.mark.django_db
def test_unshare_file(user, stored_file):
    """Test unsharing clears the token and public flag."""
    share_file(stored_file.id, user)

    unshared = unshare_file(stored_file.id, user)

    assert not unshared.is_public
    assert unshared.share_token is None


@pytest.mark.django_db
def test_stale_token_after_unshare(user, stored_file):
    """Test an old token is useless once the file is unshared."""
    token = share_file(stored_file.id, user).share_token
    unshare_file(stored_file.id, user)

    with pytest.raises(NotFoundError):
        resolve_share_token(token)

    assert StoredFile.objects.filter(id=stored_file.id).exists()


@pytest.mark.django_db
def test_resolve_unknown_token():
    """Test unknown and empty tokens are not found."""
    with pytest.raises(NotFoundError):
        resolve_share_token('does-not-exist')

    with pytest.raises(NotFoundError):
        resolve_share_token('')


@pytest.mark.django_db
def test_share_file_not_owned(other_user, stored_file):
    """Test only the owner can share a file."""
    with pytest.raises(NotFoundError):
        share_file(stored_file.id, other_user)


@pytest.mark.django_db
def test_get_shared_file_info(user, stored_file):
    """Test the public description of a shared file."""
    token = share_file(stored_file.id, user).share_token

    info = get_shared_file_info(token)

    assert info.name == 'notes.txt'
    assert info.content_type == 'text/plain'
    assert info.size_bytes == len(b'shared bytes')
    assert info.download_count == 0


@pytest.mark.django_db
def test_download_shared_file(user, stored_file):
    """Test anonymous download returns bytes and counts it."""
    token = share_file(stored_file.id, user).share_token

    record, content = download_shared_file(token)
    with content:
        assert content.read() == b'shared bytes'

    assert record.download_count == 1
    stored_file.refresh_from_db()
    assert stored_file.download_count == 1
