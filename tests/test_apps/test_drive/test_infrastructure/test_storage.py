"""Tests for the owner-scoped filesystem storage backend."""

import hashlib
import os
from io import BytesIO
from pathlib import Path

import pytest
from django.core.files.base import ContentFile

from server.apps.drive.exceptions import (
    InvalidInputError,
    NotFoundError,
    PathEscapeError,
    StorageError,
)
from server.apps.drive.infrastructure import storage as storage_module

_OWNER_ID = 7


def test_place_writes_under_owner_directory(storage, storage_root):
    """Test bytes land in {root}/{owner_id}/{uuid}.{ext}."""
    placed = storage.place(_OWNER_ID, BytesIO(b'hello world'), 'notes.txt')

    path = Path(placed.storage_path)
    assert path.parent == storage_root / str(_OWNER_ID)
    assert path.name == placed.stored_name
    assert placed.stored_name.endswith('.txt')
    assert path.read_bytes() == b'hello world'


def test_place_reports_size_and_checksum(storage):
    """Test size and checksum describe the bytes written."""
    content = b'x' * 10000

    placed = storage.place(_OWNER_ID, ContentFile(content), 'blob.bin')

    assert placed.size_bytes == len(content)
    assert placed.checksum_sha256 == hashlib.sha256(content).hexdigest()


def test_place_creates_owner_directory(storage, storage_root):
    """Test the owner directory is created on first placement."""
    assert not (storage_root / str(_OWNER_ID)).exists()

    storage.place(_OWNER_ID, BytesIO(b'data'), 'a.txt')
    storage.place(_OWNER_ID, BytesIO(b'data'), 'a.txt')

    assert len(list((storage_root / str(_OWNER_ID)).iterdir())) == 2


def test_place_without_extension(storage):
    """Test names without extension get a bare UUID."""
    placed = storage.place(_OWNER_ID, BytesIO(b'data'), 'Makefile')

    assert '.' not in placed.stored_name


def test_place_rejects_empty_content(storage, storage_root):
    """Test empty uploads are rejected before touching disk."""
    with pytest.raises(InvalidInputError):
        storage.place(_OWNER_ID, BytesIO(b''), 'empty.txt')

    assert not (storage_root / str(_OWNER_ID)).exists()


def test_place_rejects_traversal_name(storage):
    """Test parent-directory names are rejected."""
    with pytest.raises(InvalidInputError):
        storage.place(_OWNER_ID, BytesIO(b'data'), '../../escape.txt')


def test_place_detects_owner_escape(storage, monkeypatch):
    """Test a generated name that normalizes outside the owner dir fails."""
    monkeypatch.setattr(
        storage_module,
        'generate_stored_name',
        lambda original_name: '../neighbour.txt',
    )

    with pytest.raises(PathEscapeError):
        storage.place(_OWNER_ID, BytesIO(b'data'), 'innocent.txt')


def test_place_detects_root_escape(storage, monkeypatch):
    """Test a generated name escaping the storage root fails."""
    monkeypatch.setattr(
        storage_module,
        'generate_stored_name',
        lambda original_name: '../../../outside.txt',
    )

    with pytest.raises(PathEscapeError):
        storage.place(_OWNER_ID, BytesIO(b'data'), 'innocent.txt')


def test_place_checksum_failure_is_not_fatal(storage, monkeypatch):
    """Test a checksum error leaves a usable file with null checksum."""
    def failing_checksum(file_obj):
        raise PermissionError('denied')

    monkeypatch.setattr(storage_module, 'calculate_checksum', failing_checksum)

    placed = storage.place(_OWNER_ID, BytesIO(b'data'), 'a.txt')

    assert placed.checksum_sha256 is None
    assert Path(placed.storage_path).read_bytes() == b'data'


def test_place_write_failure_raises_storage_error(storage, monkeypatch):
    """Test I/O errors during the write become StorageError."""
    def failing_save(name, content, max_length=None):
        raise OSError('disk full')

    monkeypatch.setattr(storage, 'save', failing_save)

    with pytest.raises(StorageError) as exc_info:
        storage.place(_OWNER_ID, BytesIO(b'data'), 'a.txt')

    assert exc_info.value.is_transient


def test_load_returns_content(storage):
    """Test load reads back what was placed."""
    placed = storage.place(_OWNER_ID, BytesIO(b'round trip'), 'a.txt')

    with storage.load(placed.storage_path) as content:
        assert content.read() == b'round trip'


def test_load_missing_file(storage, storage_root):
    """Test loading a missing file raises NotFoundError."""
    with pytest.raises(NotFoundError):
        storage.load(str(storage_root / str(_OWNER_ID) / 'missing.txt'))


def test_load_outside_root(storage, tmp_path):
    """Test paths outside the storage root are refused."""
    outside = tmp_path / 'outside.txt'
    outside.write_bytes(b'secret')

    with pytest.raises(PathEscapeError):
        storage.load(str(outside))


def test_remove_deletes_file(storage):
    """Test remove deletes the placed bytes."""
    placed = storage.place(_OWNER_ID, BytesIO(b'data'), 'a.txt')

    storage.remove(placed.storage_path)

    assert not Path(placed.storage_path).exists()


def test_remove_is_idempotent(storage):
    """Test removing an absent file is not an error."""
    placed = storage.place(_OWNER_ID, BytesIO(b'data'), 'a.txt')

    storage.remove(placed.storage_path)
    storage.remove(placed.storage_path)

    assert not Path(placed.storage_path).exists()


def test_remove_owner_directory(storage, storage_root):
    """Test purge removes nested entries and the directory itself."""
    storage.place(_OWNER_ID, BytesIO(b'one'), 'a.txt')
    storage.place(_OWNER_ID, BytesIO(b'two'), 'b.txt')
    nested = storage_root / str(_OWNER_ID) / 'nested' / 'deeper'
    nested.mkdir(parents=True)
    (nested / 'c.txt').write_bytes(b'three')

    removed = storage.remove_owner_directory(_OWNER_ID)

    # 3 files + 2 nested directories + the owner directory
    assert removed == 6
    assert not (storage_root / str(_OWNER_ID)).exists()


def test_remove_owner_directory_missing(storage):
    """Test purging an owner without files removes nothing."""
    assert storage.remove_owner_directory(_OWNER_ID) == 0


def test_remove_owner_directory_reports_failure(storage, monkeypatch):
    """Test a failed deletion aborts the purge with StorageError."""
    storage.place(_OWNER_ID, BytesIO(b'one'), 'a.txt')

    def failing_unlink(path, missing_ok=False):
        raise PermissionError('read-only')

    monkeypatch.setattr(Path, 'unlink', failing_unlink)

    with pytest.raises(StorageError):
        storage.remove_owner_directory(_OWNER_ID)

    assert os.path.isdir(storage.owner_directory(_OWNER_ID))


def test_rollback_upload_swallows_errors(storage, monkeypatch):
    """Test rollback never raises."""
    def failing_delete(name):
        raise OSError('busy')

    monkeypatch.setattr(storage, 'delete', failing_delete)

    storage.rollback_upload(f'{_OWNER_ID}/missing.txt')
