"""Checksum, naming and path utilities for stored files."""

import hashlib
import uuid
from typing import BinaryIO, Final

from server.apps.drive.exceptions import InvalidInputError

_CHUNK_SIZE: Final = 8192  # 8KB chunks for checksum calculation

_DOT_SEGMENTS: Final = frozenset(('.', '..'))
_FORBIDDEN_CHARACTERS: Final = ('/', '\\', '\x00')
_KILOBYTE: Final = 1024


def calculate_checksum(file_obj: BinaryIO) -> str:
    """Calculate SHA256 checksum of file.

    Reads file in chunks to handle large files efficiently.
    Resets file pointer to beginning after calculation.

    Args:
        file_obj: File-like object to checksum.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    sha256_hash = hashlib.sha256()

    # Reset file pointer to beginning
    file_obj.seek(0)

    # Read in chunks to handle large files
    for chunk in iter(lambda: file_obj.read(_CHUNK_SIZE), b''):
        sha256_hash.update(chunk)

    # Reset file pointer to beginning for subsequent operations
    file_obj.seek(0)

    return sha256_hash.hexdigest()


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Everything after the last dot, case preserved.

    Args:
        filename: Filename (e.g., 'archive.tar.gz').

    Returns:
        Extension without dot (e.g., 'gz').
        Returns empty string if there is no dot.
    """
    _, dot, extension = filename.rpartition('.')
    return extension if dot else ''


def generate_stored_name(original_name: str) -> str:
    """Generate a collision-resistant filesystem name.

    Args:
        original_name: User supplied filename.

    Returns:
        Random UUID plus the original extension (e.g., '3f2a....pdf').
    """
    extension = get_file_extension(original_name)
    stored_name = str(uuid.uuid4())
    if extension:
        return f'{stored_name}.{extension}'
    return stored_name


def validate_original_name(original_name: str) -> None:
    """Validate a user supplied filename before it touches storage.

    Rejects empty names, path separators (and with them absolute paths
    and nested parent-directory segments), null bytes and dot segments.

    Args:
        original_name: User supplied filename.

    Raises:
        InvalidInputError: If the name is not a safe relative filename.
    """
    if not original_name or not original_name.strip():
        raise InvalidInputError('File name cannot be empty')

    if any(char in original_name for char in _FORBIDDEN_CHARACTERS):
        raise InvalidInputError(f'Invalid file name: {original_name}')

    if original_name in _DOT_SEGMENTS:
        raise InvalidInputError(f'Invalid file path: {original_name}')


def validate_folder_name(name: str) -> None:
    """Validate a folder name.

    Args:
        name: Proposed folder name.

    Raises:
        InvalidInputError: If the name is empty, a dot segment, or
            contains a path separator.
    """
    if not name or not name.strip():
        raise InvalidInputError('Folder name cannot be empty')

    if name in _DOT_SEGMENTS:
        raise InvalidInputError(f'Invalid folder name: {name}')

    if any(char in name for char in _FORBIDDEN_CHARACTERS):
        raise InvalidInputError(
            f'Folder name cannot contain path separators: {name}',
        )


def format_bytes(size_bytes: int) -> str:
    """Render a byte count for humans.

    Example: 1536 -> '1.50 KB'

    Args:
        size_bytes: Size in bytes.

    Returns:
        Size with two decimals in the largest unit up to GB.
    """
    if size_bytes < _KILOBYTE:
        return f'{size_bytes} B'
    if size_bytes < _KILOBYTE ** 2:
        return f'{size_bytes / _KILOBYTE:.2f} KB'
    if size_bytes < _KILOBYTE ** 3:
        return f'{size_bytes / _KILOBYTE ** 2:.2f} MB'
    return f'{size_bytes / _KILOBYTE ** 3:.2f} GB'
