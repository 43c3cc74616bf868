"""Django storage configuration.

Uploaded bytes live on the local filesystem under ``DRIVE_STORAGE_ROOT``,
one directory per owner. The backend is a ``FileSystemStorage`` subclass
that adds owner-scoped placement, checksums and purge support.
"""

from typing import Any, Final

from server.settings.components import BASE_DIR, config

# Storage configuration dictionary
# Owner files go through the drive backend, static files stay separate
STORAGES: Final[dict[str, dict[str, Any]]] = {
    'default': {
        'BACKEND': 'server.apps.drive.infrastructure.storage.OwnerFileStorage',
        'OPTIONS': {
            'location': config(
                'DRIVE_STORAGE_ROOT',
                default=str(BASE_DIR.joinpath('storage')),
            ),
            'file_permissions_mode': 0o640,
            'directory_permissions_mode': 0o750,
        },
    },
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}
