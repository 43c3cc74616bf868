"""Drive app settings.

The storage root itself is configured in ``storages.py`` as the
``location`` of the default storage backend.
"""

from typing import Final

from server.settings.components import config

# Default quota: 10 GB in bytes
_DEFAULT_MAX_OWNER_STORAGE: Final = 10 * 1024 * 1024 * 1024

# Storage ceiling given to an owner's quota row when it is first created
DRIVE_MAX_OWNER_STORAGE = config(
    'DRIVE_MAX_OWNER_STORAGE',
    cast=int,
    default=_DEFAULT_MAX_OWNER_STORAGE,
)
