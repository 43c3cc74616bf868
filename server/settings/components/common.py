"""Django settings for server project.

For more information on this file, see
https://docs.djangoproject.com/en/5.1/topics/settings/
"""

from typing import Final

from server.settings.components import BASE_DIR, config

SECRET_KEY = config('DJANGO_SECRET_KEY', default='insecure-development-key')

INSTALLED_APPS: Final = (
    # Default django apps:
    'django.contrib.auth',
    'django.contrib.contenttypes',

    # Your apps go here:
    'server.apps.drive',
)

MIDDLEWARE: Final = ()

USE_TZ = True
TIME_ZONE = 'UTC'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Database
# SQLite serializes writers; IMMEDIATE makes every atomic block take the
# write lock up front so select_for_update() sections never deadlock on
# lock upgrade.
DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': config(
            'DJANGO_DATABASE_NAME',
            default=str(BASE_DIR.joinpath('db.sqlite3')),
        ),
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': config('DJANGO_DATABASE_TIMEOUT', cast=int, default=20),
        },
        'TEST': {
            # File-backed test database: threads in concurrency tests
            # need real connections, not a shared-cache memory database.
            'NAME': str(BASE_DIR.joinpath('.test-db.sqlite3')),
        },
    },
}
