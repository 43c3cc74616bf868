"""Settings for production.

Values that must not have defaults in production are read strictly.
"""

from server.settings.components import config

DEBUG = False

SECRET_KEY = config('DJANGO_SECRET_KEY')

ALLOWED_HOSTS = config(
    'DJANGO_ALLOWED_HOSTS',
    default='',
    cast=lambda hosts: [host.strip() for host in hosts.split(',') if host],
)
