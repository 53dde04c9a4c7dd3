"""Test settings for Stayline project.

Runs Celery tasks eagerly and uses a file backed SQLite database so that
tests exercising concurrent reservations can open one connection per
thread. ``transaction_mode=IMMEDIATE`` makes SQLite take the write lock at
``BEGIN`` which serialises writers the same way row locks do on PostgreSQL.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test.sqlite3',  # noqa: F405
        'OPTIONS': {
            'timeout': 30,
            'transaction_mode': 'IMMEDIATE',
        },
        'TEST': {
            'NAME': BASE_DIR / 'test_stayline.sqlite3',  # noqa: F405
        },
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = None

BOOKINGS = {  # noqa: F405
    **BOOKINGS,  # noqa: F405
    'CREATE_BACKOFF_SECONDS': 0.01,
    'PAYMENT_WEBHOOK_SECRET': 'test-webhook-secret',
}

LOGGING["handlers"]["console"]["level"] = "WARNING"  # noqa: F405
