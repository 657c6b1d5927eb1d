from .base import *

DEBUG = False

SECRET_KEY = 'univibe-test-secret-key'

STORAGES = {
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

LOGGING['loggers']['apps']['level'] = 'WARNING'
