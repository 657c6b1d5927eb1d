from .base import *

DEBUG = True

try:
    import debug_toolbar
    INSTALLED_APPS += ['debug_toolbar']
    MIDDLEWARE.insert(1, 'debug_toolbar.middleware.DebugToolbarMiddleware')
except ImportError:
    pass

INTERNAL_IPS = ['127.0.0.1']

# Plain static storage so runserver works without collectstatic
STORAGES = {
    'staticfiles': {
        'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
    },
}

LOG_LEVEL = 'DEBUG'
LOGGING['loggers']['apps']['level'] = LOG_LEVEL
