"""
WSGI config for the UniVibe event ticketing page.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'univibe.settings.production')

application = get_wsgi_application()
