"""
URL configuration for the UniVibe event ticketing page.
"""
from django.conf import settings
from django.urls import path, include

urlpatterns = [
    path('', include('apps.tickets.urls', namespace='tickets')),
]

# Custom Error Handlers
handler404 = 'apps.tickets.views.error_404'
handler500 = 'apps.tickets.views.error_500'

if settings.DEBUG and 'debug_toolbar' in settings.INSTALLED_APPS:
    import debug_toolbar
    urlpatterns = [path('__debug__/', include(debug_toolbar.urls))] + urlpatterns
