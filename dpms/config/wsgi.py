"""
WSGI config for the DPMS project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'dpms.config.settings')

application = get_wsgi_application()
