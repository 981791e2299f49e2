"""
WSGI config for the alumnihub project.
"""
import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'alumnihub.config.settings')

application = get_wsgi_application()
