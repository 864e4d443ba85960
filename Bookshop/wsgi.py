"""
WSGI config for Bookshop project.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "Bookshop.settings")

application = get_wsgi_application()
