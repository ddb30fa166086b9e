import os

from django.core.asgi import get_asgi_application

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'lms_api.settings')

# Только HTTP: приложение не обслуживает websocket-соединения.
application = get_asgi_application()
