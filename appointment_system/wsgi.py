"""
WSGI config for the appointment system.

Exposes the WSGI callable as a module-level variable named ``application``.
WebSocket traffic for the notification feed needs the ASGI entrypoint in
``appointment_system.asgi`` instead.
"""
import os

from django.core.wsgi import get_wsgi_application  # type: ignore

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'appointment_system.settings')

application = get_wsgi_application()
