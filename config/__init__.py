"""Bastion project configuration (settings, URLs, WSGI/ASGI)."""
