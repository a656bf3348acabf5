"""
Dashboard blueprint package.

Exposes the Blueprint object imported in orderdesk.create_app.
The actual routes live in routes.py.
"""

from .routes import dashboard_bp  # noqa: F401
