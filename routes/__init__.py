"""
Flask route blueprints for the private trading API.

- api: JSON endpoints (operations, status, sessions, health)

Each blueprint is registered with the Flask app in create_app().
"""

from .api import api_bp, register_error_handlers

__all__ = [
    "api_bp",
    "register_error_handlers",
    "register_blueprints",
]


def register_blueprints(app):
    """
    Register all blueprints and JSON error handlers with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(api_bp)
    register_error_handlers(app)
