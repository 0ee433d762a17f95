from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from flask import Flask
from flask.json.provider import DefaultJSONProvider


class CustomJSONProvider(DefaultJSONProvider):
    def default(self, obj):
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, Decimal):
            return float(obj)
        # Flask would render dates as HTTP dates; the chat clients expect ISO 8601
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


def create_app(services=None):
    """
    Creates, configures, and returns the Flask application.
    This is the application factory.
    """
    app = Flask(__name__)

    # Set custom JSON provider to handle enums
    app.json = CustomJSONProvider(app)

    # Imports are placed here to avoid circular dependencies.
    from .controllers.chat_controller import ChatController
    from .services.service_factory import ServiceFactory

    if services is None:
        services = ServiceFactory.create_services()
    app.extensions["services"] = services
    app.extensions["chat_controller"] = ChatController(services)

    from .routes import register_blueprints
    register_blueprints(app)

    return app
