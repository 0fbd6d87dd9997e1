from collections.abc import Mapping

from flask import Flask

from .config import Config
from .exceptions import register_error_handlers
from .extensions import cors, db
from .mailer import EmailService
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    app.config.from_object(Config)
    if isinstance(config_object, Mapping):
        app.config.from_mapping(config_object)
    elif config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_envvar("APP_SETTINGS", silent=True)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    EmailService(app)

    # Bearer tokens travel in the Authorization header
    cors.init_app(
        app,
        origins=app.config.get("CORS_ORIGINS", "*"),
        supports_credentials=True,
        allow_headers=["Content-Type", "Authorization", "Stripe-Signature"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    )

    register_error_handlers(app)
    register_routes(app)

    return app
