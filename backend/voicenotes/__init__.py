import os
from typing import Optional

from flask import Flask
from flask_cors import CORS

from .config import Config
from .logging_setup import configure_logging


def create_app(testing: bool = False, services=None):
    app = Flask(__name__)
    app.config["TESTING"] = testing

    if not testing:
        configure_logging()

    # CORS configuration for development and production
    allowed_origins = [
        "http://localhost:5173",  # Local Vite dev server
        "http://localhost:5175",  # Alternate local port
    ]

    # Add production frontend URL if set
    frontend_url: Optional[str] = os.getenv("FRONTEND_URL")
    if frontend_url:
        allowed_origins.append(frontend_url)

    # In development, allow all origins for easier testing
    if Config.FLASK_ENV == "development":
        CORS(app)
    else:
        CORS(app, origins=allowed_origins)

    if services is None:
        from .services.container import create_services

        services = create_services()
    app.extensions["services"] = services

    if not testing and services.sync.configured:
        services.trigger.schedule_initial_sync(Config.INITIAL_SYNC_DELAY_SECONDS)

    from .routes import bp as api_bp
    app.register_blueprint(api_bp, url_prefix="/api")

    return app
