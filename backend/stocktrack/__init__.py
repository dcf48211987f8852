# backend/stocktrack/__init__.py
import logging

from flask import Flask
from werkzeug.exceptions import HTTPException

from .config import Config
from .errors import StockTrackError
from .extensions import db, migrate


def create_app(config_object=Config, **overrides) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object)
    # Overrides win over the config class (tests point SQLALCHEMY_DATABASE_URI at a temp file)
    app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.product_types import product_types_bp
    from .routes.products import products_bp
    from .routes.stock import stock_bp
    from .routes.sales import sales_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(product_types_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(reports_bp)

    @app.errorhandler(StockTrackError)
    def handle_domain_error(exc: StockTrackError):
        if exc.status_code >= 500:
            app.logger.error("Storage failure: %s %s", exc.message, exc.details)
        return {"error": exc.to_dict()}, exc.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error")
        return {
            "error": {"kind": "internal_error", "message": "Internal server error", "details": {}},
        }, 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
