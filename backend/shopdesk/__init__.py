# backend/shopdesk/__init__.py
import logging
import os

from flask import Flask, request

from .config import Config
from .extensions import db, migrate



def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Must land before db.init_app; the engine is built from this config
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db, directory=os.path.join(os.path.dirname(os.path.dirname(__file__)), "migrations"))

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.products import products_bp
    from .routes.suppliers import suppliers_bp
    from .routes.customers import customers_bp
    from .routes.stock import stock_bp
    from .routes.pos import pos_bp
    from .routes.returns import returns_bp
    from .routes.transactions import transactions_bp
    from .routes.quotations import quotations_bp
    from .routes.reports import reports_bp
    from .routes.currency import currency_bp
    from .routes.audit import audit_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(pos_bp)
    app.register_blueprint(returns_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(quotations_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(currency_bp)
    app.register_blueprint(audit_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin and origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "Content-Disposition"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
