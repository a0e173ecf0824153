# backend/kasir/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        # Overrides must land before the extensions read the config
        app.config.update(test_config)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.sales import sales_bp
    from .routes.catalog import catalog_bp
    from .routes.customers import customers_bp

    app.register_blueprint(sales_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(customers_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
