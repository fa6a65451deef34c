from flask import Flask
from makerspace.config import DevelopmentConfig
from makerspace.extensions import db, migrate

def create_app(config_class=DevelopmentConfig):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Models must be imported before create_all / migrations see the metadata
    from makerspace import models  # noqa: F401

    # Register Blueprints
    from makerspace.api.routes.admin import admin_bp
    from makerspace.api.routes.bookings import bookings_bp
    from makerspace.api.routes.catalog import catalog_bp
    from makerspace.api.routes.main import main_bp

    app.register_blueprint(admin_bp, url_prefix='/api/admin')
    app.register_blueprint(bookings_bp, url_prefix='/api/bookings')
    app.register_blueprint(catalog_bp, url_prefix='/api')
    app.register_blueprint(main_bp)

    return app
