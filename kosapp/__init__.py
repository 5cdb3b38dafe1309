from flask import Flask
# import config from kosapp.config file
from kosapp.config import Config
from kosapp.filters import register_filters
from kosapp.models import db
from kosapp.storage import EXTENSION_KEY, build_store
from kosapp.utils import logger


def create_app(test_config=None):
    app = Flask(__name__, template_folder="../templates", static_folder="../static")
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialize database
    db.init_app(app)

    store = build_store(app)
    app.extensions[EXTENSION_KEY] = store
    logger.info(f"Using {store.name} storage backend")

    from kosapp.routes.main import main_bp
    from kosapp.routes.auth import auth_bp
    from kosapp.routes.booking import booking_bp
    from kosapp.routes.admin import admin_bp
    from kosapp.routes.profile import profile_bp
    from kosapp.routes.misc import misc_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(misc_bp)

    register_filters(app)

    # Create tables / JSON documents and the first admin inside app context
    with app.app_context():
        store.init_storage()
        store.seed_admin(app.config["INITIAL_ADMIN_USERNAME"], app.config["INITIAL_ADMIN_PASSWORD"])

    return app
