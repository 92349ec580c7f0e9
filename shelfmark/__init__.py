import logging

from flask import Flask

from shelfmark.api import api_bp
from shelfmark.auth import auth_bp
from shelfmark.config import Config
from shelfmark.extensions import cors, db, login_manager, migrate
from shelfmark.metadata import metadata_bp


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cors.init_app(
        app, resources={r"/metadata": {"origins": app.config["CORS_ORIGINS"]}}
    )

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(metadata_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Shelfmark database.")

    with app.app_context():
        db.create_all()

    return app
