import logging
import logging.config
import time

import click
from flask import Flask, render_template, session

from auth import login_manager, create_user, AuthError
from config import Config
from models import db, CATEGORIES
from storage import BucketStorage, bucket_storage


def configure_logging(level):
    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "default"},
        },
        "root": {"handlers": ["console"], "level": level},
    })


def create_app(config_class=Config):
    configure_logging(config_class.LOG_LEVEL)

    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config["STARTED_AT"] = time.time()

    db.init_app(app)
    login_manager.init_app(app)
    # One storage per app; ensures bucket directories exist
    BucketStorage().init_app(app)

    from views import site
    from admin import admin
    app.register_blueprint(site)
    app.register_blueprint(admin)

    with app.app_context():
        db.create_all()

    register_cli(app)

    @app.context_processor
    def inject_layout():
        return {
            "categories": CATEGORIES,
            "sidebar_open": bool(session.get("sidebar_open")),
        }

    @app.errorhandler(404)
    def not_found(e):
        return render_template("not_found.html"), 404

    @app.errorhandler(413)
    def too_large(e):
        return render_template("not_found.html", message="Upload too large."), 413

    app.logger.info("App started (storage at %s)", app.config["STORAGE_ROOT"])
    return app


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create tables and storage buckets."""
        db.create_all()
        for name in app.config["STORAGE_BUCKETS"]:
            bucket_storage.create_bucket(name)
        click.echo("Database and buckets ready.")

    @app.cli.command("create-admin")
    @click.option("--email", default=None)
    @click.option("--password", default=None)
    def create_admin(email, password):
        """Create (or reset the password of) an admin account."""
        email = email or app.config["ADMIN_EMAIL"]
        password = password or app.config["ADMIN_PASSWORD"]
        try:
            user = create_user(email, password)
        except AuthError as e:
            raise click.ClickException(str(e))
        click.echo(f"Admin account ready: {user.email}")


# Local dev entrypoint (production: gunicorn "app:create_app()")
if __name__ == "__main__":
    create_app().run(debug=True, host="127.0.0.1", port=5000)
