"""Flask application factory for the civic issue reporting API."""
import logging
import os
from typing import Optional

import click
from dotenv import load_dotenv
from flask import Flask
from sqlalchemy import create_engine, text
from sqlalchemy.engine.url import make_url
from sqlalchemy.exc import OperationalError

from civicwatch.extensions import cors, db, login_manager, migrate
from civicwatch.utils.errors import Unauthenticated, register_error_handlers
from civicwatch.utils.logger import init_logging
from civicwatch.utils.notifier import NotificationDispatcher
from civicwatch.utils.security import apply_security_headers


def ensure_default_admin(app: Flask) -> None:
    """Ensure a configured admin account exists so the first admin can log in without registering."""
    from civicwatch.models import User  # Local import to avoid circular dependency

    admin_email = (app.config.get("DEFAULT_ADMIN_EMAIL") or "").lower().strip()
    admin_password = app.config.get("DEFAULT_ADMIN_PASSWORD") or ""
    if not admin_email or not admin_password:
        return

    admin_user = User.query.filter_by(email=admin_email).first()
    if admin_user:
        if admin_user.role != "ADMIN":
            admin_user.role = "ADMIN"
            db.session.commit()
            app.logger.info("Default admin promoted", extra={"user_id": admin_user.id})
        return

    admin_user = User(name=app.config.get("DEFAULT_ADMIN_NAME") or "System Administrator", email=admin_email, role="ADMIN")
    admin_user.set_password(admin_password)
    db.session.add(admin_user)
    db.session.commit()
    app.logger.info("Default admin created", extra={"user_id": admin_user.id})


def ensure_database_exists(database_uri: str) -> None:
    """Create the target database if it does not exist (PostgreSQL + SQLite support)."""
    url = make_url(database_uri)

    if url.drivername.startswith("sqlite"):
        # For SQLite just make sure the parent directory exists.
        if url.database and url.database != ":memory:":
            os.makedirs(os.path.dirname(url.database) or ".", exist_ok=True)
        return

    if url.drivername.startswith("postgres"):
        db_name = url.database
        admin_url = url.set(database=os.getenv("POSTGRES_DB_ADMIN", "postgres"))
        engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")
        try:
            with engine.connect() as conn:
                exists = conn.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :name"), {"name": db_name}
                ).scalar()
                if not exists:
                    conn.execute(text(f'CREATE DATABASE "{db_name}"'))
        except OperationalError as exc:
            # Startup fails loudly later if the server is really unreachable.
            logging.getLogger(__name__).warning("Could not verify database existence: %s", exc)
        finally:
            engine.dispose()


def init_login_manager(app: Flask) -> None:
    from civicwatch.utils.identity import resolve_bearer

    login_manager.init_app(app)
    # Stateless API: identity comes from the bearer header on every request, never the cookie session.
    login_manager.session_protection = None

    @login_manager.request_loader
    def load_user_from_request(req):
        header = req.headers.get("Authorization")
        if not header:
            return None
        return resolve_bearer(header)

    @login_manager.unauthorized_handler
    def unauthorized():
        raise Unauthenticated()


def register_cli(app: Flask) -> None:
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.argument("name")
    @click.password_option()
    def create_admin(email, name, password):
        """Create an ADMIN account, or promote an existing one."""
        from civicwatch.models import User

        email = email.strip().lower()
        user = User.query.filter_by(email=email).first()
        if user is None:
            user = User(name=name, email=email)
            user.set_password(password)
            db.session.add(user)
        user.role = "ADMIN"
        db.session.commit()
        click.echo(f"Admin ready: {user.email} ({user.id})")


def create_app(config_name: Optional[str] = None, config_overrides: Optional[dict] = None) -> Flask:
    """Application factory with environment-aware configuration."""
    load_dotenv()

    app = Flask(__name__, instance_relative_config=True)

    from civicwatch.config import CONFIG_MAP, ProductionConfig

    config_key = (config_name or os.getenv("FLASK_CONFIG") or os.getenv("FLASK_ENV") or "production").lower()
    config_class = CONFIG_MAP.get(config_key, ProductionConfig)
    app.config.from_object(config_class())
    if config_overrides:
        app.config.update(config_overrides)
    app.json.sort_keys = False

    ensure_database_exists(app.config["SQLALCHEMY_DATABASE_URI"])

    # Initialize logging early
    init_logging(app)

    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app, resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS") or "*"}})
    init_login_manager(app)
    app.extensions["notifier"] = NotificationDispatcher(app)

    from civicwatch.routes import register_blueprints

    register_blueprints(app)
    register_error_handlers(app)
    register_cli(app)

    @app.after_request
    def _after_request(response):
        return apply_security_headers(response, force_https=app.config.get("PREFERRED_URL_SCHEME") == "https")

    # Ensure tables exist so first run creates the database structure automatically.
    with app.app_context():
        from civicwatch import models  # noqa: F401  Register models with SQLAlchemy metadata

        db.create_all()
        ensure_default_admin(app)

    return app
