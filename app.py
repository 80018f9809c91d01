import json
import logging

import click
from flask import Flask, request, jsonify
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from routes import health_bp, otp_bp, submissions_bp, admin_bp

from models import db
from models.admin_user import AdminUser
from models.fraud_case import FraudCase
from security.csrf import is_protected_path, require_same_origin
from security.otp import OtpSessionManager, load_signing_secret
from security.password import hash_admin_password
from security.rate_limit import RateLimiter
from utils.env_check import config_status

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(level)


def create_app(overrides=None, rate_limiter=None, otp_sessions=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app)

    # Fails closed: no production app without a real signing secret
    secret = load_signing_secret(app.config)

    app.extensions["rate_limiter"] = rate_limiter if rate_limiter is not None else RateLimiter()
    app.extensions["otp_sessions"] = otp_sessions if otp_sessions is not None else OtpSessionManager(secret)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(otp_bp)
    app.register_blueprint(submissions_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _origin_guard():
        if request.method == "POST" and is_protected_path(request.path):
            return require_same_origin()
        return None

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        if app.config.get("APP_ENV") == "production":
            resp.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return resp

    register_error_handlers(app)
    register_cli(app)

    logger.info("Fortivault intake API ready (env=%s)", app.config.get("APP_ENV"))
    return app


def register_error_handlers(app):
    @app.errorhandler(HTTPException)
    def _http_error(exc):
        if exc.code == 413:
            return jsonify(success=False, message="Upload too large."), 413
        return jsonify(error=exc.name), exc.code

    @app.errorhandler(Exception)
    def _unhandled(exc):
        # Full detail stays server-side
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return jsonify(error="Internal server error. Please try again later."), 500


def register_cli(app):
    @app.cli.command("create-admin")
    @click.argument("email")
    @click.option("--name", default=None, help="Display name")
    @click.option("--role", default="agent", type=click.Choice(["agent", "admin"]))
    @click.password_option()
    def create_admin(email, name, role, password):
        """Create an admin user for the case dashboard."""
        email = email.strip().lower()
        if AdminUser.query.filter_by(email=email).first():
            raise click.ClickException(f"{email} already exists")

        try:
            password_hash = hash_admin_password(password)
        except ValueError as exc:
            raise click.ClickException(str(exc))

        db.session.add(AdminUser(email=email, name=name, role=role, password_hash=password_hash))
        db.session.commit()
        click.echo(f"{email} created as {role}")

    @app.cli.command("show-case")
    @click.argument("case_id")
    def show_case(case_id):
        """Print a stored case as JSON."""
        case = FraudCase.query.filter_by(case_id=case_id.strip().upper()).first()
        if not case:
            raise click.ClickException("Case not found")
        click.echo(json.dumps(case.to_dict(), indent=2))

    @app.cli.command("config-status")
    def show_config_status():
        """Report which services are configured."""
        status = config_status(app.config)
        for service in status["configuredServices"]:
            click.echo(f"configured: {service}")
        for warning in status["warnings"]:
            click.echo(f"warning: {warning}")
        for error in status["errors"]:
            click.echo(f"error: {error}", err=True)
        if not status["isValid"]:
            raise SystemExit(1)


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
