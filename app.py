import logging
import traceback

from flask import Flask, g, request
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from config import get_config
from routes import health_bp, auth_bp, admin_bp, audit_bp

from models import db
from flask_migrate import Migrate
from services.errors import AuthError
from utils.auth_context import load_current_user
from utils.responses import error_response


def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or get_config())

    if app.config.get("ENV_NAME") == "production" and not app.config.get("JWT_SECRET"):
        raise RuntimeError("JWT_SECRET (or SECRET_KEY) must be set for the production config")

    # only trust X-Forwarded-For from a known number of proxies
    proxies = app.config.get("TRUSTED_PROXY_COUNT", 0)
    if proxies:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxies, x_proto=proxies)

    _configure_logging(app)

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(audit_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    if app.config.get("TWO_FACTOR_BYPASS_CODE"):
        app.logger.warning("2FA bypass code is enabled (%s config)", app.config.get("ENV_NAME"))

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def _configure_logging(app):
    level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(level)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


#-------------------------

def register_error_handlers(app):
    @app.errorhandler(AuthError)
    def _auth_error(exc):
        fields = {}
        if exc.details:
            fields["errors"] = exc.details
        if exc.retry_after is not None:
            fields["retry_after_seconds"] = exc.retry_after
        app.logger.info("%s %s -> %s", request.method, request.path, exc.code)
        return error_response(exc.message, exc.code, exc.status, **fields)

    @app.errorhandler(HTTPException)
    def _http_error(exc):
        if exc.code == 404:
            return error_response("Rota não encontrada", "NOT_FOUND", 404)
        if exc.code == 405:
            return error_response("Método não permitido", "METHOD_NOT_ALLOWED", 405)
        return error_response(exc.description or exc.name, exc.name.upper().replace(" ", "_"), exc.code)

    @app.errorhandler(Exception)
    def _unexpected(exc):
        db.session.rollback()
        app.logger.exception(
            "Unhandled error on %s %s (account=%s)",
            request.method,
            request.path,
            getattr(getattr(g, "user", None), "id", None),
        )
        fields = {}
        if app.config.get("ENV_NAME") != "production":
            fields["error"] = str(exc)
            fields["stack"] = traceback.format_exc()
        return error_response("Erro interno do servidor", "INTERNAL_ERROR", 500, **fields)

#-------------------------
import click
from models.admin import Admin, ADMIN_ROLES
from models.patient import Patient
from security.password import hash_password
from services.accounts import adapter_for
from services.auth_service import AuthService
from utils.seed import seed_demo_data
from utils.validators import clean_cpf

def register_cli(app):
    @app.cli.command("create-admin")
    @click.argument("username")
    @click.argument("email")
    @click.option("--name", default="Administrador")
    @click.option("--role", type=click.Choice(ADMIN_ROLES), default="admin")
    @click.password_option()
    def create_admin(username, email, name, role, password):
        """Create an admin account (bootstrap)."""
        username = username.strip().lower()
        if Admin.query.filter_by(username=username).first():
            click.echo("Admin already exists")
            return

        db.session.add(Admin(
            username=username,
            email=email.strip().lower(),
            name=name,
            role=role,
            password_hash=hash_password(password),
        ))
        db.session.commit()
        click.echo(f"{username} created with role {role}")

    @app.cli.command("unlock-account")
    @click.argument("cpf")
    def unlock_account(cpf):
        """Clear the lockout state of a patient by CPF."""
        patient = Patient.query.filter_by(cpf=clean_cpf(cpf)).first()
        if not patient:
            click.echo("Patient not found")
            return

        AuthService(db.session, adapter_for("patient"), app.config).unlock(patient)
        click.echo(f"{patient.cpf} unlocked")

    @app.cli.command("seed-demo")
    @click.option("--password", default="demo1234", show_default=True)
    def seed_demo(password):
        """Insert demo patients and a super admin."""
        db.create_all()
        created = seed_demo_data(password)
        click.echo(f"{created} demo accounts created")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
