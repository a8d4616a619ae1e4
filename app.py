import logging

import click
from flask import Flask, jsonify
from flask_migrate import Migrate

from config import Config
from models import db
from models.profile import Profile, ROLE_ADMIN
from routes import (
    admin_bp,
    auth_bp,
    booking_bp,
    favorites_bp,
    fields_bp,
    health_bp,
    payments_bp,
    webhook_bp,
)
from security.csrf import csrf_protect
from services import statements
from utils.auth_context import load_current_user

logger = logging.getLogger(__name__)


def configure_logging(level_name: str):
    logging.basicConfig(
        level=getattr(logging, (level_name or "INFO").upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Reduce verbosity of third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config.get("LOG_LEVEL"))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(fields_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(favorites_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhook_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    @app.before_request
    def _load_user():
        load_current_user()

    app.before_request(csrf_protect)

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    @app.errorhandler(404)
    def _not_found(_exc):
        return jsonify(error="Not found"), 404

    @app.errorhandler(405)
    def _method_not_allowed(_exc):
        return jsonify(error="Method not allowed"), 405

    @app.errorhandler(500)
    def _internal_error(_exc):
        db.session.rollback()
        return jsonify(error="Internal server error"), 500

    register_cli(app)

    return app


#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a profile to admin by email (bootstrap)."""
        user = Profile.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        user.role = ROLE_ADMIN
        db.session.commit()
        click.echo(f"{user.email} promoted to admin")

    @app.cli.command("handle-overdue")
    def handle_overdue():
        """Nightly sweep: mark late pending statements overdue and deactivate their fields."""
        overdue = statements.mark_overdue_statements()
        click.echo(f"{len(overdue)} statement(s) marked overdue")

    @app.cli.command("generate-statements")
    @click.option("--year", type=int, required=True)
    @click.option("--month", type=click.IntRange(1, 12), required=True)
    def generate_statements(year, month):
        """Create or refresh pending commission statements for a month."""
        rows = statements.generate_statements(year, month)
        for st in rows:
            click.echo(f"field={st.field_id} reservations={st.reservations_count} amount_due={st.amount_due}")
        click.echo(f"{len(rows)} statement(s) generated for {year:04d}-{month:02d}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
