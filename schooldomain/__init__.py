"""
Flask Application Factory

This module implements the application factory pattern for creating
School Domains application instances with different configurations.
"""

import logging
import os

from flask import Flask, render_template
from sqlalchemy import inspect
from werkzeug.exceptions import HTTPException

from schooldomain.config import config
from schooldomain.extensions import db, migrate, limiter


def _safe_log(app, level: str, message: str, *args, **kwargs) -> None:
    """Log without risking startup due to logger misconfiguration."""
    try:
        logger = getattr(app.logger, level)
        logger(message, *args, **kwargs)
    except Exception:
        import sys

        print(f"[{level.upper()}] {message % args if args else message}", file=sys.stderr)


def _ensure_tables(app) -> None:
    """Create the registry tables when they are missing.

    Never drops anything. Production databases are managed by
    `flask db upgrade` instead.
    """
    if os.environ.get('SKIP_STARTUP_DB_TASKS') == '1':
        _safe_log(app, 'warning', 'Skipping startup DB tasks due to SKIP_STARTUP_DB_TASKS=1')
        return

    with app.app_context():
        import schooldomain.models  # noqa: F401

        try:
            existing = set(inspect(db.engine).get_table_names())
            missing = sorted(set(db.metadata.tables.keys()) - existing)
            if missing:
                db.create_all()
                _safe_log(app, 'info', '✓ Created missing tables: %s', ', '.join(missing))
        except Exception as exc:
            db.session.rollback()
            _safe_log(app, 'error', '✗ Startup table check failed (continuing): %s', exc, exc_info=True)


def create_app(config_name='default', overrides=None):
    """
    Application factory function

    Args:
        config_name (str): Configuration name ('development', 'production', 'testing')
        overrides (dict): Extra settings applied after the config class,
            before extensions initialize (used by the test suite)

    Returns:
        Flask: Configured Flask application instance
    """

    config_name = (config_name or 'default').lower()

    app = Flask(__name__)

    # Instantiate the config object so @property values (like
    # ProductionConfig.SQLALCHEMY_DATABASE_URI) are evaluated.
    cfg = config.get(config_name) or config['default']
    app.config.from_object(cfg() if isinstance(cfg, type) else cfg)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    if config_name == 'production':
        if not app.config.get('SECRET_KEY'):
            app.logger.error('Production requires SECRET_KEY to be set via environment variable')
            raise RuntimeError('Missing SECRET_KEY in production')

        db_uri = app.config.get('SQLALCHEMY_DATABASE_URI')
        if not db_uri:
            app.logger.error('Production requires DATABASE_URL (SQLALCHEMY_DATABASE_URI) to be set')
            raise RuntimeError('Missing DATABASE_URL in production')
    elif not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = os.urandom(32)
        app.logger.warning('SECRET_KEY was missing; generated an ephemeral key for this process.')

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    enable_startup_db_tasks = os.environ.get('ENABLE_STARTUP_DB_TASKS') == '1'
    if config_name != 'production' or enable_startup_db_tasks:
        _ensure_tables(app)
    else:
        _safe_log(
            app,
            'info',
            'Startup DB tasks are disabled in production. '
            'Run `flask db upgrade` or set ENABLE_STARTUP_DB_TASKS=1.',
        )

    register_blueprints(app)
    register_error_handlers(app)
    register_template_processors(app)
    register_shell_context(app)
    register_cli_commands(app)

    @app.after_request
    def _apply_security_headers(response):
        """Apply safe security headers without affecting app logic."""
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('Referrer-Policy', 'strict-origin-when-cross-origin')
        return response

    @app.teardown_appcontext
    def _cleanup_appcontext(exc):
        """Ensure scoped sessions are removed when the app context ends."""
        try:
            db.session.remove()
        except Exception as remove_exc:
            app.logger.error('Session remove during appcontext teardown failed: %s', remove_exc, exc_info=True)

    @app.route('/favicon.ico')
    def favicon_placeholder():  # pragma: no cover - trivial route
        return ('', 204)

    return app


def register_blueprints(app):
    """Register Flask blueprints"""

    from schooldomain.routes.api import api_bp
    from schooldomain.routes.health import health_bp
    from schooldomain.routes.pages import pages_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(api_bp)
    # Registered last: its /<main_domain>/<subdomain> rule is the catch-all.
    app.register_blueprint(pages_bp)


def register_error_handlers(app):
    """Register error handlers for common HTTP errors"""

    @app.errorhandler(404)
    def not_found_error(error):
        """Handle 404 errors"""
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors"""
        app.logger.exception('Unhandled exception (500): %s', getattr(error, 'original_exception', error))
        db.session.rollback()
        return render_template('errors/500.html'), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        if isinstance(error, HTTPException):
            return error
        return internal_error(error)


def register_template_processors(app):
    """Register context processors for templates"""

    @app.context_processor
    def inject_site_config():
        return {
            'site_name': app.config.get('SITE_NAME'),
            'site_description': app.config.get('SITE_DESCRIPTION'),
        }


def register_shell_context(app):
    """Register shell context for Flask CLI"""

    @app.shell_context_processor
    def make_shell_context():
        from schooldomain.models import School, Subdomain
        from schooldomain.services import registry

        return {
            'db': db,
            'School': School,
            'Subdomain': Subdomain,
            'registry': registry,
        }


def register_cli_commands(app):
    """Register custom Flask CLI commands."""
    from schooldomain.cli import (
        export_registry_command,
        import_registry_command,
        list_schools_command,
    )

    app.cli.add_command(export_registry_command)
    app.cli.add_command(import_registry_command)
    app.cli.add_command(list_schools_command)
