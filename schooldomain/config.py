"""
Configuration Module for the School Domains Application

This module defines configuration classes for different environments:
- DevelopmentConfig: Local development with SQLite
- ProductionConfig: Production deployment with PostgreSQL
- TestingConfig: Automated testing configuration
"""

import os
import sys
from pathlib import Path


class Config:
    """Base configuration with common settings"""

    # Secret key for session signing.
    # - In development, we load from .env (see wsgi.py) or generate one.
    # - In production, the app factory enforces presence.
    SECRET_KEY = os.environ.get('SECRET_KEY')

    # Database configuration
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Make database connections more resilient in production (stale connections,
    # temporary network blips). Safe defaults for all environments.
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }

    # Request bodies are tiny JSON documents.
    MAX_CONTENT_LENGTH = 64 * 1024

    # Externally visible base URL used to build absolute links in responses.
    # Render injects RENDER_EXTERNAL_URL; PUBLIC_BASE_URL wins when set.
    PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL') or os.environ.get('RENDER_EXTERNAL_URL')

    # Registry rules
    DOMAIN_MAX_LENGTH = 7
    SUBDOMAIN_MAX_LENGTH = 63

    # Rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    REGISTRATION_RATE_LIMIT = os.environ.get('REGISTRATION_RATE_LIMIT', '30 per minute')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Security headers
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    SITE_NAME = 'School Domains'
    SITE_DESCRIPTION = 'Claim a short domain for your school and publish teacher, student and public pages.'


class DevelopmentConfig(Config):
    """Development environment configuration"""

    DEBUG = True
    TESTING = False

    # IMPORTANT (Windows): SQLAlchemy sqlite URLs must use forward slashes.
    _project_root = Path(__file__).resolve().parent.parent
    _default_db_path = (_project_root / 'schooldomain.db').resolve()

    _env_db_url = os.environ.get('DATABASE_URL')
    if _env_db_url and _env_db_url.strip().startswith('sqlite:'):
        _env_db_url = _env_db_url.replace('\\', '/')

    SQLALCHEMY_DATABASE_URI = _env_db_url or f"sqlite:///{_default_db_path.as_posix()}"

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production environment configuration"""

    DEBUG = False
    TESTING = False

    @property
    def SQLALCHEMY_DATABASE_URI(self):
        """
        Production database URI, evaluated when the config object is loaded.

        - Render/Heroku provide DATABASE_URL with postgres:// prefix
        - SQLAlchemy 1.4+ requires postgresql:// prefix
        - SSL is required for managed PostgreSQL
        """
        db_uri = os.environ.get('DATABASE_URL')

        if not db_uri:
            print('❌ FATAL: DATABASE_URL not set in environment', file=sys.stderr)
            return None

        if db_uri.startswith('postgres://'):
            db_uri = 'postgresql://' + db_uri[len('postgres://'):]
            print('✓ Fixed DATABASE_URL prefix: postgres:// -> postgresql://', file=sys.stderr)

        if db_uri.startswith('postgresql://') and 'sslmode=' not in db_uri:
            separator = '&' if '?' in db_uri else '?'
            db_uri = f"{db_uri}{separator}sslmode=require"

        return db_uri

    SESSION_COOKIE_SECURE = True


class TestingConfig(Config):
    """Testing environment configuration"""

    TESTING = True
    DEBUG = True

    # In-memory SQLite; the test suite overrides this with a temp file.
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}

    SECRET_KEY = 'test-secret-key'
    PUBLIC_BASE_URL = None
    RATELIMIT_ENABLED = False


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}
