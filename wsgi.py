"""
WSGI Entry Point for the School Domains Application

This module serves as the entry point for WSGI servers (like Gunicorn)
to run the Flask application in production environments.
"""

import os
import sys

# Load .env ONLY for local development. In production (Render), environment
# variables must be provided by the platform.
if os.environ.get('FLASK_ENV', '').lower() != 'production' and os.environ.get('FLASK_CONFIG', '').lower() != 'production':
    from dotenv import load_dotenv

    load_dotenv(override=False)

from schooldomain import create_app  # noqa: E402

# Determine configuration name.
# - Local/dev defaults to development.
# - Production platforms (Render) must explicitly set FLASK_ENV/FLASK_CONFIG=production.
config_name = (os.getenv('FLASK_CONFIG') or os.getenv('FLASK_ENV') or 'development').lower()

print(f'🚀 Initializing Flask application with config: {config_name}', file=sys.stderr)

if config_name == 'production':
    required_vars = {
        'SECRET_KEY': 'Required for session signing',
        'DATABASE_URL': 'Required for PostgreSQL connection',
    }

    missing_vars = [
        f"  ❌ {var_name}: {description}"
        for var_name, description in required_vars.items()
        if not os.getenv(var_name)
    ]

    if missing_vars:
        print(
            "\n" + "=" * 70 + "\n"
            "❌ DEPLOYMENT FAILED: Missing required environment variables\n"
            + "=" * 70 + "\n\n"
            + "\n".join(missing_vars)
            + "\n",
            file=sys.stderr,
        )
        raise RuntimeError('Missing required environment variables in production')

try:
    app = create_app(config_name)
    print('✓ Flask application created successfully', file=sys.stderr)
except Exception as exc:
    print(f'\n❌ FATAL: Application initialization failed: {exc}', file=sys.stderr)
    print('  1. Database connection failure (check DATABASE_URL)', file=sys.stderr)
    print('  2. Missing database tables (run: flask db upgrade)', file=sys.stderr)
    raise
