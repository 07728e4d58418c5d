"""
Flask Extensions Module

This module initializes all Flask extensions used in the application.
Extensions are initialized here and then attached to the app in the factory.
"""

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter


def _rate_limit_key() -> str:
	"""Best-effort client IP key for rate limiting.

	Prefers the first X-Forwarded-For hop (Render sits behind a proxy).
	Falls back to remote_addr.
	"""

	try:
		from flask import has_request_context, request

		if not has_request_context():
			return '0.0.0.0'

		forwarded = (request.headers.get('X-Forwarded-For') or '').split(',')[0].strip()
		return forwarded or (request.remote_addr or '0.0.0.0')
	except Exception:
		return '0.0.0.0'

# Initialize extensions
# These will be attached to the app in create_app()
db = SQLAlchemy()
migrate = Migrate()
limiter = Limiter(key_func=_rate_limit_key)
