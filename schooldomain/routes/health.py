"""
Health check endpoints for monitoring application and dependencies.

These endpoints are used by:
- Render platform to determine service health
- Quick manual diagnostics (/test)
"""

from datetime import datetime, timezone
import os

from flask import Blueprint, jsonify, current_app
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from schooldomain.extensions import db
from schooldomain.models import School, Subdomain


health_bp = Blueprint('health', __name__)

REGISTRY_TABLES = (School.__tablename__, Subdomain.__tablename__)


def _now():
    return datetime.now(timezone.utc).isoformat()


@health_bp.route('/health')
def health_check():
    """
    Lightweight health check for load balancer probes.

    Does NOT check database connectivity to keep response time low.
    """
    return jsonify({
        'status': 'healthy',
        'timestamp': _now(),
        'service': 'schooldomain',
    }), 200


@health_bp.route('/test')
def test_endpoint():
    """Diagnostic ping used while wiring up a deployment."""
    return jsonify({
        'success': True,
        'message': 'Server is working',
        'timestamp': _now(),
        'pid': os.getpid(),
    }), 200


@health_bp.route('/health/ready')
def readiness_check():
    """Ready once the database answers and every registry table exists."""
    checks = {'timestamp': _now()}

    try:
        db.session.execute(text('SELECT 1'))
        tables = set(inspect(db.engine).get_table_names())
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error('Readiness check could not reach the database: %s', exc, exc_info=True)
        checks.update(database='unhealthy', overall='unhealthy')
        return jsonify(checks), 503

    missing = sorted(set(REGISTRY_TABLES) - tables)
    checks['database'] = 'healthy'
    checks['schema'] = 'incomplete' if missing else 'complete'
    if missing:
        checks['missing_tables'] = missing
    checks['overall'] = 'unhealthy' if missing else 'healthy'

    return jsonify(checks), 503 if missing else 200
