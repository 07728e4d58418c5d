"""
API Blueprint - JSON Registry Routes

This blueprint exposes the registry over JSON:
- Plan purchase (school domain registration)
- Subdomain create / list / delete
- Full registry dump

Expected failures (validation, conflicts, missing keys) are answered with
HTTP 200 and `{"success": false, "error": ...}`. A failed database write is
answered with HTTP 503 so a caller never mistakes it for success.
"""

from flask import Blueprint, current_app, jsonify, request

from schooldomain.domain.errors import RegistryError, StorageFailure
from schooldomain.extensions import limiter
from schooldomain.services import registry
from schooldomain.utils.urls import absolute_url, dashboard_path

# Create Blueprint
api_bp = Blueprint('api', __name__)


def _registration_limit():
    return current_app.config.get('REGISTRATION_RATE_LIMIT', '30 per minute')


def _payload():
    """JSON body, falling back to form fields."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _error(exc: RegistryError):
    status = 503 if isinstance(exc, StorageFailure) else 200
    return jsonify({'success': False, 'error': exc.message}), status


def _serialize_subdomain(record):
    data = record.to_dict()
    data['accessUrl'] = absolute_url(record.access_link)
    return data


@api_bp.route('/buy-plan', methods=['POST'])
@limiter.limit(_registration_limit)
def buy_plan():
    try:
        school = registry.register_school(_payload())
    except RegistryError as exc:
        current_app.logger.info('Plan purchase rejected: %s', exc.message)
        return _error(exc)

    link = dashboard_path(school.domain)
    return jsonify({
        'success': True,
        'dashboardLink': link,
        'dashboardUrl': absolute_url(link),
        'plan': school.plan,
        'message': f'{school.plan.capitalize()} plan activated for {school.school}',
    })


@api_bp.route('/create-subdomain', methods=['POST'])
@limiter.limit(_registration_limit)
def create_subdomain():
    try:
        record = registry.create_subdomain(_payload())
    except RegistryError as exc:
        current_app.logger.info('Subdomain creation rejected: %s', exc.message)
        return _error(exc)

    return jsonify({
        'success': True,
        'message': f'Subdomain "{record.subdomain}" created',
        'accessLink': absolute_url(record.access_link),
        'subdomain': record.to_dict(),
    })


@api_bp.route('/get-subdomains/<string:domain>')
def get_subdomains(domain):
    try:
        school, subdomains = registry.list_subdomains(domain)
    except RegistryError as exc:
        return _error(exc)

    return jsonify({
        'success': True,
        'mainDomain': school.domain,
        'school': school.school,
        'subdomains': [_serialize_subdomain(s) for s in subdomains],
        'total': len(subdomains),
    })


@api_bp.route('/delete-subdomain/<string:main_domain>/<string:subdomain>', methods=['DELETE'])
def delete_subdomain(main_domain, subdomain):
    try:
        registry.delete_subdomain(main_domain, subdomain)
    except RegistryError as exc:
        return _error(exc)

    return jsonify({
        'success': True,
        'message': f'Subdomain "{subdomain.strip().lower()}" deleted',
    })


@api_bp.route('/delete-all-subdomains/<string:main_domain>', methods=['DELETE'])
def delete_all_subdomains(main_domain):
    try:
        removed = registry.delete_all_subdomains(main_domain)
    except RegistryError as exc:
        return _error(exc)

    return jsonify({
        'success': True,
        'message': f'All subdomains deleted ({removed})',
        'removed': removed,
    })


@api_bp.route('/all-data')
def all_data():
    return jsonify([school.to_dict() for school in registry.all_records()])
