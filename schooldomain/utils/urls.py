"""Absolute link helpers.

The public base URL only decorates links in responses; it never changes
routing or registry behavior.
"""

from __future__ import annotations

from typing import Optional

from flask import current_app, has_request_context, request


def public_base_url() -> str:
    """Resolve the externally visible origin, without a trailing slash.

    Order: configured PUBLIC_BASE_URL (or RENDER_EXTERNAL_URL), the request
    Origin header, then the request host URL.
    """
    configured: Optional[str] = current_app.config.get('PUBLIC_BASE_URL')
    if configured:
        return configured.strip().rstrip('/')

    if not has_request_context():
        return ''

    origin = (request.headers.get('Origin') or '').strip()
    if origin and origin != 'null':
        return origin.rstrip('/')

    return request.host_url.rstrip('/')


def absolute_url(path: str) -> str:
    if not path.startswith('/'):
        path = '/' + path
    return f'{public_base_url()}{path}'


def dashboard_path(domain: str) -> str:
    return f'/dashboard/{domain}'
