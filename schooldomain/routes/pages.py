"""
Pages Blueprint - Public HTML Routes

This blueprint renders:
- The landing page (static index.html when shipped, generated otherwise)
- School dashboards gated by plan tier
- Subdomain pages, one template per subdomain type

Missing schools and subdomains render a friendly page with HTTP 200.
"""

import os

from flask import Blueprint, current_app, render_template, send_from_directory

from schooldomain.domain.enums import FEATURES, Plan, SubdomainType, plan_features, render_type
from schooldomain.domain.validation import lookup_key, normalize_key
from schooldomain.services import registry
from schooldomain.utils.urls import absolute_url, dashboard_path

# Create Blueprint
pages_bp = Blueprint('pages', __name__)

SUBDOMAIN_TEMPLATES = {
    SubdomainType.TEACHER: 'subdomain/teacher.html',
    SubdomainType.STUDENT: 'subdomain/student.html',
    SubdomainType.PUBLIC: 'subdomain/public.html',
    SubdomainType.DEFAULT: 'subdomain/default.html',
}


@pages_bp.route('/')
def index():
    static_folder = current_app.static_folder
    if static_folder and os.path.isfile(os.path.join(static_folder, 'index.html')):
        return send_from_directory(static_folder, 'index.html')

    return render_template('index.html', plans=Plan.ALL, features=FEATURES)


@pages_bp.route('/dashboard/<string:domain>')
def dashboard(domain):
    school = registry.find_school(domain)
    if school is None:
        return render_template('dashboard_not_found.html', domain=normalize_key(domain))

    subdomains = [
        {
            'record': record,
            'url': absolute_url(record.access_link),
        }
        for record in school.subdomains
    ]

    return render_template(
        'dashboard.html',
        school=school,
        features=FEATURES,
        unlocked=plan_features(school.plan),
        subdomains=subdomains,
        subdomain_types=SubdomainType.KNOWN,
        dashboard_url=absolute_url(dashboard_path(school.domain)),
    )


@pages_bp.route('/<string:main_domain>/<string:subdomain>')
def subdomain_page(main_domain, subdomain):
    school = registry.find_school(main_domain)
    record = None
    if school is not None:
        key = lookup_key(subdomain)
        record = next((s for s in school.subdomains if s.subdomain == key), None)

    if record is None:
        return render_template(
            'subdomain_invalid.html',
            main_domain=normalize_key(main_domain),
            subdomain=normalize_key(subdomain),
            school=school,
        )

    return render_template(
        SUBDOMAIN_TEMPLATES[render_type(record.type)],
        school=school,
        page=record,
        page_url=absolute_url(record.access_link),
        dashboard_url=absolute_url(dashboard_path(school.domain)),
        unlocked=plan_features(school.plan),
    )
