from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from .enums import Plan, SubdomainType
from .errors import ValidationFailed


DOMAIN_MAX_LENGTH = 7
SUBDOMAIN_MAX_LENGTH = 63

_KEY_RE = re.compile(r'[A-Za-z0-9]+')


@dataclass(frozen=True)
class SchoolInput:
    domain: str
    school: str
    name: str
    email: str
    plan: str = Plan.DEFAULT


@dataclass(frozen=True)
class SubdomainInput:
    main_domain: str
    subdomain: str
    type: str
    name: str
    description: str = ''


def clean_text(value: Any) -> str:
    if value is None:
        return ''
    return str(value).strip()


def normalize_key(value: Any) -> str:
    """Trim and lower-case a domain or subdomain key."""
    return clean_text(value).lower()


def is_valid_key(key: str) -> bool:
    """Check the raw key; lower-casing can fold non-ASCII letters into ASCII."""
    return bool(_KEY_RE.fullmatch(key or ''))


def lookup_key(value: Any) -> str:
    """Normalized key for lookups, or '' when the raw value could never be stored."""
    key = clean_text(value)
    return key.lower() if is_valid_key(key) else ''


def validate_domain(value: Any, max_length: int = DOMAIN_MAX_LENGTH) -> str:
    key = clean_text(value)
    if not key:
        raise ValidationFailed('Domain is required')
    if len(key) > max_length:
        raise ValidationFailed(f'Domain max {max_length} characters allowed')
    if not is_valid_key(key):
        raise ValidationFailed('Domain must contain only letters and numbers')
    return key.lower()


def validate_subdomain(value: Any, max_length: int = SUBDOMAIN_MAX_LENGTH) -> str:
    key = clean_text(value)
    if not key:
        raise ValidationFailed('Main domain and subdomain are required')
    if len(key) > max_length:
        raise ValidationFailed(f'Subdomain max {max_length} characters allowed')
    if not is_valid_key(key):
        raise ValidationFailed('Subdomain must contain only letters and numbers')
    return key.lower()


def validate_plan(value: Any) -> str:
    plan = normalize_key(value)
    if not plan:
        return Plan.DEFAULT
    if plan not in Plan.ALL:
        raise ValidationFailed('Invalid plan. Choose basic, intermediate or pro')
    return plan


def parse_school_input(
    payload: Mapping[str, Any],
    *,
    domain_max_length: int = DOMAIN_MAX_LENGTH,
    require_email: bool = True,
) -> SchoolInput:
    """Validate a signup payload into a SchoolInput.

    Accepts `teacherName` as an alias for `name`. Raises ValidationFailed.
    """
    domain = validate_domain(payload.get('domain'), max_length=domain_max_length)

    school = clean_text(payload.get('school'))
    name = clean_text(payload.get('name') or payload.get('teacherName'))
    email = clean_text(payload.get('email'))
    if not (school and name and (email or not require_email)):
        raise ValidationFailed('School name, teacher name and email are required')

    return SchoolInput(
        domain=domain,
        school=school,
        name=name,
        email=email,
        plan=validate_plan(payload.get('plan')),
    )


def parse_subdomain_input(
    payload: Mapping[str, Any],
    *,
    subdomain_max_length: int = SUBDOMAIN_MAX_LENGTH,
) -> SubdomainInput:
    raw_domain = payload.get('mainDomain') or payload.get('domain')
    if not clean_text(raw_domain):
        raise ValidationFailed('Main domain and subdomain are required')

    subdomain = validate_subdomain(payload.get('subdomain'), max_length=subdomain_max_length)

    type_ = normalize_key(payload.get('type')) or SubdomainType.DEFAULT
    name = clean_text(payload.get('name'))

    return SubdomainInput(
        main_domain=lookup_key(raw_domain),
        subdomain=subdomain,
        type=type_,
        name=name or subdomain,
        description=clean_text(payload.get('description')),
    )


def access_link(domain: str, subdomain: str) -> str:
    return f'/{domain}/{subdomain}'
