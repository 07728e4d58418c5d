"""School domain registry.

Every mutation runs its check-then-write sequence under one process-wide lock
and commits before returning, so a success response always means the change
is durable. The unique constraints on `schools.domain` and
`(subdomains.school_id, subdomains.subdomain)` catch races between worker
processes; those surface as Conflict.

Reads go straight to the database through the request session. There is no
cache to invalidate.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from flask import current_app

from schooldomain.domain.errors import Conflict, NotFound, ValidationFailed
from schooldomain.domain.validation import (
    SchoolInput,
    SubdomainInput,
    access_link,
    lookup_key,
    parse_school_input,
    parse_subdomain_input,
)
from schooldomain.extensions import db
from schooldomain.models import School, Subdomain
from schooldomain.utils.db_resilience import registry_write, safe_read


DOMAIN_TAKEN = 'Domain already taken'
SUBDOMAIN_TAKEN = 'Subdomain already exists for this domain'
DOMAIN_NOT_FOUND = 'Domain not found'
SUBDOMAIN_NOT_FOUND = 'Subdomain not found'

_write_lock = threading.Lock()


def _domain_max_length() -> int:
    return int(current_app.config.get('DOMAIN_MAX_LENGTH', 7))


def _subdomain_max_length() -> int:
    return int(current_app.config.get('SUBDOMAIN_MAX_LENGTH', 63))


def _get_school(key: str) -> Optional[School]:
    return School.query.filter_by(domain=key).first()


# ---------------------------------------------------------------------------
# Schools
# ---------------------------------------------------------------------------

@registry_write(conflict_message=DOMAIN_TAKEN)
def _insert_school(data: SchoolInput) -> School:
    if _get_school(data.domain) is not None:
        raise Conflict(DOMAIN_TAKEN)

    school = School(
        domain=data.domain,
        school=data.school,
        name=data.name,
        email=data.email,
        plan=data.plan,
    )
    db.session.add(school)
    db.session.commit()
    return school


def register_school(payload: Mapping[str, Any]) -> School:
    """Validate a signup payload and persist a new school.

    Raises ValidationFailed, Conflict or StorageFailure.
    """
    data = parse_school_input(payload, domain_max_length=_domain_max_length())

    with _write_lock:
        school = _insert_school(data)

    current_app.logger.info('Registered school domain=%s plan=%s', school.domain, school.plan)
    return school


def find_school(domain: Any) -> Optional[School]:
    """Return the school owning `domain`, or None.

    A failed read is logged and treated as "not found".
    """
    key = lookup_key(domain)
    if not key:
        return None
    return safe_read(lambda: _get_school(key), default=None)


def all_records() -> list[School]:
    return safe_read(lambda: School.query.order_by(School.id).all(), default=[])


# ---------------------------------------------------------------------------
# Subdomains
# ---------------------------------------------------------------------------

@registry_write(conflict_message=SUBDOMAIN_TAKEN)
def _insert_subdomain(data: SubdomainInput) -> Subdomain:
    owner = _get_school(data.main_domain)
    if owner is None:
        raise NotFound(DOMAIN_NOT_FOUND)

    exists = Subdomain.query.filter_by(school_id=owner.id, subdomain=data.subdomain).first()
    if exists is not None:
        raise Conflict(SUBDOMAIN_TAKEN)

    record = Subdomain(
        subdomain=data.subdomain,
        type=data.type,
        name=data.name,
        description=data.description,
        access_link=access_link(owner.domain, data.subdomain),
    )
    owner.subdomains.append(record)
    db.session.commit()
    return record


def create_subdomain(payload: Mapping[str, Any]) -> Subdomain:
    """Attach a typed subdomain to an existing school.

    Raises ValidationFailed, NotFound, Conflict or StorageFailure.
    """
    data = parse_subdomain_input(payload, subdomain_max_length=_subdomain_max_length())

    with _write_lock:
        record = _insert_subdomain(data)

    current_app.logger.info('Created subdomain %s (type=%s)', record.access_link, record.type)
    return record


def list_subdomains(domain: Any) -> tuple[School, list[Subdomain]]:
    school = find_school(domain)
    if school is None:
        raise NotFound(DOMAIN_NOT_FOUND)
    return school, list(school.subdomains)


@registry_write()
def _remove_subdomain(domain_key: str, subdomain_key: str) -> None:
    owner = _get_school(domain_key)
    if owner is None:
        raise NotFound(DOMAIN_NOT_FOUND)

    record = Subdomain.query.filter_by(school_id=owner.id, subdomain=subdomain_key).first()
    if record is None:
        raise NotFound(SUBDOMAIN_NOT_FOUND)

    owner.subdomains.remove(record)
    db.session.commit()


def delete_subdomain(domain: Any, subdomain: Any) -> None:
    domain_key = lookup_key(domain)
    subdomain_key = lookup_key(subdomain)

    with _write_lock:
        _remove_subdomain(domain_key, subdomain_key)

    current_app.logger.info('Deleted subdomain /%s/%s', domain_key, subdomain_key)


@registry_write()
def _clear_subdomains(domain_key: str) -> int:
    owner = _get_school(domain_key)
    if owner is None:
        raise NotFound(DOMAIN_NOT_FOUND)

    removed = len(owner.subdomains)
    owner.subdomains = []
    db.session.commit()
    return removed


def delete_all_subdomains(domain: Any) -> int:
    """Empty a school's subdomain collection; returns how many were removed."""
    domain_key = lookup_key(domain)

    with _write_lock:
        removed = _clear_subdomains(domain_key)

    current_app.logger.info('Deleted %d subdomain(s) under %s', removed, domain_key)
    return removed


# ---------------------------------------------------------------------------
# Bulk import
# ---------------------------------------------------------------------------

def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _build_imported_school(raw: Mapping[str, Any]) -> School:
    data = parse_school_input(raw, domain_max_length=_domain_max_length(), require_email=False)
    school = School(
        domain=data.domain,
        school=data.school,
        name=data.name,
        email=data.email,
        plan=data.plan,
    )
    created = _parse_timestamp(raw.get('createdAt'))
    if created is not None:
        school.created_at = created

    raw_subs = raw.get('subdomains') or []
    if not isinstance(raw_subs, list) or not all(isinstance(s, Mapping) for s in raw_subs):
        raise ValidationFailed('Subdomains must be a list of records')

    seen: set[str] = set()
    for raw_sub in raw_subs:
        sub = parse_subdomain_input(
            {**raw_sub, 'mainDomain': data.domain},
            subdomain_max_length=_subdomain_max_length(),
        )
        if sub.subdomain in seen:
            continue
        seen.add(sub.subdomain)
        record = Subdomain(
            subdomain=sub.subdomain,
            type=sub.type,
            name=sub.name,
            description=sub.description,
            access_link=access_link(data.domain, sub.subdomain),
        )
        sub_created = _parse_timestamp(raw_sub.get('createdAt'))
        if sub_created is not None:
            record.created_at = sub_created
        school.subdomains.append(record)
    return school


@registry_write(conflict_message=DOMAIN_TAKEN)
def _merge_records(records: list) -> dict[str, int]:
    counts = {'imported': 0, 'skipped': 0, 'invalid': 0}
    pending: set[str] = set()
    for raw in records:
        if not isinstance(raw, Mapping):
            counts['invalid'] += 1
            continue
        try:
            school = _build_imported_school(raw)
        except ValidationFailed as exc:
            counts['invalid'] += 1
            current_app.logger.warning('Skipping invalid record %r: %s', raw.get('domain'), exc.message)
            continue
        if school.domain in pending or _get_school(school.domain) is not None:
            counts['skipped'] += 1
            continue
        pending.add(school.domain)
        db.session.add(school)
        counts['imported'] += 1
    db.session.commit()
    return counts


def import_records(records: Iterable[Mapping[str, Any]]) -> dict[str, int]:
    """Merge legacy registry records, keeping existing domains untouched.

    Records that fail validation are skipped and logged. The oldest data files
    carry no `email`, so it is optional here.
    """
    records = list(records)

    with _write_lock:
        counts = _merge_records(records)

    current_app.logger.info(
        'Imported %d school(s), skipped %d existing, %d invalid',
        counts['imported'], counts['skipped'], counts['invalid'],
    )
    return counts
