"""Registry service tests: uniqueness, scoping, deletion order, persistence."""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from schooldomain.domain.errors import Conflict, NotFound, StorageFailure, ValidationFailed
from schooldomain.models import School, Subdomain
from schooldomain.services import registry


def _school(domain='abc', **extra):
    payload = {'domain': domain, 'school': 'ABC School', 'name': 'T. Eacher', 'email': 't@abc.org'}
    payload.update(extra)
    return registry.register_school(payload)


def _sub(domain, subdomain, type='teacher', **extra):
    return registry.create_subdomain({'mainDomain': domain, 'subdomain': subdomain, 'type': type, **extra})


def test_register_school_persists_record(app):
    school = _school()
    stored = School.query.filter_by(domain='abc').one()
    assert stored.id == school.id
    assert stored.plan == 'basic'
    assert stored.created_at is not None
    assert stored.subdomains == []


def test_domain_unique_case_insensitive(app):
    _school('abc')
    with pytest.raises(Conflict) as exc:
        _school('ABC')
    assert exc.value.message == 'Domain already taken'
    assert School.query.count() == 1


def test_invalid_domains_add_nothing(app):
    for bad in ('toolongdomain123', 'ab!cd', ''):
        with pytest.raises(ValidationFailed):
            _school(bad)
    assert School.query.count() == 0


def test_find_school_normalizes_key(app):
    _school('abc')
    assert registry.find_school(' AbC ').domain == 'abc'
    assert registry.find_school('nope') is None
    assert registry.find_school('a/b') is None


def test_reads_are_repeatable(app):
    _school('abc')
    _sub('abc', 't1')
    first = [s.to_dict() for s in registry.list_subdomains('abc')[1]]
    second = [s.to_dict() for s in registry.list_subdomains('abc')[1]]
    assert first == second
    assert registry.find_school('abc').to_dict() == registry.find_school('abc').to_dict()


def test_subdomain_unique_per_school_only(app):
    _school('abc')
    _school('xyz')
    _sub('abc', 'Hall')
    with pytest.raises(Conflict):
        _sub('abc', 'hall')
    other = _sub('xyz', 'hall')
    assert other.access_link == '/xyz/hall'
    assert Subdomain.query.count() == 2


def test_create_subdomain_requires_owner(app):
    with pytest.raises(NotFound) as exc:
        _sub('ghost', 't1')
    assert exc.value.message == 'Domain not found'


def test_subdomain_defaults_and_access_link(app):
    _school('abc')
    record = _sub('abc', 'Lab1', type='', description='  ')
    assert record.subdomain == 'lab1'
    assert record.name == 'lab1'
    assert record.description == ''
    assert record.type == 'default'
    assert record.access_link == '/abc/lab1'


def test_access_link_is_stored_not_derived(app, db):
    _school('abc')
    record = _sub('abc', 't1')
    record.subdomain = 'renamed'
    db.session.commit()
    assert db.session.get(Subdomain, record.id).access_link == '/abc/t1'


def test_delete_subdomain_preserves_order(app):
    _school('abc')
    for key in ('t1', 't2', 't3'):
        _sub('abc', key)
    registry.delete_subdomain('ABC', 'T2')
    _, remaining = registry.list_subdomains('abc')
    assert [s.subdomain for s in remaining] == ['t1', 't3']


def test_delete_then_clear(app):
    _school('abc')
    _sub('abc', 't1')
    _sub('abc', 't2')
    registry.delete_subdomain('abc', 't1')
    assert [s.subdomain for s in registry.list_subdomains('abc')[1]] == ['t2']

    assert registry.delete_all_subdomains('abc') == 1
    assert registry.list_subdomains('abc')[1] == []
    assert Subdomain.query.count() == 0


def test_delete_missing_keys(app):
    _school('abc')
    with pytest.raises(NotFound) as exc:
        registry.delete_subdomain('abc', 'nope')
    assert exc.value.message == 'Subdomain not found'
    with pytest.raises(NotFound):
        registry.delete_subdomain('ghost', 't1')
    with pytest.raises(NotFound):
        registry.delete_all_subdomains('ghost')


def test_list_subdomains_missing_domain(app):
    with pytest.raises(NotFound):
        registry.list_subdomains('ghost')


def test_all_records_in_creation_order(app):
    _school('bbb')
    _school('aaa')
    assert [s.domain for s in registry.all_records()] == ['bbb', 'aaa']


def test_failed_commit_is_reported(app, db, monkeypatch):
    def broken_commit(self):
        raise OperationalError('COMMIT', {}, Exception('disk I/O error'))

    monkeypatch.setattr('schooldomain.utils.db_resilience.time.sleep', lambda _: None)
    monkeypatch.setattr(Session, 'commit', broken_commit)

    with pytest.raises(StorageFailure):
        _school('abc')

    monkeypatch.undo()
    assert registry.find_school('abc') is None


def test_import_records_merges_and_skips(app):
    _school('abc')
    counts = registry.import_records([
        {'domain': 'abc', 'school': 'Dup', 'name': 'X', 'email': 'x@y.z'},
        {'domain': 'Old1', 'school': 'Old School', 'name': 'Y', 'plan': 'pro',
         'createdAt': '2024-01-02T03:04:05.000Z'},
        {'domain': 'new2', 'school': 'New', 'name': 'Z', 'email': 'z@z.z',
         'subdomains': [
             {'subdomain': 'T1', 'type': 'teacher'},
             {'subdomain': 't1', 'type': 'student'},
             {'subdomain': 's1', 'type': 'student', 'name': 'Kids'},
         ]},
        {'domain': 'waytoolong', 'school': 'Bad', 'name': 'B'},
        'not-a-record',
    ])
    assert counts == {'imported': 2, 'skipped': 1, 'invalid': 2}

    old = registry.find_school('old1')
    assert old.plan == 'pro'
    assert old.email == ''
    assert old.created_at.year == 2024

    _, subs = registry.list_subdomains('new2')
    assert [(s.subdomain, s.type, s.access_link) for s in subs] == [
        ('t1', 'teacher', '/new2/t1'),
        ('s1', 'student', '/new2/s1'),
    ]


def test_import_counts_malformed_subdomain_lists_as_invalid(app):
    counts = registry.import_records([
        {'domain': 'list1', 'school': 'L', 'name': 'N', 'subdomains': ['t1']},
        {'domain': 'dict1', 'school': 'D', 'name': 'N', 'subdomains': {'subdomain': 't1'}},
        {'domain': 'good1', 'school': 'G', 'name': 'N', 'subdomains': [{'subdomain': 'T1'}]},
    ])
    assert counts == {'imported': 1, 'skipped': 0, 'invalid': 2}

    assert registry.find_school('list1') is None
    assert registry.find_school('dict1') is None
    assert [s.subdomain for s in registry.find_school('good1').subdomains] == ['t1']


def test_unique_constraint_race_reports_conflict(app, db, monkeypatch):
    _school('abc')
    # Another worker committed the same domain after our lookup.
    monkeypatch.setattr(registry, '_get_school', lambda key: None)

    with pytest.raises(Conflict) as ctx:
        _school('ABC')
    assert ctx.value.message == registry.DOMAIN_TAKEN

    monkeypatch.undo()
    assert School.query.count() == 1
    _school('xyz')
    assert registry.find_school('xyz') is not None


def test_folded_unicode_keys_never_reach_stored_records(app):
    _school('kab')
    _sub('kab', 'k1')

    with pytest.raises(ValidationFailed):
        _school('\u212Aab2')
    assert registry.find_school('\u212Aab') is None
    with pytest.raises(NotFound):
        _sub('\u212Aab', 't1')
    with pytest.raises(NotFound):
        registry.delete_subdomain('kab', '\u212A1')
    assert [s.subdomain for s in registry.find_school('kab').subdomains] == ['k1']
