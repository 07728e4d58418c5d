"""
Database resilience for registry reads and writes.

A registry write unit (look up, mutate, commit) is wrapped in
`registry_write`: transient driver errors are retried on a fresh pool, and
whatever still fails leaves the session rolled back and surfaces as a
registry error the routes already know how to answer. Reads go through
`safe_read` and degrade to a default value.
"""

import functools
import time

from flask import current_app
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from schooldomain.domain.errors import Conflict, RegistryError, StorageFailure
from schooldomain.extensions import db


STORAGE_FAILED = 'Could not save changes, please try again'


def _rollback():
    try:
        db.session.rollback()
    except SQLAlchemyError as exc:
        current_app.logger.error('Failed to rollback session after DB error: %s', exc, exc_info=True)


def registry_write(conflict_message=None, max_retries=2, backoff_ms=50):
    """
    Decorator for one registry write unit.

    Args:
        conflict_message: Message of the Conflict raised when a unique
            constraint rejects the commit (another worker won the race).
            Without one, a constraint hit is a StorageFailure.
        max_retries: Retries after OperationalError/DBAPIError (default: 2)
        backoff_ms: Base wait between retries, doubled per attempt (default: 50)

    The wrapped function must be safe to run again from the top: a retry
    starts on a rolled-back session.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except RegistryError:
                    _rollback()
                    raise
                except IntegrityError as exc:
                    _rollback()
                    if conflict_message is None:
                        current_app.logger.error('Constraint violation in %s: %s', func.__name__, exc, exc_info=True)
                        raise StorageFailure(STORAGE_FAILED) from exc
                    current_app.logger.warning('%s lost a unique-constraint race: %s', func.__name__, exc.orig)
                    raise Conflict(conflict_message) from exc
                except (OperationalError, DBAPIError) as exc:
                    _rollback()
                    if attempt >= max_retries:
                        current_app.logger.error(
                            'Database write %s failed after %d attempts: %s',
                            func.__name__,
                            attempt + 1,
                            exc,
                            exc_info=True
                        )
                        raise StorageFailure(STORAGE_FAILED) from exc

                    current_app.logger.warning(
                        'Transient DB error in %s (attempt %d/%d), disposing pool: %s',
                        func.__name__,
                        attempt + 1,
                        max_retries + 1,
                        exc
                    )
                    db.engine.dispose()
                    if backoff_ms > 0:
                        time.sleep(backoff_ms * (2 ** attempt) / 1000.0)
                    attempt += 1
                except SQLAlchemyError as exc:
                    _rollback()
                    current_app.logger.error('Database write %s failed: %s', func.__name__, exc, exc_info=True)
                    raise StorageFailure(STORAGE_FAILED) from exc

        return wrapper
    return decorator


def safe_read(query_func, default=None):
    """
    Run a registry read, answering `default` when the database fails.

    Usage:
        school = safe_read(lambda: School.query.filter_by(domain=key).first())
    """
    try:
        return query_func()
    except SQLAlchemyError as exc:
        current_app.logger.warning('Registry read failed, serving default: %s', exc, exc_info=True)
        _rollback()
        return default
