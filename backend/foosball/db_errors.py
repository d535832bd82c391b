"""Helpers for working with database/SQLAlchemy errors."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, SQLAlchemyError

# serialization_failure, deadlock_detected
_CONFLICT_SQLSTATES = {"40001", "40P01"}
# unique_violation
_UNIQUE_SQLSTATES = {"23505"}
# connection_exception class, admin_shutdown, crash_shutdown, cannot_connect_now
_UNAVAILABLE_SQLSTATE_PREFIXES = ("08",)
_UNAVAILABLE_SQLSTATES = {"57P01", "57P02", "57P03"}

_CONFLICT_MESSAGES = (
    "database is locked",
    "deadlock detected",
    "could not serialize access",
    "lock wait timeout",
)


def _sqlstate(exc: SQLAlchemyError) -> str | None:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def is_transaction_conflict(exc: SQLAlchemyError) -> bool:
    """Return ``True`` if ``exc`` reports a write conflict with another transaction."""

    if not isinstance(exc, DBAPIError):
        return False

    if _sqlstate(exc) in _CONFLICT_SQLSTATES:
        return True

    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _CONFLICT_MESSAGES)


def is_store_unavailable(exc: BaseException) -> bool:
    """Return ``True`` if ``exc`` means the database could not be reached.

    Besides SQLAlchemy's wrapped driver errors this also accepts raw
    ``OSError`` instances, which async drivers raise when a socket cannot be
    opened at all.
    """

    if isinstance(exc, OSError):
        return True

    if not isinstance(exc, DBAPIError):
        return False

    if exc.connection_invalidated or isinstance(exc, InterfaceError):
        return True

    sqlstate = _sqlstate(exc)
    if sqlstate is None:
        return False
    return sqlstate in _UNAVAILABLE_SQLSTATES or sqlstate.startswith(
        _UNAVAILABLE_SQLSTATE_PREFIXES
    )


def is_unique_violation(exc: SQLAlchemyError) -> bool:
    """Return ``True`` if ``exc`` is a unique constraint/index violation."""

    if not isinstance(exc, IntegrityError):
        return False

    if _sqlstate(exc) in _UNIQUE_SQLSTATES:
        return True

    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message
