"""Translate persistence-layer failures into application errors.

The only module that knows about driver-specific error shapes. Errors are
classified by SQLSTATE; SQLite (used by the test suite) reports constraint
failures as plain messages, which are mapped onto the same SQLSTATEs so both
backends go through one translation table.
"""

import re
from collections.abc import Callable

from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from kontaflow.exceptions import AppError, BusinessRuleError, ConflictError, NotFoundError

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"

_SQLITE_MESSAGE_SQLSTATES: dict[str, str] = {
    "UNIQUE constraint failed": UNIQUE_VIOLATION,
    "FOREIGN KEY constraint failed": FOREIGN_KEY_VIOLATION,
}

# PostgreSQL: 'Key (email)=(a@b.c) already exists.'
_PG_KEY_DETAIL = re.compile(r"Key \((?P<columns>[^)]+)\)=")
# SQLite: 'UNIQUE constraint failed: users.email'
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: \w+\.(?P<column>\w+)")


def _sqlstate(exc: SQLAlchemyError) -> str | None:
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    for source in (orig, orig.__cause__):
        code = getattr(source, "sqlstate", None) or getattr(source, "pgcode", None)
        if code:
            return str(code)
    message = str(orig)
    for prefix, sqlstate in _SQLITE_MESSAGE_SQLSTATES.items():
        if message.startswith(prefix):
            return sqlstate
    return None


def _constraint_field(exc: SQLAlchemyError) -> str | None:
    """Best-effort name of the column behind a unique violation."""
    orig = getattr(exc, "orig", None)
    if orig is None:
        return None
    # asyncpg exceptions carry ``detail``; SQLAlchemy's adapter chains them as __cause__
    for source in (orig, orig.__cause__):
        detail = getattr(source, "detail", None)
        if detail and (match := _PG_KEY_DETAIL.search(str(detail))):
            return match["columns"].split(",")[0].strip()
    if match := _SQLITE_UNIQUE.search(str(orig)):
        return match["column"]
    return None


def _unique_violation(exc: SQLAlchemyError) -> AppError:
    field = _constraint_field(exc) or "field"
    return ConflictError(f"A record with that {field} already exists", field)


def _foreign_key_violation(exc: SQLAlchemyError) -> AppError:
    return BusinessRuleError("The operation is blocked by related records")


SQLSTATE_TRANSLATIONS: dict[str, Callable[[SQLAlchemyError], AppError]] = {
    UNIQUE_VIOLATION: _unique_violation,
    FOREIGN_KEY_VIOLATION: _foreign_key_violation,
}


def translate_database_error(exc: SQLAlchemyError) -> AppError:
    """Map a SQLAlchemy error onto the application error taxonomy.

    - unique violation        → ConflictError (409) naming the column
    - foreign-key violation   → BusinessRuleError (422)
    - row missing on mutation → NotFoundError (404)
    - anything else           → non-operational DATABASE_ERROR (500)
    """
    if isinstance(exc, NoResultFound | StaleDataError):
        return NotFoundError("Record")

    if isinstance(exc, IntegrityError):
        translate = SQLSTATE_TRANSLATIONS.get(_sqlstate(exc) or "")
        if translate is not None:
            return translate(exc)

    return AppError("Database error", 500, "DATABASE_ERROR", is_operational=False)
