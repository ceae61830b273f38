"""
Datastore error taxonomy.

Codes follow the SQLSTATE / PostgREST values a hosted Postgres backend would
report, so callers can tell an invariant violation apart from an outage.
"""
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError


class ErrorCode(str, Enum):
    UNIQUE_VIOLATION = "23505"
    FOREIGN_KEY_VIOLATION = "23503"
    NOT_NULL_VIOLATION = "23502"
    RULE_VIOLATION = "P0001"
    INVALID_CREDENTIALS = "28P01"
    NOT_FOUND = "PGRST116"
    INVALID_REQUEST = "PGRST100"
    UNAVAILABLE = "08006"
    INTERNAL = "XX000"


CONSTRAINT_CODES = {
    ErrorCode.UNIQUE_VIOLATION,
    ErrorCode.FOREIGN_KEY_VIOLATION,
    ErrorCode.NOT_NULL_VIOLATION,
    ErrorCode.RULE_VIOLATION,
}


class BackendError(Exception):
    """Raised by the datastore for every failed table call or procedure."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.INTERNAL, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    @property
    def is_constraint_violation(self) -> bool:
        return self.code in CONSTRAINT_CODES

    def __repr__(self) -> str:
        return f"BackendError(code={self.code.value!r}, message={self.message!r})"


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def translate_db_error(exc: SQLAlchemyError) -> BackendError:
    """Map a SQLAlchemy/DBAPI exception onto a BackendError."""
    detail = str(getattr(exc, "orig", exc))
    if isinstance(exc, IntegrityError):
        state = _sqlstate(exc)
        for code in (ErrorCode.UNIQUE_VIOLATION, ErrorCode.FOREIGN_KEY_VIOLATION, ErrorCode.NOT_NULL_VIOLATION):
            if state == code.value:
                return BackendError("Constraint violation", code, detail)
        # SQLite carries no SQLSTATE, only the message
        lowered = detail.lower()
        if "unique constraint" in lowered:
            return BackendError("Duplicate value violates a unique constraint", ErrorCode.UNIQUE_VIOLATION, detail)
        if "foreign key constraint" in lowered:
            return BackendError("Row is referenced by another table", ErrorCode.FOREIGN_KEY_VIOLATION, detail)
        if "not null constraint" in lowered:
            return BackendError("Missing required value", ErrorCode.NOT_NULL_VIOLATION, detail)
        return BackendError("Constraint violation", ErrorCode.RULE_VIOLATION, detail)
    if isinstance(exc, OperationalError):
        return BackendError("Datastore unavailable", ErrorCode.UNAVAILABLE, detail)
    return BackendError("Datastore error", ErrorCode.INTERNAL, detail)
