from asyncpg import exceptions as asyncpg_exc
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError


# deadlock_detected, serialization_failure
CONFLICT_SQLSTATES = frozenset({"40P01", "40001"})
# lock_not_available, query_canceled (statement/lock timeout), connection failures, admin shutdown
TRANSIENT_SQLSTATES = frozenset({"55P03", "57014", "57P01", "08000", "08003", "08006"})


def sqlstate(exc: DBAPIError) -> str | None:
    orig = getattr(exc, "orig", exc)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return code
    return None


def is_conflict(exc: DBAPIError) -> bool:
    """True when the transaction lost a deadlock or serialization race and may be re-run."""
    orig = getattr(exc, "orig", exc)
    cause = getattr(orig, "__cause__", None)
    if isinstance(cause, (asyncpg_exc.DeadlockDetectedError, asyncpg_exc.SerializationError)):
        return True
    return sqlstate(exc) in CONFLICT_SQLSTATES


def is_transient(exc: DBAPIError) -> bool:
    """True for store failures that say nothing about the request itself."""
    if exc.connection_invalidated:
        return True
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return sqlstate(exc) in TRANSIENT_SQLSTATES
