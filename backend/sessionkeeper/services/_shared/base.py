# sessionkeeper/services/_shared/base.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import UTC, datetime
from typing import TypeVar

from sqlalchemy.orm.exc import StaleDataError

from sessionkeeper.core import errors as api_errors
from sessionkeeper.services._shared.errors import (
    AuthError,
    AuthorizationError,
    ConcurrencyError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    PolicyRejected,
    ServiceError,
    SessionExpiredError,
    ValidationError,
)
from sessionkeeper.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

log = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Retry a whole unit of work when an optimistic version check fails.
    * Centralize error translation.
    * Keep services thin, orchestration-only, no web/ORM leakage.

    Notes
    -----
    - Services must never touch the global session; always use a Unit of Work.
    - ``clock`` is injectable so time-dependent rules can be tested.
    """

    #: Attempts for :meth:`retry_on_conflict` before giving up.
    CONFLICT_RETRIES = 3

    def __init__(self, *, clock: Clock | None = None) -> None:
        """
        Initialize the base service.

        :param clock: Callable returning the current aware UTC datetime.
        :type clock: Callable[[], datetime] | None
        """
        self.clock: Clock = clock or utcnow

    def now_utc(self) -> datetime:
        """Return "now" according to the service clock."""
        return self.clock()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork()

    def retry_on_conflict(self, fn: Callable[[], T], *, attempts: int | None = None) -> T:
        """
        Run ``fn`` (a complete unit of work) again when a concurrent writer won.

        Every write to a user aggregate is conditional on the version that was
        read. When another request committed first, SQLAlchemy raises
        :class:`StaleDataError`; the work is replayed against the fresh record.

        :param fn: Callable that opens, performs and commits its own UoW.
        :param attempts: Maximum tries (defaults to :attr:`CONFLICT_RETRIES`).
        :returns: Whatever ``fn`` returns.
        :raises ConcurrencyError: When every attempt lost the race.
        """
        tries = attempts or self.CONFLICT_RETRIES
        for attempt in range(1, tries + 1):
            try:
                return fn()
            except StaleDataError:
                log.info("uow.version_conflict attempt=%s/%s", attempt, tries)
        raise ConcurrencyError()

    # -------------------------- Error handling ------------------------------

    @staticmethod
    def translate_exceptions(exc: ServiceError) -> api_errors.APIError:
        """
        Map domain/service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: ServiceError
        :returns: Translated exception ready to be rendered.
        :rtype: APIError
        """
        if isinstance(exc, AuthError):
            # → 401 Unauthorized
            return api_errors.Unauthorized(str(exc), code=exc.reason.value)

        if isinstance(exc, PolicyRejected):
            # → 403 with the state the client needs to act
            return api_errors.Forbidden(str(exc), code=exc.reason.value, details=exc.details)

        if isinstance(exc, AuthorizationError):
            return api_errors.Forbidden(str(exc) or "Forbidden")

        if isinstance(exc, NotFoundError):
            # → 404 Not Found
            return api_errors.NotFound(str(exc), code=exc.code)

        if isinstance(exc, SessionExpiredError):
            return api_errors.APIError(str(exc), status_code=400, code="SESSION_EXPIRED")

        if isinstance(exc, ConflictError):
            # → 409 Conflict
            return api_errors.Conflict(str(exc))

        if isinstance(exc, ConcurrencyError):
            return api_errors.Conflict(str(exc), code="concurrent_update")

        if isinstance(exc, InfrastructureError):
            # → 500, never leak the backend message
            return api_errors.APIError(
                "Temporary infrastructure failure",
                status_code=500,
                code="infrastructure_error",
            )

        if isinstance(exc, ValidationError):
            return api_errors.APIError(str(exc), status_code=400, code=exc.code)

        # Any other ServiceError subclass → 400 Bad Request
        return api_errors.APIError(str(exc), status_code=400, code="bad_request")

    # --------------------------- AuthZ --------------------------------

    def ensure_role(self, role: str | None, allowed: Iterable[str]) -> None:
        """
        Ensure ``role`` is one of ``allowed``.

        :param role: Role of the authenticated caller.
        :param allowed: Roles granted access.
        :raises AuthorizationError: If the role is not in the set.
        """
        if role not in set(allowed):
            raise AuthorizationError("Access denied")
