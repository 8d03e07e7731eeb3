"""
TransactionalResource -- one logical connection to the store.

Responsibility:
    The handle every transfer attempt runs against: execute statements in
    the current transaction, commit it, or roll it back.  Driver failures
    leave this module as StoreError carrying the store's stable error
    code, which is all the retry classifier looks at.

Architecture position:
    Kernel > Services -- imperative shell around a SQLAlchemy ``Session``.

Invariants enforced:
    - Begin-once-then-stay-uncommitted: the first execute() after a commit
      or rollback opens a transaction (SQLAlchemy autobegin) and it stays
      open until commit() or rollback().
    - Isolation is fixed by the engine (SERIALIZABLE) for the lifetime of
      the resource; nothing here changes it per attempt.
    - rollback() never raises.  A rollback failure must not mask the error
      that made the rollback necessary.

Failure modes:
    - StoreError from execute() on any driver/SQLAlchemy failure.
    - CommitError from commit(); serialization failures frequently surface
      here rather than at the UPDATE, so it carries the SQLSTATE too.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from sqlalchemy import text
from sqlalchemy.engine import Result
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transfer_kernel.domain.classifier import sqlstate_of
from transfer_kernel.exceptions import CommitError, StoreError
from transfer_kernel.logging_config import get_logger

logger = get_logger("services.transactional_resource")


class TransactionalResource(ABC):
    """
    Contract every store handle offers the retry executor.

    Guarantees:
        - ``in_transaction`` is True between the first execute() and the
          next commit()/rollback(), and False otherwise.
    """

    @abstractmethod
    def execute(self, statement: Any, params: Mapping[str, Any] | None = None) -> Any:
        """Run one store operation inside the current transaction."""
        ...

    @abstractmethod
    def commit(self) -> None:
        """Commit the current transaction.  Raises CommitError on failure."""
        ...

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the current transaction, best effort.  Never raises."""
        ...

    @property
    @abstractmethod
    def in_transaction(self) -> bool:
        ...


def _driver_message(exc: SQLAlchemyError) -> str:
    orig = getattr(exc, "orig", None)
    return (str(orig) if orig is not None else str(exc)).strip()


class SessionResource(TransactionalResource):
    """
    TransactionalResource over a SQLAlchemy ``Session``.

    Contract:
        The session's engine must have been created at SERIALIZABLE
        isolation (``transfer_kernel.db.engine.init_engine_from_url``).
        The resource owns transaction boundaries on this session; nothing
        else may commit or roll it back while a transfer is running.

    Non-goals:
        - Does not create, pool or reconnect connections.
    """

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        """The wrapped session, for selectors reading inside the same transaction."""
        return self._session

    def execute(self, statement: Any, params: Mapping[str, Any] | None = None) -> Result:
        if isinstance(statement, str):
            statement = text(statement)
        try:
            if params is None:
                return self._session.execute(statement)
            return self._session.execute(statement, dict(params))
        except SQLAlchemyError as exc:
            raise StoreError(
                _driver_message(exc), sqlstate=sqlstate_of(exc), operation="execute"
            ) from exc

    def commit(self) -> None:
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            raise CommitError(_driver_message(exc), sqlstate=sqlstate_of(exc)) from exc

    def rollback(self) -> None:
        try:
            self._session.rollback()
        except Exception:
            # Probably the server is unreachable; the caller is already
            # handling the error that got us here.
            logger.debug("rollback_failed", exc_info=True)

    @property
    def in_transaction(self) -> bool:
        return self._session.in_transaction()

    def close(self) -> None:
        """Roll back anything left open and release the connection."""
        self.rollback()
        self._session.close()
