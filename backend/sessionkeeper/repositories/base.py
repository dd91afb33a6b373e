"""Persistence-only repository base for SQLAlchemy 2.x.

Repositories never commit or roll back; the unit of work owning the session
does. They also never apply business rules: lockout, session admission and
token checks live in the service layer.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast

from sqlalchemy import Select, and_, func, select
from sqlalchemy.orm import InstrumentedAttribute, Session

from sessionkeeper.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


class BaseRepository(Generic[E]):
    """Primary-key access, whitelisted filters and whitelisted updates.

    Subclasses set ``model`` and may widen :meth:`_filterable_fields` and
    :meth:`_updatable_fields`. Both default to empty, so nothing can be
    filtered on or mass-assigned unless a repository opts in.
    """

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """The unit-of-work session, or the Flask-scoped one."""
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    # ------------------------------ Whitelists -------------------------------

    def _filterable_fields(self) -> Mapping[str, InstrumentedAttribute[Any]]:
        """Map public filter keys to columns; unknown keys are ignored."""
        return {}

    def _updatable_fields(self) -> set[str]:
        """Keys :meth:`assign_updates` may set."""
        return set()

    def _where(self, stmt: Select[Any], filters: Mapping[str, Any]) -> Select[Any]:
        allowed = self._filterable_fields()
        clauses = [allowed[k] == v for k, v in filters.items() if k in allowed]
        return stmt.where(and_(*clauses)) if clauses else stmt

    # --------------------------------- Access --------------------------------

    def _by_pk(self, entity_id: Any) -> Select[Any]:
        return select(self.model).where(self.model.id == entity_id)  # type: ignore[attr-defined]

    def get(self, entity_id: Any) -> E | None:
        """Load an entity by primary key, or ``None``."""
        return cast(E | None, self.session.execute(self._by_pk(entity_id)).scalars().first())

    def get_for_update(self, entity_id: Any) -> E | None:
        """
        Load an entity by primary key with ``SELECT ... FOR UPDATE``.

        The lock narrows the window for concurrent writers on backends that
        support it; the version column still guards the write on those that
        do not (SQLite ignores the clause).
        """
        stmt = self._by_pk(entity_id).with_for_update()
        return cast(E | None, self.session.execute(stmt).scalars().first())

    def exists(self, **filters: Any) -> bool:
        """``True`` when a row matches the whitelisted equality ``filters``."""
        stmt = self._where(select(func.count()).select_from(self.model), filters)
        return bool(self.session.execute(stmt).scalar())

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush so its primary key is assigned."""
        self.session.add(instance)
        self.flush()
        return instance

    def delete(self, instance: E) -> None:
        self.session.delete(instance)
        self.flush()

    def flush(self) -> None:
        self.session.flush()

    # ------------------------------ Safe updates -----------------------------

    def assign_updates(self, instance: E, fields: Mapping[str, Any], *, flush: bool = False) -> E:
        """
        Set whitelisted attributes through ``setattr`` so model validators run.

        :raises ValueError: If ``fields`` names a key outside the whitelist.
        """
        unknown = sorted(set(fields) - self._updatable_fields())
        if unknown:
            raise ValueError(f"Unknown or non-updatable fields: {unknown}")
        for key, value in fields.items():
            setattr(instance, key, value)
        if flush:
            self.flush()
        return instance
