"""User repository: aggregate lookup, locking and version bumps."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from sessionkeeper.models.session import UserSession
from sessionkeeper.models.user import User
from sessionkeeper.repositories.base import BaseRepository

# Columns that store opaque-token digests and may be searched by value
TOKEN_HASH_FIELDS = frozenset(
    {"verification_token_hash", "reset_token_hash", "refresh_token_hash"}
)


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for the :class:`User` aggregate.

    It NEVER issues tokens or decides admission; the services own those
    rules. Sessions are loaded alongside the user and mutated through
    ``User.sessions`` only.
    """

    model = User

    # ---------------------------- Whitelists ----------------------------

    def _filterable_fields(self):
        return {"email": User.email, "role": User.role}

    def _updatable_fields(self):
        """Publicly allowed updatable fields (not including password)."""
        return {"email"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str, *, for_update: bool = False) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :param for_update: Lock the row for the rest of the transaction.
        :type for_update: bool
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        if for_update:
            stmt = stmt.with_for_update()
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def get_by_token_hash(self, field: str, digest: str) -> User | None:
        """Find the user holding ``digest`` in one of the token-hash columns.

        :param field: One of :data:`TOKEN_HASH_FIELDS`.
        :type field: str
        :param digest: Keyed hash of the presented token.
        :type digest: str
        :returns: Locked user row or ``None``.
        :rtype: User | None
        :raises ValueError: If ``field`` is not a token-hash column.
        """
        if field not in TOKEN_HASH_FIELDS:
            raise ValueError(f"Not a token hash column: {field}")
        column = getattr(User, field)
        stmt = select(User).where(column == digest).with_for_update()
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def list_by_device(self, device_id: str) -> list[User]:
        """Return users holding a session for ``device_id``, ordered by id."""
        stmt = (
            select(User)
            .join(UserSession, UserSession.user_id == User.id)
            .where(UserSession.device_id == device_id)
            .order_by(User.id.asc())
        )
        return list(self.session.execute(stmt).scalars().unique().all())

    # ---------------------------- Versioning ----------------------------

    def bump_version(self, user: User) -> int:
        """Advance the optimistic version counter of ``user``.

        The UPDATE emitted at flush is guarded by the previously loaded
        version; a concurrent writer that committed first makes it match
        zero rows and SQLAlchemy raises ``StaleDataError``.

        :returns: The new version.
        :rtype: int
        """
        user.version = (user.version or 0) + 1
        return user.version
