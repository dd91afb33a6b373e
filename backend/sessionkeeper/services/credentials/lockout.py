# sessionkeeper/services/credentials/lockout.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from sessionkeeper.models.user import User


@dataclass(frozen=True, slots=True)
class LockoutPolicy:
    """
    Failed-login lockout rules applied to a loaded :class:`User`.

    Each failed password comparison increments ``failed_attempts``; reaching
    ``threshold`` locks the account for ``duration``. While locked, logins
    are refused without touching the counter. The first attempt after the
    window resets the counter before the password is checked.

    :param threshold: Consecutive failures that trigger a lock.
    :param duration: Length of the lock.
    """

    threshold: int = 5
    duration: timedelta = timedelta(hours=2)

    def is_locked(self, user: User, now: datetime) -> bool:
        return user.is_locked(now)

    def release_if_expired(self, user: User, now: datetime) -> bool:
        """
        Clear an elapsed lock and its counter.

        :returns: ``True`` if the user was modified.
        """
        if user.locked_until is None or user.locked_until > now:
            return False
        user.locked_until = None
        user.failed_attempts = 0
        return True

    def register_failure(self, user: User, now: datetime) -> bool:
        """
        Count one failed password comparison.

        :returns: ``True`` when this failure locked the account.
        """
        user.failed_attempts = (user.failed_attempts or 0) + 1
        if user.failed_attempts >= self.threshold:
            user.locked_until = now + self.duration
            return True
        return False

    def register_success(self, user: User) -> None:
        user.failed_attempts = 0
        user.locked_until = None

    def remaining_attempts(self, user: User) -> int:
        return max(0, self.threshold - (user.failed_attempts or 0))
