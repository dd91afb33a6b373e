# sessionkeeper/services/credentials/dto.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ForgotPasswordIn:
    """
    Input DTO for requesting a reset link.

    :param email: Address the link is sent to, if an account exists.
    :type email: str
    """

    email: str


@dataclass(frozen=True, slots=True)
class ResetPasswordIn:
    """
    Input DTO for consuming a reset token.

    :param token: Plaintext token from the emailed link.
    :type token: str
    :param password: New raw password.
    :type password: str
    """

    token: str
    password: str


@dataclass(frozen=True, slots=True)
class ResendVerificationIn:
    email: str
