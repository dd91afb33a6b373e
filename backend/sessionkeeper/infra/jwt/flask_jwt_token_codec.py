# sessionkeeper/infra/jwt/flask_jwt_token_codec.py
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import ExpiredSignatureError, InvalidTokenError

from sessionkeeper.services._shared.errors import AuthError, AuthFailure
from sessionkeeper.services._shared.ports import IssuedToken, TokenClaims, TokenCodec, keyed_digest

ACCESS_TOKEN_TYPE = "access"

# Claims managed by Flask-JWT-Extended itself; everything else is ours.
_RESERVED_CLAIMS = frozenset({"sub", "exp", "iat", "nbf", "jti", "type", "fresh", "csrf"})


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    Adapter for Flask-JWT-Extended.

    Bearer tokens are HS256 JWTs signed with ``JWT_SECRET_KEY`` whose subject
    is the user id. Opaque tokens (rotation, reset, verification) are hashed
    with HMAC-SHA256 under ``pepper``.

    .. note::
       ``issue`` and ``verify`` require an active Flask app context.
    """

    pepper: bytes

    def issue(
        self, user_id: int, ttl: timedelta, *, claims: dict[str, Any] | None = None
    ) -> IssuedToken:
        token = cast(
            str,
            create_access_token(
                identity=str(user_id),
                additional_claims=dict(claims or {}),
                expires_delta=ttl,
            ),
        )
        payload = cast(dict[str, Any], decode_token(token, allow_expired=True))
        return IssuedToken(
            token=token,
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        )

    def verify(self, token: str) -> TokenClaims:
        try:
            payload = cast(dict[str, Any], decode_token(token))
        except ExpiredSignatureError as exc:
            raise AuthError(AuthFailure.EXPIRED) from exc
        except (InvalidTokenError, JWTExtendedException) as exc:
            raise AuthError(AuthFailure.INVALID) from exc

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise AuthError(AuthFailure.INVALID)

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject.isdigit():
            raise AuthError(AuthFailure.INVALID)

        extra = {k: v for k, v in payload.items() if k not in _RESERVED_CLAIMS}
        return TokenClaims(
            user_id=int(subject),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            claims=extra,
        )

    def issue_rotation(self) -> tuple[str, str]:
        plaintext = secrets.token_hex(32)
        return plaintext, self.hash_for_lookup(plaintext)

    def hash_for_lookup(self, value: str) -> str:
        return keyed_digest(self.pepper, value)
