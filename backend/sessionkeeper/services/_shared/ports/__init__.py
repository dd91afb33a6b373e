"""
sessionkeeper.services._shared.ports
====================================

Collection of *ports* (hexagonal interfaces) that define the contracts
for token handling, revocation storage and outgoing email.

These ports decouple the session core from concrete implementations
of signing, storage backends and mail transport.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec`: bearer token signing/verification and
    opaque token hashing.

- :mod:`denylist_store`:
    Defines :class:`~.TokenDenylistStore`: storage for revoked bearer tokens.

- :mod:`email_sender`:
    Defines :class:`~.EmailSender`: best-effort HTML email delivery.

- :mod:`template_renderer`:
    Defines :class:`~.TemplateRenderer`: named template rendering.

Design Notes
------------
Concrete adapters (Redis, SQL, Flask-Mail, Jinja2) implement these
interfaces under ``sessionkeeper.infra``.
"""

from __future__ import annotations

from .denylist_store import InMemoryDenylistStore, TokenDenylistStore
from .email_sender import EmailSender, InMemoryEmailSender, SentEmail
from .template_renderer import TemplateRenderer
from .token_codec import IssuedToken, StubTokenCodec, TokenClaims, TokenCodec, keyed_digest

__all__ = [
    "EmailSender",
    "InMemoryDenylistStore",
    "InMemoryEmailSender",
    "IssuedToken",
    "SentEmail",
    "StubTokenCodec",
    "TemplateRenderer",
    "TokenClaims",
    "TokenCodec",
    "TokenDenylistStore",
    "keyed_digest",
]
