"""Service layer of the session core.

Packages
--------
- ``_shared``: base service, errors, ports and settings.
- ``revocation``: :class:`RevocationLedger`.
- ``sessions``: :class:`SessionRegistry`, :class:`SessionPolicy`, :class:`SessionService`.
- ``credentials``: one-time tokens, lockout and the reset/verification flows.
- ``auth``: :class:`AuthService` (register, login, refresh, logout ...).
- ``identity``: profile reads and updates.
- ``notifications``: fire-and-forget email.

Collaborators are wired per application in :mod:`sessionkeeper.services.container`.
"""
