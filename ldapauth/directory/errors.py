from __future__ import annotations


class LdapError(Exception):
    """Base class for directory failures that are handled per call."""


class LdapConnectionError(LdapError):
    """Host unreachable, TLS negotiation failed or a bind was rejected."""


class LdapCredentialError(LdapConnectionError):
    """The directory rejected the supplied password (invalidCredentials)."""


class LdapSearchError(LdapError):
    """Unusable filter or base DN, search timeout, unresolved referral."""
