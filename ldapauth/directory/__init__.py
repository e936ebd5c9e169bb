"""LDAP directory access: config model, connections and search policy.

Public API:
    - LdapConfig, Identity, DirectoryEntry, DirectoryUser
    - DirectoryConnection, LdapConnectionFactory
    - SearchPolicy
    - LdapError and subclasses
"""

from .models import (
    DirectoryEntry,
    DirectoryUser,
    Identity,
    LdapConfig,
    ReferralStrategy,
    SearchScope,
)
from .errors import LdapConnectionError, LdapCredentialError, LdapError, LdapSearchError
from .connection import DirectoryConnection, LdapConnectionFactory
from .search import SearchPolicy

__all__ = [
    "DirectoryEntry",
    "DirectoryUser",
    "Identity",
    "LdapConfig",
    "ReferralStrategy",
    "SearchScope",
    "LdapError",
    "LdapConnectionError",
    "LdapCredentialError",
    "LdapSearchError",
    "DirectoryConnection",
    "LdapConnectionFactory",
    "SearchPolicy",
]
