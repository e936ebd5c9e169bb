"""Authenticate users against LDAP / Active Directory and resolve their groups."""

from .directory import LdapConfig
from .services.auth import AuthenticationResult, AuthenticationStatus, LdapAuthenticationEngine, authenticate

__all__ = [
    "LdapConfig",
    "AuthenticationResult",
    "AuthenticationStatus",
    "LdapAuthenticationEngine",
    "authenticate",
]
