"""Application service layer.

We keep a stable import surface for routers:
    from ldapauth.services import ...
"""

from .auth import (
    AuthenticationResult,
    AuthenticationState,
    AuthenticationStatus,
    LdapAuthenticationEngine,
    authenticate,
)
from .config_check import run_config_check

__all__ = [
    "AuthenticationResult",
    "AuthenticationState",
    "AuthenticationStatus",
    "LdapAuthenticationEngine",
    "authenticate",
    "run_config_check",
]
