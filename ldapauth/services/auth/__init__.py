from .backend import AuthenticationResult, AuthenticationState, AuthenticationStatus, authenticate
from .engine import LdapAuthenticationEngine, Outcome

__all__ = [
    "AuthenticationResult",
    "AuthenticationState",
    "AuthenticationStatus",
    "LdapAuthenticationEngine",
    "Outcome",
    "authenticate",
]
