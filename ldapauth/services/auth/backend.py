from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ...directory import DirectoryUser, LdapConfig


class AuthenticationStatus(str, Enum):
    NOT_FOUND = "not_found"
    FAILED = "failed"
    SUCCESS = "success"


@dataclass(frozen=True)
class AuthenticationState:
    """Diagnostic record of one authenticate() call.

    Each flag is None until its stage has run, then True or False.
    """

    bind: Optional[bool] = None
    search_user: Optional[bool] = None
    authenticate_user: Optional[bool] = None
    error: Optional[BaseException] = None

    def to_dict(self) -> dict:
        return {
            "bind": self.bind,
            "searchUser": self.search_user,
            "authenticateUser": self.authenticate_user,
            "error": str(self.error) if self.error is not None else None,
        }


@dataclass(frozen=True)
class AuthenticationResult:
    """Verdict of one authentication attempt."""

    status: AuthenticationStatus
    user: "DirectoryUser | None" = None
    groups: frozenset[str] = field(default_factory=frozenset)
    state: AuthenticationState = field(default_factory=AuthenticationState)

    @classmethod
    def not_found(cls, state: AuthenticationState) -> "AuthenticationResult":
        return cls(AuthenticationStatus.NOT_FOUND, state=state)

    @classmethod
    def failed(cls, state: AuthenticationState) -> "AuthenticationResult":
        return cls(AuthenticationStatus.FAILED, state=state)

    @classmethod
    def success(cls, user: "DirectoryUser", groups, state: AuthenticationState) -> "AuthenticationResult":
        return cls(AuthenticationStatus.SUCCESS, user=user, groups=frozenset(groups or ()), state=state)

    @property
    def ok(self) -> bool:
        return self.status is AuthenticationStatus.SUCCESS


def authenticate(username: str, password: str, cfg: "LdapConfig") -> AuthenticationResult:
    """Authenticate a user against the directory described by cfg.

    Args:
        username: Login name substituted into the user search filter
        password: Password verified by binding as the found entry
        cfg: Directory settings

    Returns:
        AuthenticationResult: verdict, user and groups; ``result.state`` holds diagnostics
    """
    from .engine import LdapAuthenticationEngine

    return LdapAuthenticationEngine(cfg).authenticate(username, password)
