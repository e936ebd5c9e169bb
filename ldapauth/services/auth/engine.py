from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Generic, Optional, Protocol, TypeVar

from ...directory import (
    DirectoryConnection,
    DirectoryEntry,
    DirectoryUser,
    Identity,
    LdapConfig,
    LdapConnectionFactory,
    LdapCredentialError,
    LdapError,
    SearchPolicy,
)
from ...directory.utils import dn_first_component_value
from .backend import AuthenticationResult, AuthenticationState

log = logging.getLogger(__name__)

T = TypeVar("T")


class ConnectionFactory(Protocol):
    def open(self, identity: Identity | None = None) -> DirectoryConnection: ...


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one stage: ok flag, produced value, captured error."""

    ok: bool
    value: Optional[T] = None
    error: Optional[LdapError] = None


class LdapAuthenticationEngine:
    """Bind -> search user -> bind as user -> resolve groups.

    Holds only read-only collaborators, so one instance can serve concurrent
    calls; every call gets its own state and its own connections.
    """

    def __init__(
        self,
        cfg: LdapConfig,
        connection_factory: ConnectionFactory | None = None,
        search_policy: SearchPolicy | None = None,
    ) -> None:
        self.cfg = cfg
        self.connections = connection_factory or LdapConnectionFactory(cfg)
        self.policy = search_policy or SearchPolicy(cfg)

    def authenticate(self, username: str, password: str) -> AuthenticationResult:
        bind = self._bind()
        state = AuthenticationState(bind=bind.ok, error=bind.error)
        if not bind.ok or bind.value is None:
            return AuthenticationResult.not_found(state)

        with bind.value as conn:
            found = self._search_user(conn, username)
            state = replace(state, search_user=found.ok, error=found.error)
            if not found.ok or found.value is None:
                return AuthenticationResult.not_found(state)
            entry = found.value

            verified = self._authenticate_user(entry.dn, password)
            state = replace(state, authenticate_user=verified.ok, error=verified.error)
            if not verified.ok:
                return AuthenticationResult.failed(state)

            user = DirectoryUser.from_entry(entry, self.cfg)
            groups = self._fetch_groups(conn, user)
            groups |= self._groups_from_attributes(entry)

        log.debug("user %s authenticated, groups: %s", user.id, sorted(groups))
        return AuthenticationResult.success(user, groups, state)

    # --- stages ------------------------------------------------------------

    def _bind(self) -> Outcome[DirectoryConnection]:
        identity = self.cfg.service_identity
        if identity is None:
            log.debug("create anonymous bind context")
        try:
            conn = self.connections.open(identity)
        except LdapError as e:
            log.error("could not bind to ldap with dn %s: %s", self.cfg.connection_dn or "<anonymous>", e)
            return Outcome(False, error=e)
        return Outcome(True, conn)

    def _search_user(self, conn: DirectoryConnection, username: str) -> Outcome[DirectoryEntry]:
        if not (username or "").strip():
            log.warning("empty username, user search skipped")
            return Outcome(False)
        try:
            entry = self.policy.search_user(conn, username)
        except LdapError as e:
            log.error("exception occurred during user search: %s", e)
            return Outcome(False, error=e)
        if entry is None:
            return Outcome(False)
        return Outcome(True, entry)

    def _authenticate_user(self, user_dn: str, password: str) -> Outcome[None]:
        if not password:
            # A simple bind without password is an unauthenticated bind and would succeed.
            log.debug("authentication failed for user %s: empty password", user_dn)
            return Outcome(False, error=LdapCredentialError(f"empty password for {user_dn}"))
        try:
            with self.connections.open(Identity(user_dn, password)):
                pass
        except LdapError as e:
            log.debug("authentication failed for user %s: %s", user_dn, e)
            return Outcome(False, error=e)
        log.debug("user %s successfully authenticated", user_dn)
        return Outcome(True)

    # --- groups ------------------------------------------------------------

    def _fetch_groups(self, conn: DirectoryConnection, user: DirectoryUser) -> set[str]:
        """Reverse channel: group entries whose filter matches the user."""
        if not conn.closed:
            return self.policy.search_groups(conn, user.dn, user.id, user.mail)
        try:
            with self.connections.open(self.cfg.service_identity) as fresh:
                return self.policy.search_groups(fresh, user.dn, user.id, user.mail)
        except LdapError as e:
            log.warning("could not reopen bind connection for group search: %s", e)
            return set()

    def _groups_from_attributes(self, entry: DirectoryEntry) -> set[str]:
        """Forward channel: leading RDN value of each DN in the membership attribute."""
        attr = self.cfg.attribute_name_group
        if not attr:
            return set()
        values = entry.values(attr)
        if not values:
            log.info("user has no group attributes assigned")
            return set()
        return {name for name in (dn_first_component_value(v) for v in values) if name}
