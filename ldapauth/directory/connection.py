from __future__ import annotations

import logging
import ssl
from typing import Any, Iterable, Iterator, Optional

from ldap3 import (
    Server,
    Connection,
    Tls,
    NONE,
    BASE,
    LEVEL,
    SUBTREE,
    SIMPLE,
    ANONYMOUS,
    AUTO_BIND_NONE,
    NO_ATTRIBUTES,
)
from ldap3.core.exceptions import LDAPException, LDAPPasswordIsMandatoryError
from ldap3.core.results import (
    RESULT_SUCCESS,
    RESULT_SIZE_LIMIT_EXCEEDED,
    RESULT_REFERRAL,
    RESULT_INVALID_CREDENTIALS,
)

from ..env_settings import get_env
from .errors import LdapConnectionError, LdapCredentialError, LdapSearchError
from .models import DirectoryEntry, Identity, LdapConfig, ReferralStrategy, SearchScope
from .utils import attr_values

log = logging.getLogger(__name__)

_SCOPES = {
    SearchScope.BASE: BASE,
    SearchScope.ONE_LEVEL: LEVEL,
    SearchScope.SUBTREE: SUBTREE,
}


def build_tls(cfg: LdapConfig) -> Tls:
    """TLS settings for ldaps:// and StartTLS; system trust store unless a CA file is set."""
    tls_kwargs: dict[str, Any] = {
        "validate": ssl.CERT_REQUIRED if cfg.tls_validate else ssl.CERT_NONE,
    }
    if cfg.tls_validate and cfg.ca_certs_file:
        tls_kwargs["ca_certs_file"] = cfg.ca_certs_file
    return Tls(**tls_kwargs)


def _pick_timeout(*candidates: Optional[int]) -> float:
    for ms in candidates:
        if ms is not None and int(ms) > 0:
            return int(ms) / 1000.0
    return 0.0


class DirectoryConnection:
    """One LDAP v3 session: transport, optional StartTLS upgrade and bind.

    Use as a context manager so the session is released on every exit path:

        with DirectoryConnection.open(cfg, Identity(dn, pwd)) as conn:
            for entry in conn.search(...):
                ...
    """

    def __init__(self, cfg: LdapConfig, conn: Connection) -> None:
        self.cfg = cfg
        self._conn: Connection | None = conn
        self.tls_started = False

    @classmethod
    def open(
        cls,
        cfg: LdapConfig,
        identity: Identity | None = None,
        tls: Tls | None = None,
        connect_timeout_ms: int | None = None,
        read_timeout_ms: int | None = None,
    ) -> "DirectoryConnection":
        env = get_env()
        connect_timeout = _pick_timeout(connect_timeout_ms, cfg.connect_timeout_ms, env.timeout_connect_ms)
        read_timeout = _pick_timeout(read_timeout_ms, cfg.read_timeout_ms, env.timeout_read_ms)

        conn_kwargs: dict[str, Any] = {
            "version": 3,
            "auto_bind": AUTO_BIND_NONE,
            "auto_referrals": cfg.referral_strategy is ReferralStrategy.FOLLOW,
            "read_only": True,
            "receive_timeout": read_timeout or None,
            "raise_exceptions": False,
        }
        if identity is not None:
            log.debug("create context for dn %s", identity.principal)
            conn_kwargs.update(user=identity.principal, password=identity.credential, authentication=SIMPLE)
        else:
            log.debug("create anonymous context")
            conn_kwargs["authentication"] = ANONYMOUS
        log.debug("use %s as referral strategy", cfg.referral_strategy.value)

        try:
            server = Server(
                cfg.host_url,
                get_info=NONE,
                tls=tls if tls is not None else build_tls(cfg),
                connect_timeout=connect_timeout or None,
            )
            raw = Connection(server, **conn_kwargs)
        except LDAPException as e:
            raise LdapConnectionError(f"invalid connection settings for {cfg.host_url}: {e}") from e

        conn = cls(cfg, raw)
        try:
            conn._establish(identity)
        except BaseException:
            conn.close()
            raise
        return conn

    def _establish(self, identity: Identity | None) -> None:
        try:
            self._conn.open()
        except LDAPException as e:
            raise LdapConnectionError(f"could not connect to {self.cfg.host_url}: {e}") from e

        if not self.cfg.enable_start_tls:
            self._bind(identity)
            return

        log.debug("send starttls request")
        try:
            ok = self._conn.start_tls()
        except LDAPException as e:
            raise LdapConnectionError(f"starttls negotiation failed: {e}") from e
        if not ok:
            raise LdapConnectionError(f"starttls negotiation failed: {self._describe_result()}")
        self.tls_started = True

        # Credentials only ever travel over the negotiated channel.
        if identity is None:
            log.debug("no bind identity, session stays anonymous")
            return
        log.debug("set bind credentials for dn %s", identity.principal)
        self._bind(identity)
        self._verify_bind()

    def _bind(self, identity: Identity | None) -> None:
        try:
            ok = self._conn.bind()
        except LDAPPasswordIsMandatoryError as e:
            raise LdapCredentialError(f"bind without password refused for {identity.principal if identity else ''}") from e
        except LDAPException as e:
            raise LdapConnectionError(f"bind failed: {e}") from e
        if not ok:
            self._raise_bind_error()

    def _verify_bind(self) -> None:
        """Read the base DN without attributes; a deferred bind is only proven by this."""
        log.debug("fetch dn of %s to force bind", self.cfg.base_dn)
        try:
            self._conn.search(
                search_base=self.cfg.base_dn or "",
                search_filter="(objectClass=*)",
                search_scope=BASE,
                attributes=[NO_ATTRIBUTES],
            )
        except LDAPException as e:
            raise LdapConnectionError(f"bind verification failed: {e}") from e
        if self._result_code() not in (RESULT_SUCCESS, None):
            self._raise_bind_error()

    def _raise_bind_error(self) -> None:
        msg = f"bind rejected: {self._describe_result()}"
        if self._result_code() == RESULT_INVALID_CREDENTIALS:
            raise LdapCredentialError(msg)
        raise LdapConnectionError(msg)

    def _result_code(self) -> int | None:
        res = (self._conn.result if self._conn is not None else None) or {}
        return res.get("result")

    def _describe_result(self) -> str:
        res = (self._conn.result if self._conn is not None else None) or {}
        desc = res.get("description") or "unknown error"
        message = res.get("message") or ""
        return f"{desc} ({message})" if message and message != desc else str(desc)

    @property
    def closed(self) -> bool:
        return self._conn is None or bool(getattr(self._conn, "closed", False))

    def search(
        self,
        base_dn: str,
        search_filter: str,
        scope: SearchScope,
        attributes: Iterable[str] | None = None,
        size_limit: int = 0,
    ) -> Iterator[DirectoryEntry]:
        """Lazily yield entries; nothing is sent before the first ``next()``."""
        if self.closed:
            raise LdapSearchError("search on a closed connection")

        attrs = [a for a in (attributes or []) if a]
        try:
            self._conn.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=_SCOPES[SearchScope(scope)],
                attributes=attrs or [NO_ATTRIBUTES],
                size_limit=int(size_limit or 0),
            )
        except LDAPException as e:
            raise LdapSearchError(f"search {search_filter} under {base_dn} failed: {e}") from e

        code = self._result_code()
        strategy = self.cfg.referral_strategy
        if code == RESULT_REFERRAL:
            if strategy is ReferralStrategy.IGNORE:
                log.debug("ignore referral returned for %s", base_dn)
                return
            raise LdapSearchError(f"unresolved referral for {base_dn}: {self._describe_result()}")
        if code not in (RESULT_SUCCESS, RESULT_SIZE_LIMIT_EXCEEDED, None):
            raise LdapSearchError(f"search under {base_dn} failed: {self._describe_result()}")

        for item in list(self._conn.response or []):
            kind = item.get("type")
            if kind == "searchResRef":
                if strategy is ReferralStrategy.THROW:
                    raise LdapSearchError(f"referral to {item.get('uri')} not followed")
                log.debug("skip referral %s", item.get("uri"))
                continue
            if kind != "searchResEntry":
                continue
            raw_attrs = item.get("raw_attributes") or item.get("attributes") or {}
            yield DirectoryEntry(
                dn=str(item.get("dn") or ""),
                attributes={k: attr_values(v) for k, v in raw_attrs.items()},
            )

    def close(self) -> None:
        """Unbind and drop the socket (and TLS session). Safe to call repeatedly."""
        conn, self._conn = self._conn, None
        if conn is None:
            return
        try:
            conn.unbind()
        except LDAPException as e:
            log.debug("error while closing ldap connection: %s", e)

    def __enter__(self) -> "DirectoryConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class LdapConnectionFactory:
    """Opens DirectoryConnections for one config; the seam tests substitute."""

    def __init__(self, cfg: LdapConfig, tls: Tls | None = None) -> None:
        self.cfg = cfg
        self.tls = tls

    def open(self, identity: Identity | None = None) -> DirectoryConnection:
        return DirectoryConnection.open(self.cfg, identity, tls=self.tls)
