from __future__ import annotations

import logging

from ..directory import LdapConfig
from .auth import LdapAuthenticationEngine

log = logging.getLogger(__name__)


def run_config_check(cfg: LdapConfig, username: str, password: str) -> dict:
    """Try a login with an unsaved config and report how far it got.

    Returns the serialized state; ``user`` and ``groups`` are filled only on success.
    """
    result = LdapAuthenticationEngine(cfg).authenticate(username, password)
    payload = result.state.to_dict()
    payload["user"] = result.user.to_dict() if result.ok and result.user else None
    payload["groups"] = sorted(result.groups) if result.ok else []
    log.info(
        "ldap config check for %s on %s: %s",
        username, cfg.host_url, result.status.value,
    )
    return payload
