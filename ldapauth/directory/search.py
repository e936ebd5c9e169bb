from __future__ import annotations

import logging
from typing import Optional

from .connection import DirectoryConnection
from .errors import LdapError
from .models import DirectoryEntry, LdapConfig, SearchScope
from .utils import format_filter

log = logging.getLogger(__name__)

SEARCHTYPE_USER = "user"
SEARCHTYPE_GROUP = "group"


class SearchPolicy:
    """Filter templating, search bases and the two searches run during a login.

    Does no network I/O of its own; every search goes through the connection
    handed in by the caller.
    """

    def __init__(self, cfg: LdapConfig) -> None:
        self.cfg = cfg

    # --- bases and filters -------------------------------------------------

    def _search_base_dn(self, kind: str, prefix: str) -> Optional[str]:
        base = (self.cfg.base_dn or "").strip()
        if not base:
            log.error("no base dn defined, %s search skipped", kind)
            return None
        prefix = (prefix or "").strip()
        if prefix:
            dn = f"{prefix},{base}"
        else:
            log.debug("no prefix for %s defined, using base dn for search", kind)
            dn = base
        log.debug("search base for %s search: %s", kind, dn)
        return dn

    def user_base_dn(self) -> Optional[str]:
        return self._search_base_dn(SEARCHTYPE_USER, self.cfg.unit_people)

    def group_base_dn(self) -> Optional[str]:
        return self._search_base_dn(SEARCHTYPE_GROUP, self.cfg.unit_group)

    def user_filter(self, username: str) -> Optional[str]:
        template = (self.cfg.search_filter or "").strip()
        if not template:
            log.error("search filter for users not defined")
            return None
        flt = format_filter(template, username)
        log.debug("search-filter for user search: %s", flt)
        return flt

    def group_filter(self, user_dn: str, uid: str, mail: str | None) -> Optional[str]:
        template = (self.cfg.search_filter_group or "").strip()
        if not template:
            log.warning("search filter for groups not defined")
            return None
        flt = format_filter(template, user_dn, uid, mail or "")
        log.debug("search-filter for group search: %s", flt)
        return flt

    def return_attributes(self) -> list[str]:
        names = [
            self.cfg.attribute_name_id,
            self.cfg.attribute_name_fullname,
            self.cfg.attribute_name_mail,
            self.cfg.attribute_name_group,
        ]
        return [n for n in names if n]

    # --- searches ----------------------------------------------------------

    def search_user(self, conn: DirectoryConnection, username: str) -> Optional[DirectoryEntry]:
        """First entry matching the user filter, or None.

        A missing filter or base DN yields None; directory failures raise LdapSearchError.
        """
        flt = self.user_filter(username)
        if flt is None:
            return None
        base = self.user_base_dn()
        if base is None:
            return None

        scope = SearchScope(self.cfg.search_scope)
        log.debug("using scope %s for user search", scope.value)
        results = iter(conn.search(base, flt, scope, self.return_attributes(), size_limit=1))
        try:
            entry = next(results, None)
        finally:
            close = getattr(results, "close", None)
            if close is not None:
                close()
        if entry is None:
            log.warning("no user with username %s found", username)
        return entry

    def search_groups(
        self,
        conn: DirectoryConnection,
        user_dn: str,
        uid: str,
        mail: str | None,
    ) -> set[str]:
        """Names of groups whose entries match the group filter (reverse lookup).

        Never raises for directory errors: a failed search contributes nothing.
        """
        groups: set[str] = set()
        flt = self.group_filter(user_dn, uid, mail)
        if flt is None:
            return groups
        base = self.group_base_dn()
        if base is None:
            return groups

        name_attr = self.cfg.attribute_name_group_name
        try:
            for entry in conn.search(base, flt, SearchScope.SUBTREE, [name_attr]):
                name = entry.first(name_attr)
                if name:
                    groups.add(name)
        except LdapError as e:
            log.debug("could not find groups for %s: %s", user_dn, e)
        return groups
