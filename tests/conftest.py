from __future__ import annotations

from typing import Iterator

import pytest

from ldapauth.directory import (
    DirectoryEntry,
    Identity,
    LdapConfig,
    LdapConnectionError,
    LdapCredentialError,
    LdapSearchError,
    SearchScope,
)

BASE_DN = "dc=hitchhiker,dc=com"
BIND_DN = "cn=directory manager"
BIND_PWD = "manager123"
TRILLIAN_DN = f"uid=trillian,ou=people,{BASE_DN}"
DENT_DN = f"uid=dent,ou=people,{BASE_DN}"


class FakeConnection:
    """Stands in for DirectoryConnection; answers searches from FakeDirectory.results."""

    def __init__(self, directory: "FakeDirectory", identity: Identity | None) -> None:
        self.directory = directory
        self.identity = identity
        self.close_calls = 0
        self.searches: list[tuple] = []

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def search(self, base_dn, search_filter, scope, attributes=None, size_limit=0) -> Iterator[DirectoryEntry]:
        if self.closed:
            raise AssertionError("search on closed connection")
        self.searches.append((base_dn, search_filter, SearchScope(scope), list(attributes or []), size_limit))
        entries = list(self.directory.results.get(search_filter, []))
        if size_limit:
            entries = entries[:size_limit]
        fail_after = self.directory.fail_search.get(search_filter)
        for i, entry in enumerate(entries):
            if fail_after is not None and i >= fail_after:
                break
            yield entry
        if fail_after is not None:
            raise LdapSearchError(f"search {search_filter} failed")

    def close(self) -> None:
        self.close_calls += 1

    def __enter__(self) -> "FakeConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class FakeDirectory:
    """Connection factory backed by in-memory users, passwords and canned search results."""

    def __init__(self) -> None:
        self.passwords: dict[str, str] = {BIND_DN: BIND_PWD}
        self.results: dict[str, list[DirectoryEntry]] = {}
        # filter -> number of entries yielded before LdapSearchError is raised
        self.fail_search: dict[str, int] = {}
        self.unreachable = False
        self.opened: list[FakeConnection] = []

    def open(self, identity: Identity | None = None) -> FakeConnection:
        if self.unreachable:
            raise LdapConnectionError("could not connect to ldap://ldap.hitchhiker.com")
        if identity is not None and self.passwords.get(identity.principal) != identity.credential:
            raise LdapCredentialError(f"bind rejected: invalidCredentials for {identity.principal}")
        conn = FakeConnection(self, identity)
        self.opened.append(conn)
        return conn


def make_config(**overrides) -> LdapConfig:
    values = dict(
        host_url="ldap://ldap.hitchhiker.com:389",
        base_dn=BASE_DN,
        connection_dn=BIND_DN,
        connection_password=BIND_PWD,
        unit_people="ou=people",
        unit_group="ou=groups",
        search_filter="(uid={0})",
        search_filter_group="(member={0})",
        attribute_name_id="uid",
        attribute_name_fullname="cn",
        attribute_name_mail="mail",
        attribute_name_group="memberOf",
    )
    values.update(overrides)
    return LdapConfig(**values)


@pytest.fixture
def config() -> LdapConfig:
    return make_config()


@pytest.fixture
def directory() -> FakeDirectory:
    d = FakeDirectory()
    d.passwords[TRILLIAN_DN] = "secret"
    d.passwords[DENT_DN] = "dent123"
    d.results["(uid=trillian)"] = [
        DirectoryEntry(
            TRILLIAN_DN,
            {
                "uid": ["trillian"],
                "cn": ["Tricia McMillan"],
                "mail": ["tricia.mcmillan@hitchhiker.com"],
                "memberOf": [f"cn=admins,ou=groups,{BASE_DN}", f"cn=heartOfGold,ou=groups,{BASE_DN}"],
            },
        )
    ]
    d.results["(uid=dent)"] = [
        DirectoryEntry(DENT_DN, {"uid": ["dent"], "cn": ["Arthur Dent"]})
    ]
    d.results[f"(member={TRILLIAN_DN})"] = [
        DirectoryEntry(f"cn=heartOfGold,ou=groups,{BASE_DN}", {"cn": ["heartOfGold"]}),
        DirectoryEntry(f"cn=crew,ou=groups,{BASE_DN}", {"cn": ["crew"]}),
    ]
    return d
