from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional

from .utils import dn_first_component_value


class SearchScope(str, Enum):
    BASE = "base"
    ONE_LEVEL = "one"
    SUBTREE = "sub"


class ReferralStrategy(str, Enum):
    FOLLOW = "follow"
    IGNORE = "ignore"
    THROW = "throw"


class Identity(NamedTuple):
    """Bind identity: DN (or UPN) plus password."""

    principal: str
    credential: str | None = None


@dataclass(frozen=True)
class LdapConfig:
    host_url: str
    base_dn: str = ""
    connection_dn: str = ""
    connection_password: Optional[str] = None

    unit_people: str = ""
    unit_group: str = ""

    search_filter: str = ""
    search_filter_group: str = ""
    search_scope: SearchScope = SearchScope.SUBTREE

    attribute_name_id: str = "uid"
    attribute_name_fullname: str = "cn"
    attribute_name_mail: str = "mail"
    attribute_name_group: str = "memberOf"
    attribute_name_group_name: str = "cn"

    referral_strategy: ReferralStrategy = ReferralStrategy.FOLLOW
    enable_start_tls: bool = False
    tls_validate: bool = True
    ca_certs_file: str = ""

    # None -> TIMEOUT_CONNECT / TIMEOUT_READ from the environment.
    connect_timeout_ms: Optional[int] = None
    read_timeout_ms: Optional[int] = None

    @property
    def service_identity(self) -> Identity | None:
        dn = (self.connection_dn or "").strip()
        if not dn or not self.connection_password:
            return None
        return Identity(dn, self.connection_password)


class _CaseInsensitiveAttrs(dict):
    """Attribute map with case-insensitive keys (LDAP attribute names are)."""

    def __init__(self, data=None, **kwargs) -> None:
        super().__init__()
        self.update(data or {}, **kwargs)

    def update(self, data=(), **kwargs) -> None:
        items = data.items() if hasattr(data, "items") else data
        for k, v in items:
            self[k] = v
        for k, v in kwargs.items():
            self[k] = v

    def setdefault(self, key: str, default=None):
        return super().setdefault(key.lower(), default)

    def __setitem__(self, key: str, value: list[str]) -> None:
        super().__setitem__(key.lower(), value)

    def __getitem__(self, key: str) -> list[str]:
        return super().__getitem__(key.lower())

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and super().__contains__(key.lower())

    def get(self, key: str, default=None):
        return super().get(key.lower(), default)


@dataclass(frozen=True)
class DirectoryEntry:
    dn: str
    attributes: dict[str, list[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", _CaseInsensitiveAttrs(self.attributes))

    def first(self, name: str) -> str | None:
        """First value of an attribute, or None when unset or the name is empty."""
        if not name:
            return None
        values = self.attributes.get(name) or []
        return values[0] if values else None

    def values(self, name: str) -> list[str]:
        if not name:
            return []
        return list(self.attributes.get(name) or [])


@dataclass(frozen=True)
class DirectoryUser:
    id: str
    display_name: str
    mail: str
    dn: str

    @classmethod
    def from_entry(cls, entry: DirectoryEntry, cfg: LdapConfig) -> "DirectoryUser":
        uid = entry.first(cfg.attribute_name_id) or dn_first_component_value(entry.dn)
        return cls(
            id=uid,
            display_name=entry.first(cfg.attribute_name_fullname) or uid,
            mail=entry.first(cfg.attribute_name_mail) or "",
            dn=entry.dn,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "displayName": self.display_name,
            "mail": self.mail,
            "dn": self.dn,
        }
