from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .directory import LdapConfig, ReferralStrategy, SearchScope

ScopeName = Literal["base", "one", "sub"]
ReferralName = Literal["follow", "ignore", "throw"]


class LdapConfigSchema(BaseModel):
    """LDAP settings as exchanged with the configuration API (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    host_url: str = Field(..., alias="hostUrl", min_length=1)
    base_dn: str = Field(default="", alias="baseDn")
    connection_dn: str = Field(default="", alias="connectionDn")
    connection_password: Optional[str] = Field(default=None, alias="connectionPassword")

    unit_people: str = Field(default="", alias="unitPeople")
    unit_group: str = Field(default="", alias="unitGroup")

    search_filter: str = Field(default="", alias="searchFilter")
    search_filter_group: str = Field(default="", alias="searchFilterGroup")
    search_scope: ScopeName = Field(default="sub", alias="searchScope")

    attribute_name_id: str = Field(default="uid", alias="attributeNameId")
    attribute_name_fullname: str = Field(default="cn", alias="attributeNameFullname")
    attribute_name_mail: str = Field(default="mail", alias="attributeNameMail")
    attribute_name_group: str = Field(default="memberOf", alias="attributeNameGroup")
    attribute_name_group_name: str = Field(default="cn", alias="attributeNameGroupName")

    referral_strategy: ReferralName = Field(default="follow", alias="referralStrategy")
    enable_start_tls: bool = Field(default=False, alias="enableStartTls")
    tls_validate: bool = Field(default=True, alias="tlsValidate")
    ca_certs_file: str = Field(default="", alias="caCertsFile")

    connect_timeout_ms: Optional[int] = Field(default=None, alias="connectTimeout", gt=0)
    read_timeout_ms: Optional[int] = Field(default=None, alias="readTimeout", gt=0)

    @field_validator(
        "host_url", "base_dn", "connection_dn", "unit_people", "unit_group",
        "search_filter", "search_filter_group", "ca_certs_file",
    )
    @classmethod
    def _strip(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("host_url")
    @classmethod
    def _validate_host_url(cls, v: str) -> str:
        if not v.lower().startswith(("ldap://", "ldaps://")):
            raise ValueError("host url must start with ldap:// or ldaps://")
        return v

    @field_validator("search_scope", mode="before")
    @classmethod
    def _normalize_scope(cls, v):
        # Accept the long names used by older configs.
        aliases = {"object": "base", "onelevel": "one", "one-level": "one", "subtree": "sub"}
        if isinstance(v, str):
            return aliases.get(v.strip().lower(), v.strip().lower())
        return v

    def to_config(self) -> LdapConfig:
        return LdapConfig(
            host_url=self.host_url,
            base_dn=self.base_dn,
            connection_dn=self.connection_dn,
            connection_password=self.connection_password or None,
            unit_people=self.unit_people,
            unit_group=self.unit_group,
            search_filter=self.search_filter,
            search_filter_group=self.search_filter_group,
            search_scope=SearchScope(self.search_scope),
            attribute_name_id=self.attribute_name_id,
            attribute_name_fullname=self.attribute_name_fullname,
            attribute_name_mail=self.attribute_name_mail,
            attribute_name_group=self.attribute_name_group,
            attribute_name_group_name=self.attribute_name_group_name,
            referral_strategy=ReferralStrategy(self.referral_strategy),
            enable_start_tls=self.enable_start_tls,
            tls_validate=self.tls_validate,
            ca_certs_file=self.ca_certs_file,
            connect_timeout_ms=self.connect_timeout_ms,
            read_timeout_ms=self.read_timeout_ms,
        )


class LdapTestConfigSchema(BaseModel):
    config: LdapConfigSchema
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LdapTestStateSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bind: Optional[bool] = None
    search_user: Optional[bool] = Field(default=None, alias="searchUser")
    authenticate_user: Optional[bool] = Field(default=None, alias="authenticateUser")
    error: Optional[str] = None
    user: Optional[dict] = None
    groups: list[str] = Field(default_factory=list)
