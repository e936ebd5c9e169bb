from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import ValidationError

from conftest import BASE_DN, BIND_DN, BIND_PWD
from ldapauth.directory import ReferralStrategy, SearchScope
from ldapauth.routers import ldap_config
from ldapauth.schema import LdapConfigSchema
from ldapauth.services.auth import engine as engine_mod

CONFIG_JSON = {
    "hostUrl": "ldap://ldap.hitchhiker.com:389",
    "baseDn": BASE_DN,
    "connectionDn": BIND_DN,
    "connectionPassword": BIND_PWD,
    "unitPeople": "ou=people",
    "unitGroup": "ou=groups",
    "searchFilter": "(uid={0})",
    "searchFilterGroup": "(member={0})",
    "searchScope": "subtree",
    "referralStrategy": "ignore",
}


@pytest.fixture
def client(monkeypatch, directory):
    monkeypatch.setattr(engine_mod, "LdapConnectionFactory", lambda cfg: directory)
    app = FastAPI()
    app.include_router(ldap_config.router)
    return TestClient(app)


def test_schema_maps_to_config():
    cfg = LdapConfigSchema.model_validate(CONFIG_JSON).to_config()

    assert cfg.host_url == "ldap://ldap.hitchhiker.com:389"
    assert cfg.search_scope is SearchScope.SUBTREE
    assert cfg.referral_strategy is ReferralStrategy.IGNORE
    assert cfg.service_identity == (BIND_DN, BIND_PWD)
    assert cfg.connect_timeout_ms is None


def test_schema_empty_password_means_anonymous():
    cfg = LdapConfigSchema.model_validate({**CONFIG_JSON, "connectionPassword": ""}).to_config()

    assert cfg.connection_password is None
    assert cfg.service_identity is None


def test_schema_rejects_non_ldap_url():
    with pytest.raises(ValidationError):
        LdapConfigSchema.model_validate({**CONFIG_JSON, "hostUrl": "http://ldap.hitchhiker.com"})


def test_config_check_success(client):
    resp = client.post(
        "/v2/config/ldap/test",
        json={"config": CONFIG_JSON, "username": "trillian", "password": "secret"},
    )

    assert resp.status_code == 200
    data = resp.json()
    assert data["bind"] is True
    assert data["searchUser"] is True
    assert data["authenticateUser"] is True
    assert data["error"] is None
    assert data["user"]["id"] == "trillian"
    assert data["groups"] == ["admins", "crew", "heartOfGold"]


def test_config_check_wrong_password(client):
    resp = client.post(
        "/v2/config/ldap/test",
        json={"config": CONFIG_JSON, "username": "trillian", "password": "nope"},
    )

    data = resp.json()
    assert data["authenticateUser"] is False
    assert "invalidCredentials" in data["error"]
    assert data["user"] is None
    assert data["groups"] == []


def test_config_check_unknown_user(client):
    resp = client.post(
        "/v2/config/ldap/test",
        json={"config": CONFIG_JSON, "username": "zaphod", "password": "x"},
    )

    data = resp.json()
    assert data["bind"] is True
    assert data["searchUser"] is False
    assert data["authenticateUser"] is None


def test_config_check_validates_body(client):
    resp = client.post("/v2/config/ldap/test", json={"config": CONFIG_JSON, "username": "", "password": "x"})

    assert resp.status_code == 422


def test_create_app_mounts_router(monkeypatch, tmp_path):
    import logging

    from ldapauth import log_config
    from ldapauth.env_settings import get_env
    from ldapauth.main import create_app

    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    get_env.cache_clear()
    root = logging.getLogger()
    saved_level = root.level
    try:
        app = create_app()
        assert "/v2/config/ldap/test" in {route.path for route in app.routes}
    finally:
        for h in (log_config._file_handler, log_config._console_handler):
            if h is not None:
                root.removeHandler(h)
                h.close()
        root.setLevel(saved_level)
        get_env.cache_clear()
