from __future__ import annotations

from fastapi import FastAPI

from .env_settings import get_env
from .log_config import setup_logging
from .routers import ldap_config


def create_app() -> FastAPI:
    env = get_env()
    setup_logging(level=env.log_level, retention_days=env.log_retention_days, log_dir=env.log_dir)

    app = FastAPI(title="LDAP Auth")
    app.include_router(ldap_config.router)
    return app
