from __future__ import annotations

import logging

from fastapi import APIRouter

from ..schema import LdapTestConfigSchema, LdapTestStateSchema
from ..services import run_config_check

log = logging.getLogger(__name__)

router = APIRouter(prefix="/v2/config/ldap", tags=["ldap"])


@router.post("/test", response_model=LdapTestStateSchema)
def check_ldap_config(body: LdapTestConfigSchema):
    # Plain def: the directory calls block, FastAPI runs this in its threadpool.
    cfg = body.config.to_config()
    return run_config_check(cfg, body.username, body.password)
