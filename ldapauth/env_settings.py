from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field


class EnvSettings(BaseSettings):
    # LDAP timeouts, milliseconds
    timeout_connect_ms: int = Field(120000, alias="TIMEOUT_CONNECT")  # 2 min
    timeout_read_ms: int = Field(720000, alias="TIMEOUT_READ")  # 12 min

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_dir: str = Field("data/logs", alias="LOG_DIR")
    log_retention_days: int = Field(30, alias="LOG_RETENTION_DAYS")

    class Config:
        populate_by_name = True


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
