from functools import lru_cache

from pydantic_settings import BaseSettings
from pydantic import Field


class EnvSettings(BaseSettings):
    host: str = Field("localhost", alias="LDAP_AUTH_HOST")
    port: int = Field(389, alias="LDAP_AUTH_PORT")
    domain: str = Field("", alias="LDAP_AUTH_DOMAIN")
    username: str = Field("", alias="LDAP_AUTH_USERNAME")
    password: str = Field("", alias="LDAP_AUTH_PASSWORD", repr=False)

    log_level: str = Field("INFO", alias="LDAP_AUTH_LOG_LEVEL")


@lru_cache(maxsize=1)
def get_env() -> EnvSettings:
    return EnvSettings()
