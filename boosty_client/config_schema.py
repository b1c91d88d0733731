from __future__ import annotations

import re
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ENV_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

DEFAULT_BASE_URL = "https://api.boosty.to"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/110.0.0.0 Safari/537.36"
)


def _validate_env_var_name(value: str) -> str:
    name = (value or "").strip()
    if not _ENV_NAME_RE.fullmatch(name):
        raise ValueError("must be a valid environment variable name")
    return name


PositiveInt = Annotated[int, Field(ge=1)]


class ApiConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = Field(30.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    default_blog: str | None = None

    @field_validator("base_url")
    @classmethod
    def _base_url_must_be_http(cls, v: str) -> str:
        url = (v or "").strip().rstrip("/")
        if not (url.startswith("http://") or url.startswith("https://")):
            raise ValueError("must start with http:// or https://")
        return url

    @field_validator("user_agent")
    @classmethod
    def _user_agent_must_be_set(cls, v: str) -> str:
        ua = (v or "").strip()
        if not ua:
            raise ValueError("must be non-empty")
        return ua


class AuthConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    access_token_env: str = "BOOSTY_ACCESS_TOKEN"
    refresh_token_env: str = "BOOSTY_REFRESH_TOKEN"
    device_id_env: str = "BOOSTY_DEVICE_ID"

    @field_validator("access_token_env", "refresh_token_env", "device_id_env")
    @classmethod
    def _env_names_must_be_valid(cls, v: str) -> str:
        return _validate_env_var_name(v)


class PaginationConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    posts_page_size: PositiveInt = 20
    comments_page_size: PositiveInt = 20


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    pagination: PaginationConfig = Field(default_factory=PaginationConfig)
