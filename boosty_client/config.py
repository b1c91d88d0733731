from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

import yaml
from pydantic import ValidationError

from .config_schema import AppConfig
from .errors import ConfigError

if TYPE_CHECKING:
    from .auth import TokenManager
    from .client import BoostyClient
    from .run_log import EventLog


@dataclass(frozen=True)
class RuntimeCredentials:
    access_token: str | None = None
    refresh_token: str | None = None
    device_id: str | None = None

    @property
    def mode(self) -> str:
        if self.access_token:
            return "static"
        if self.refresh_token and self.device_id:
            return "refresh"
        return "anonymous"

    def apply(self, manager: "TokenManager") -> None:
        """Configure a token manager for whichever credential mode is present."""
        if self.access_token:
            manager.set_static_token(self.access_token)
        elif self.refresh_token and self.device_id:
            manager.set_refresh_credentials(self.refresh_token, self.device_id)


def load_config(path: str | Path) -> AppConfig:
    """
    Load a YAML config file and validate it into a typed AppConfig.

    Raises ConfigError with a readable validation message on failure.
    """
    p = Path(path)

    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")

    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Failed to read config file: {p}") from e

    try:
        data = yaml.safe_load(raw_text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {p}: {e}") from e

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise ConfigError(f"Top-level YAML in {p} must be a mapping/object")

    try:
        return AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(_format_pydantic_errors(e, p)) from e


def resolve_runtime_credentials(
    config: AppConfig, *, environ: Mapping[str, str] | None = None
) -> RuntimeCredentials:
    """
    Read credentials from the environment variables named in the config.

    Blank values count as unset. A static token cannot be combined with refresh
    credentials, and a refresh token needs its device id (and vice versa).
    """
    env = os.environ if environ is None else environ
    names = config.auth

    access = (env.get(names.access_token_env) or "").strip() or None
    refresh = (env.get(names.refresh_token_env) or "").strip() or None
    device = (env.get(names.device_id_env) or "").strip() or None

    if access and (refresh or device):
        raise ConfigError(
            f"Set either {names.access_token_env} or "
            f"{names.refresh_token_env} + {names.device_id_env}, not both"
        )

    if bool(refresh) != bool(device):
        missing = names.device_id_env if refresh else names.refresh_token_env
        raise ConfigError(f"Missing required environment variables: {missing}")

    return RuntimeCredentials(access_token=access, refresh_token=refresh, device_id=device)


def build_client(
    config: AppConfig,
    credentials: RuntimeCredentials,
    *,
    logger: "EventLog | None" = None,
) -> "BoostyClient":
    from .client import BoostyClient

    client = BoostyClient(
        config.api.base_url,
        timeout_seconds=config.api.timeout_seconds,
        user_agent=config.api.user_agent,
        default_blog=config.api.default_blog,
        logger=logger,
    )
    credentials.apply(client.auth)
    return client


def _format_pydantic_errors(err: ValidationError, path: Path) -> str:
    lines: list[str] = [f"Invalid configuration in {path}:"]
    for item in err.errors():
        loc = ".".join(str(part) for part in item.get("loc", [])) or "<root>"
        msg = item.get("msg", "invalid value")
        lines.append(f"- {loc}: {msg}")
    return "\n".join(lines)
