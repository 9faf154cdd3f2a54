"""SDK configuration loaded from TOML.

Resolution order: packaged ``defaults.toml``, then an optional user file,
then ``AISDK_*`` environment variables.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

_DEFAULTS_PATH = Path(__file__).parent / "defaults.toml"

_ENV_OVERRIDES = {
    "AISDK_DEFAULT_MODEL": "default_model",
    "AISDK_TIMEOUT": "timeout",
    "AISDK_MAX_TOOL_ROUNDTRIPS": "max_tool_roundtrips",
    "AISDK_MAX_MESSAGES": "max_messages",
}


class ProviderSettings(BaseModel):
    """Connection settings for one provider."""

    api_key_env: str = Field(default="", description="Env var holding the API key")
    api_base: str | None = Field(default=None, description="Custom API base URL")
    litellm_prefix: str | None = Field(
        default=None, description="LiteLLM route prefix; defaults to the provider name"
    )

    @property
    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "") if self.api_key_env else ""


class SDKConfig(BaseModel):
    """Session defaults for an AIContext."""

    default_model: str | None = Field(
        default=None, description="Model used when a call names none ('provider/model')"
    )
    timeout: float = Field(default=30.0, gt=0, description="Provider call timeout in seconds")
    max_tool_roundtrips: int = Field(default=5, ge=0, description="Tool resubmission cap")
    max_messages: int = Field(default=100, ge=1, description="Conversation size cap")
    providers: dict[str, ProviderSettings] = Field(default_factory=dict)


def _read_toml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Invalid TOML in {path}: {exc}") from exc


def _merge(base: dict[str, Any], raw: dict[str, Any], path: Path) -> None:
    sdk_section = raw.get("sdk", {})
    providers_section = raw.get("providers", {})
    if not isinstance(sdk_section, dict) or not isinstance(providers_section, dict):
        raise ValueError(f"[sdk] and [providers] must be tables in {path}")
    base.update(sdk_section)
    providers = base.setdefault("providers", {})
    for name, entry in providers_section.items():
        if not isinstance(entry, dict):
            raise ValueError(f"[providers.{name}] must be a table in {path}")
        providers[name] = {**providers.get(name, {}), **entry}


def load_config(config_path: Path | None = None) -> SDKConfig:
    """Load the SDK configuration.

    Args:
        config_path: Optional user TOML laid over the packaged defaults.

    Returns:
        The resolved SDKConfig.

    Raises:
        FileNotFoundError: If *config_path* does not exist.
        ValueError: If a file or an environment override is malformed.
    """
    data: dict[str, Any] = {}
    _merge(data, _read_toml(_DEFAULTS_PATH), _DEFAULTS_PATH)
    if config_path is not None:
        _merge(data, _read_toml(config_path), config_path)

    for env_var, key in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            logger.debug("Config override from %s", env_var)
            data[key] = value

    try:
        return SDKConfig(**data)
    except ValidationError as exc:
        raise ValueError(f"Invalid SDK configuration: {exc}") from exc
