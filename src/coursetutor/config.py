"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (COURSETUTOR__CACHE__TTL_SECONDS=600)
  2. coursetutor.yaml       (searched in cwd, then platform config dir)
  3. Hardcoded defaults

The config file is optional. Provider API keys are never stored here: each
endpoint names the environment variable its key is read from when the
provider chains are built at startup.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("coursetutor")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "responses.db")


def _find_config_file() -> str | None:
    """Return the path of the first coursetutor.yaml found, or None."""
    candidates = [
        Path("coursetutor.yaml"),
        Path(platformdirs.user_config_dir("coursetutor")) / "coursetutor.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class ServerSettings(BaseModel):
    transport: Literal["stdio", "http"] = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080
    auth_enabled: bool = True
    auth_key: str = ""
    allowed_origins: list[str] = [
        "http://localhost",
        "http://127.0.0.1",
        "https://localhost",
        "https://127.0.0.1",
    ]


class EndpointSettings(BaseModel):
    """One OpenAI-compatible API endpoint."""

    base_url: str
    api_key_env: str  # Name of the environment variable holding the bearer key


class ChainStep(BaseModel):
    """One provider attempt within a chain: an endpoint plus a model."""

    name: str  # Label used in logs and cache keys, e.g. "deepseek-r1"
    endpoint: str  # Key into ProviderSettings.endpoints
    model: str


class ChainSettings(BaseModel):
    timeout_seconds: float = Field(default=20.0, gt=0)
    # Order is the preference ranking: strongest first, most available last
    steps: list[ChainStep] = Field(min_length=1)


def _default_endpoints() -> dict[str, EndpointSettings]:
    return {
        "openrouter": EndpointSettings(
            base_url="https://openrouter.ai/api/v1",
            api_key_env="OPENROUTER_API_KEY",
        ),
        "gemini": EndpointSettings(
            base_url="https://generativelanguage.googleapis.com/v1beta/openai",
            api_key_env="GEMINI_API_KEY",
        ),
        "openai": EndpointSettings(
            base_url="https://api.openai.com/v1",
            api_key_env="OPENAI_API_KEY",
        ),
    }


def _default_question_chain() -> ChainSettings:
    return ChainSettings(
        timeout_seconds=20.0,
        steps=[
            ChainStep(name="gpt-oss-120b", endpoint="openrouter", model="openai/gpt-oss-120b"),
            ChainStep(name="deepseek-r1", endpoint="openrouter", model="deepseek/deepseek-r1"),
            ChainStep(
                name="deepseek-r1-free", endpoint="openrouter", model="deepseek/deepseek-r1:free"
            ),
            ChainStep(
                name="qwen-2.5-coder",
                endpoint="openrouter",
                model="qwen/qwen-2.5-coder-32b-instruct",
            ),
            ChainStep(
                name="qwen-2.5-72b", endpoint="openrouter", model="qwen/qwen-2.5-72b-instruct"
            ),
            ChainStep(name="gemini-1.5-flash", endpoint="gemini", model="gemini-1.5-flash"),
            ChainStep(
                name="llama-3.2",
                endpoint="openrouter",
                model="meta-llama/llama-3.2-11b-vision-instruct",
            ),
            ChainStep(
                name="mistral-7b", endpoint="openrouter", model="mistralai/mistral-7b-instruct"
            ),
            ChainStep(name="gemini-1.5-pro", endpoint="gemini", model="gemini-1.5-pro"),
        ],
    )


def _default_notes_chain() -> ChainSettings:
    return ChainSettings(
        timeout_seconds=25.0,
        steps=[
            ChainStep(name="gpt-oss-120b", endpoint="openrouter", model="openai/gpt-oss-120b"),
            ChainStep(name="deepseek-chat", endpoint="openrouter", model="deepseek/deepseek-chat"),
            ChainStep(
                name="qwen-2.5-72b", endpoint="openrouter", model="qwen/qwen-2.5-72b-instruct"
            ),
            ChainStep(
                name="llama-3.2",
                endpoint="openrouter",
                model="meta-llama/llama-3.2-11b-vision-instruct",
            ),
        ],
    )


def _default_summary_chain() -> ChainSettings:
    return ChainSettings(
        timeout_seconds=20.0,
        steps=[
            ChainStep(name="gpt-oss-120b", endpoint="openrouter", model="openai/gpt-oss-120b"),
            ChainStep(name="gemini-1.5-flash", endpoint="gemini", model="gemini-1.5-flash"),
            ChainStep(name="gpt-4o-mini", endpoint="openai", model="gpt-4o-mini"),
        ],
    )


class ProviderSettings(BaseModel):
    endpoints: dict[str, EndpointSettings] = Field(default_factory=_default_endpoints)
    question_chain: ChainSettings = Field(default_factory=_default_question_chain)
    notes_chain: ChainSettings = Field(default_factory=_default_notes_chain)
    # Also used for clarification requests
    summary_chain: ChainSettings = Field(default_factory=_default_summary_chain)
    request_timeout_seconds: float = 30.0


class CacheSettings(BaseModel):
    backend: Literal["memory", "sqlite"] = "memory"
    ttl_seconds: int = Field(default=300, gt=0)
    max_entries: int = Field(default=1000, gt=0)
    db_path: str = _DEFAULT_DB_PATH
    cleanup_interval_minutes: int = Field(default=10, gt=0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: COURSETUTOR__SERVER__PORT=9090
        env_prefix="COURSETUTOR__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    server: ServerSettings = ServerSettings()
    providers: ProviderSettings = ProviderSettings()
    cache: CacheSettings = CacheSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
