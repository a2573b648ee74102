"""rdcontext application configuration.

Loads settings from two YAML files:
  * rdcontext.settings.yaml  — non-secret configuration
  * rdcontext.secrets.yaml   — API keys (never committed)

Both files are looked up in ``$RDCONTEXT_HOME`` (default ``~/.rdcontext``)
and then in the current directory.  Environment variables override the
YAML values so that ``AI_PROVIDER=gemini rdcontext add ...`` works without
touching any file.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = "rdcontext.settings.yaml"
SECRETS_FILE  = "rdcontext.secrets.yaml"


def config_home() -> Path:
    """Directory holding the database and the YAML files."""
    return Path(os.environ.get("RDCONTEXT_HOME", Path.home() / ".rdcontext"))


def _find_file(name: str) -> Optional[Path]:
    for directory in (config_home(), Path.cwd()):
        candidate = directory / name
        if candidate.exists():
            return candidate
    return None


def _load_yaml(path: Optional[Path]) -> Dict[str, Any]:
    if path is None or not path.exists():
        logger.debug("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class OpenAISecrets(BaseModel):
    api_key: Optional[str] = None


class GeminiSecrets(BaseModel):
    api_key: Optional[str] = None


class GitHubSecrets(BaseModel):
    token: Optional[str] = None


class Secrets(BaseModel):
    openai: OpenAISecrets = Field(default_factory=OpenAISecrets)
    gemini: GeminiSecrets = Field(default_factory=GeminiSecrets)
    github: GitHubSecrets = Field(default_factory=GitHubSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class DatabaseSettings(BaseModel):
    path: str = Field(default_factory=lambda: str(config_home() / "rdcontext.duckdb"))


class EmbeddingSettings(BaseModel):
    provider:     Literal["openai", "gemini"] = "openai"
    openai_model: str = "text-embedding-3-small"
    gemini_model: str = "text-embedding-004"

    @field_validator("provider", mode="before")
    @classmethod
    def _lowercase_provider(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @property
    def model(self) -> str:
        """Embedding model for the active provider."""
        return self.gemini_model if self.provider == "gemini" else self.openai_model


class ExtractionSettings(BaseModel):
    model: str = "gemini-1.5-pro"


class IngestionSettings(BaseModel):
    file_batch_size:      int = Field(default=10, ge=1)
    embedding_batch_size: int = Field(default=5, ge=1)
    vector_batch_size:    int = Field(default=50, ge=1)
    extensions:           List[str] = Field(default_factory=lambda: ["md", "mdx"])


class ServerSettings(BaseModel):
    host:      str = "127.0.0.1"
    port:      int = 3000
    transport: Literal["http"] = "http"


class LoggingSettings(BaseModel):
    level: str = "info"


class AppSettings(BaseModel):
    database:   DatabaseSettings   = Field(default_factory=DatabaseSettings)
    embedding:  EmbeddingSettings  = Field(default_factory=EmbeddingSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    ingestion:  IngestionSettings  = Field(default_factory=IngestionSettings)
    server:     ServerSettings     = Field(default_factory=ServerSettings)
    logging:    LoggingSettings    = Field(default_factory=LoggingSettings)
    secrets:    Secrets            = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Environment variable overrides
# ---------------------------------------------------------------------------

# env var → (section, key) for settings, (secrets, provider, key) for secrets
_ENV_OVERRIDES: Dict[str, tuple] = {
    "AI_PROVIDER":            ("embedding", "provider"),
    "OPENAI_EMBEDDING_MODEL": ("embedding", "openai_model"),
    "GEMINI_EMBEDDING_MODEL": ("embedding", "gemini_model"),
    "GEMINI_TEXT_MODEL":      ("extraction", "model"),
    "RDCONTEXT_DB_PATH":      ("database", "path"),
    "OPENAI_API_KEY":         ("secrets", "openai", "api_key"),
    "GEMINI_API_KEY":         ("secrets", "gemini", "api_key"),
    "GITHUB_TOKEN":           ("secrets", "github", "token"),
}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    for env_var, path in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        node = data
        for key in path[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        node[path[-1]] = value
    # Anything other than "gemini" falls back to OpenAI.
    provider = data.get("embedding", {}).get("provider")
    if isinstance(provider, str) and provider.lower() != "gemini":
        data["embedding"]["provider"] = "openai"
    return data


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_settings(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppSettings:
    """Load and merge settings + secrets + env vars into *AppSettings*."""
    settings_data = _load_yaml(settings_path or _find_file(SETTINGS_FILE))
    secrets_data  = _load_yaml(secrets_path or _find_file(SECRETS_FILE))

    # Merge: secrets live under the "secrets" key in AppSettings
    settings_data["secrets"] = secrets_data
    settings_data = _apply_env_overrides(settings_data)

    app_settings = AppSettings(**settings_data)
    logger.debug(
        "Settings loaded (db=%s, provider=%s, model=%s)",
        app_settings.database.path,
        app_settings.embedding.provider,
        app_settings.embedding.model,
    )
    return app_settings


_config: Optional[AppSettings] = None


def get_config() -> AppSettings:
    """Return the process-wide settings, loading them on first use."""
    global _config
    if _config is None:
        _config = load_settings()
    return _config


def set_config(config: Optional[AppSettings]) -> None:
    """Set (or clear) the process-wide settings."""
    global _config
    _config = config
