"""Tests for settings loading: YAML files, defaults and environment overrides."""
from pathlib import Path

import pytest

from rdcontext.config import (
    _ENV_OVERRIDES,
    AppSettings,
    EmbeddingSettings,
    config_home,
    get_config,
    load_settings,
    set_config,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point RDCONTEXT_HOME and cwd at an empty directory and drop env overrides."""
    for env_var in _ENV_OVERRIDES:
        monkeypatch.delenv(env_var, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("RDCONTEXT_HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestDefaults:
    def test_defaults_without_files(self, isolated_env):
        settings = load_settings()
        assert settings.embedding.provider == "openai"
        assert settings.embedding.model == "text-embedding-3-small"
        assert settings.extraction.model == "gemini-1.5-pro"
        assert settings.ingestion.file_batch_size == 10
        assert settings.ingestion.embedding_batch_size == 5
        assert settings.ingestion.vector_batch_size == 50
        assert settings.ingestion.extensions == ["md", "mdx"]
        assert settings.server.port == 3000
        assert settings.secrets.openai.api_key is None
        assert settings.database.path == str(isolated_env / "rdcontext.duckdb")

    def test_config_home_default(self, monkeypatch):
        monkeypatch.delenv("RDCONTEXT_HOME")
        assert config_home() == Path.home() / ".rdcontext"


class TestYamlFiles:
    def test_explicit_paths(self, tmp_path):
        settings_file = _write(tmp_path / "s.yaml", (
            "embedding:\n"
            "  provider: Gemini\n"
            "  gemini_model: text-embedding-preview-0815\n"
            "ingestion:\n"
            "  file_batch_size: 3\n"
            "logging:\n"
            "  level: debug\n"
        ))
        secrets_file = _write(tmp_path / "x.yaml", "gemini:\n  api_key: g-key\n")

        settings = load_settings(settings_file, secrets_file)

        assert settings.embedding.provider == "gemini"
        assert settings.embedding.model == "text-embedding-preview-0815"
        assert settings.ingestion.file_batch_size == 3
        assert settings.logging.level == "debug"
        assert settings.secrets.gemini.api_key == "g-key"

    def test_files_found_in_home(self, isolated_env):
        _write(isolated_env / "rdcontext.settings.yaml", "server:\n  port: 4000\n")
        _write(isolated_env / "rdcontext.secrets.yaml", "github:\n  token: ghp_home\n")
        settings = load_settings()
        assert settings.server.port == 4000
        assert settings.secrets.github.token == "ghp_home"

    def test_files_found_in_cwd(self, tmp_path):
        _write(tmp_path / "rdcontext.settings.yaml", "database:\n  path: /tmp/x.duckdb\n")
        assert load_settings().database.path == "/tmp/x.duckdb"

    def test_empty_file(self, tmp_path):
        settings = load_settings(_write(tmp_path / "s.yaml", ""), tmp_path / "missing.yaml")
        assert settings.embedding.provider == "openai"

    def test_invalid_batch_size_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            load_settings(_write(tmp_path / "s.yaml", "ingestion:\n  file_batch_size: 0\n"))


class TestEnvOverrides:
    def test_provider_and_keys(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "gemini")
        monkeypatch.setenv("GEMINI_API_KEY", "g-env")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_env")
        monkeypatch.setenv("GEMINI_TEXT_MODEL", "gemini-2.0-flash")

        settings = load_settings()

        assert settings.embedding.provider == "gemini"
        assert settings.secrets.gemini.api_key == "g-env"
        assert settings.secrets.openai.api_key == "sk-env"
        assert settings.secrets.github.token == "ghp_env"
        assert settings.extraction.model == "gemini-2.0-flash"

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        settings_file = _write(tmp_path / "s.yaml", "embedding:\n  openai_model: from-yaml\n")
        monkeypatch.setenv("OPENAI_EMBEDDING_MODEL", "from-env")
        assert load_settings(settings_file).embedding.openai_model == "from-env"

    def test_unknown_provider_falls_back_to_openai(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "anthropic")
        assert load_settings().embedding.provider == "openai"

    def test_db_path(self, monkeypatch):
        monkeypatch.setenv("RDCONTEXT_DB_PATH", "/data/rd.duckdb")
        assert load_settings().database.path == "/data/rd.duckdb"


class TestSingleton:
    def test_get_config_caches(self):
        first = get_config()
        assert get_config() is first

    def test_set_config(self):
        custom = AppSettings(embedding=EmbeddingSettings(provider="gemini"))
        set_config(custom)
        assert get_config() is custom
