"""Configuration tests."""

import pytest

from repowiki.config import ConfigError, _load_config, load_settings
from repowiki.constants.generation import PARALLEL_PAGE_LIMIT
from repowiki.constants.llm import PROVIDER_DEFAULT_MODELS


@pytest.fixture
def clean_env(monkeypatch):
    for var in (
        "REPOWIKI_CONFIG",
        "ACTIVE_PROVIDER",
        "ACTIVE_MODEL",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "GOOGLE_API_KEY",
        "OLLAMA_ENDPOINT",
        "GITHUB_TOKEN",
        "REPOWIKI_LOG_DIR",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


def test_defaults_without_config_file(clean_env):
    settings = load_settings()

    assert settings.active_provider == "openai"
    assert settings.active_model == PROVIDER_DEFAULT_MODELS["openai"]
    assert settings.generation.parallel_limit == PARALLEL_PAGE_LIMIT
    assert settings.generation.partial_results is False
    assert settings.source.api_base == "https://api.github.com"
    assert settings.llm_log_path is None


def test_provider_detected_from_key(clean_env):
    clean_env.setenv("ANTHROPIC_API_KEY", "sk-ant-test")

    settings = load_settings()

    assert settings.active_provider == "anthropic"
    assert settings.llm_api_key == "sk-ant-test"
    assert settings.active_model == PROVIDER_DEFAULT_MODELS["anthropic"]


def test_explicit_provider_and_model(clean_env):
    clean_env.setenv("ACTIVE_PROVIDER", "ollama")
    clean_env.setenv("ACTIVE_MODEL", "llama3.2")
    clean_env.setenv("OLLAMA_ENDPOINT", "http://gpu-box:11434")

    settings = load_settings()

    assert settings.active_model == "llama3.2"
    assert settings.llm_endpoint == "http://gpu-box:11434"
    assert settings.llm_api_key is None


def test_github_token_and_log_dir(clean_env, tmp_path):
    clean_env.setenv("GITHUB_TOKEN", "ghp_test")
    clean_env.setenv("REPOWIKI_LOG_DIR", str(tmp_path))

    settings = load_settings()

    assert settings.github_token == "ghp_test"
    assert settings.llm_log_path == tmp_path / "llm-queries.jsonl"


def test_config_file_sections(clean_env, tmp_path):
    config_file = tmp_path / "repowiki.ini"
    config_file.write_text(
        "[generation]\n"
        "parallel_limit = 3\n"
        "partial_results = yes\n"
        "[source]\n"
        "max_file_chars = 5000\n"
        "[ask]\n"
        "temperature = 0.2\n"
    )
    clean_env.setenv("REPOWIKI_CONFIG", str(config_file))

    settings = load_settings()

    assert settings.generation.parallel_limit == 3
    assert settings.generation.partial_results is True
    assert settings.source.max_file_chars == 5000
    assert settings.ask.temperature == 0.2


def test_settings_are_cached(clean_env):
    assert load_settings() is load_settings()


def test_out_of_range_value_is_rejected(tmp_path):
    config_file = tmp_path / "repowiki.ini"
    config_file.write_text("[generation]\nparallel_limit = 0\n")

    with pytest.raises(ConfigError, match="minimum"):
        _load_config(config_file)


def test_wrong_type_is_rejected(tmp_path):
    config_file = tmp_path / "repowiki.ini"
    config_file.write_text("[llm]\nmax_tokens = lots\n")

    with pytest.raises(ConfigError, match="expected int"):
        _load_config(config_file)


def test_missing_config_file_uses_defaults(tmp_path):
    config = _load_config(tmp_path / "absent.ini")

    assert config.generation.parallel_limit == PARALLEL_PAGE_LIMIT
