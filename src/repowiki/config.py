"""Configuration system for repowiki.

This module handles loading settings from environment variables and an
optional INI file, providing sensible defaults for every tunable value.
"""

from configparser import ConfigParser
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional
import os

from repowiki.constants.generation import (
    MAX_OUTPUT_TOKENS,
    PARALLEL_PAGE_LIMIT,
)
from repowiki.constants.llm import (
    DEFAULT_PROVIDER,
    DEFAULT_TEMPERATURE,
    JSON_TEMPERATURE,
    MAX_TOKENS,
    PROVIDER_DEFAULT_MODELS,
)
from repowiki.constants.source import (
    GITHUB_API_BASE,
    GITHUB_RAW_BASE,
    MAX_FILE_CHARS,
    MAX_KEY_FILES,
    MAX_TREE_PATHS,
    REQUEST_TIMEOUT_SECONDS,
)


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


# Schema: section -> key -> (type, default, min, max, description)
CONFIG_SCHEMA: dict[str, dict[str, tuple[type, Any, Any, Any, str]]] = {
    "generation": {
        "parallel_limit": (int, PARALLEL_PAGE_LIMIT, 1, 50, "Concurrent page builds"),
        "max_output_tokens": (int, MAX_OUTPUT_TOKENS, 256, 32768, "Structured output cap"),
        "partial_results": (bool, False, None, None, "Emit page-error instead of failing run"),
    },
    "source": {
        "max_file_chars": (int, MAX_FILE_CHARS, 1000, 200_000, "File truncation budget"),
        "max_key_files": (int, MAX_KEY_FILES, 1, 50, "Key files read by the analyzer"),
        "max_tree_paths": (int, MAX_TREE_PATHS, 10, 10_000, "Tree paths sent to the analyzer"),
        "api_base": (str, GITHUB_API_BASE, None, None, "GitHub REST API base URL"),
        "raw_base": (str, GITHUB_RAW_BASE, None, None, "Raw file content base URL"),
        "timeout_seconds": (float, REQUEST_TIMEOUT_SECONDS, 1.0, 300.0, "HTTP timeout"),
    },
    "llm": {
        "max_tokens": (int, MAX_TOKENS, 256, 32768, "Max response tokens"),
        "default_temperature": (float, DEFAULT_TEMPERATURE, 0.0, 2.0, "Default LLM temperature"),
        "json_temperature": (float, JSON_TEMPERATURE, 0.0, 1.0, "Temperature for structured output"),
    },
    "ask": {
        "temperature": (float, DEFAULT_TEMPERATURE, 0.0, 2.0, "Temperature for Q&A answers"),
    },
}


@dataclass(frozen=True)
class GenerationConfig:
    """Wiki generation configuration."""

    parallel_limit: int
    max_output_tokens: int
    partial_results: bool


@dataclass(frozen=True)
class SourceConfig:
    """Source hosting access configuration."""

    max_file_chars: int
    max_key_files: int
    max_tree_paths: int
    api_base: str
    raw_base: str
    timeout_seconds: float


@dataclass(frozen=True)
class LLMConfig:
    """LLM client configuration."""

    max_tokens: int
    default_temperature: float
    json_temperature: float


@dataclass(frozen=True)
class AskConfig:
    """Q&A configuration."""

    temperature: float


def _load_section(
    parser: ConfigParser, section: str, schema: dict[str, tuple[type, Any, Any, Any, str]]
) -> dict[str, Any]:
    """Load and validate a configuration section.

    Args:
        parser: ConfigParser instance with loaded config
        section: Section name to load
        schema: Schema definition for the section

    Returns:
        Dictionary of validated configuration values

    Raises:
        ConfigError: If validation fails
    """
    result = {}

    for key, (typ, default, min_val, max_val, _) in schema.items():
        if parser.has_option(section, key):
            raw_value = parser.get(section, key)
            value: bool | int | float | str
            try:
                if typ is bool:
                    value = raw_value.lower() in ("true", "1", "yes", "on")
                elif typ is int:
                    value = int(raw_value)
                elif typ is float:
                    value = float(raw_value)
                else:
                    value = raw_value
            except ValueError as e:
                raise ConfigError(
                    f"Invalid value for [{section}].{key}: {raw_value!r} (expected {typ.__name__})"
                ) from e
        else:
            value = default

        if typ in (int, float) and value is not None:
            if min_val is not None and value < min_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but minimum is {min_val}"
                )
            if max_val is not None and value > max_val:
                raise ConfigError(
                    f"Value for [{section}].{key} is {value}, but maximum is {max_val}"
                )

        result[key] = value

    return result


def _section_defaults(section: str) -> dict[str, Any]:
    return {key: default for key, (_, default, _, _, _) in CONFIG_SCHEMA[section].items()}


def _load_config(config_path: Optional[Path] = None) -> "Config":
    """Load configuration from an INI file (internal use only).

    Provider, model and credentials are not read here; load_settings()
    layers them on top from the environment.

    Args:
        config_path: Path to config file. If None, uses defaults from schema.

    Returns:
        Config object with all sections populated.

    Raises:
        ConfigError: If validation fails
    """
    parser = ConfigParser()

    if config_path and config_path.exists():
        parser.read(config_path)

    return Config(
        generation=GenerationConfig(
            **_load_section(parser, "generation", CONFIG_SCHEMA["generation"])
        ),
        source=SourceConfig(**_load_section(parser, "source", CONFIG_SCHEMA["source"])),
        llm=LLMConfig(**_load_section(parser, "llm", CONFIG_SCHEMA["llm"])),
        ask=AskConfig(**_load_section(parser, "ask", CONFIG_SCHEMA["ask"])),
    )


@dataclass(frozen=True)
class Config:
    """Complete application configuration."""

    active_provider: str = DEFAULT_PROVIDER
    active_model: str = PROVIDER_DEFAULT_MODELS[DEFAULT_PROVIDER]
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    google_api_key: Optional[str] = None
    ollama_endpoint: str = "http://localhost:11434"
    github_token: Optional[str] = None
    log_dir: Optional[Path] = None

    # Section configs - defaults set in __post_init__
    generation: GenerationConfig = None  # type: ignore[assignment]
    source: SourceConfig = None  # type: ignore[assignment]
    llm: LLMConfig = None  # type: ignore[assignment]
    ask: AskConfig = None  # type: ignore[assignment]

    def __post_init__(self):
        """Initialize section configs with defaults if not provided."""
        if self.generation is None:
            object.__setattr__(self, "generation", GenerationConfig(**_section_defaults("generation")))
        if self.source is None:
            object.__setattr__(self, "source", SourceConfig(**_section_defaults("source")))
        if self.llm is None:
            object.__setattr__(self, "llm", LLMConfig(**_section_defaults("llm")))
        if self.ask is None:
            object.__setattr__(self, "ask", AskConfig(**_section_defaults("ask")))

    @property
    def llm_log_path(self) -> Optional[Path]:
        """Path to the LLM query log file, if logging is enabled."""
        if self.log_dir is None:
            return None
        return self.log_dir / "llm-queries.jsonl"

    @property
    def llm_api_key(self) -> Optional[str]:
        """API key for the active LLM provider."""
        provider_keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "google": self.google_api_key,
        }
        return provider_keys.get(self.active_provider)

    @property
    def llm_endpoint(self) -> Optional[str]:
        """Endpoint for LLM provider (mainly for Ollama)."""
        if self.active_provider == "ollama":
            return self.ollama_endpoint
        return None


def _detect_provider_from_keys() -> str:
    """Pick a provider from whichever API key is present.

    Falls back to DEFAULT_PROVIDER when no key is set.
    """
    if os.getenv("OPENAI_API_KEY"):
        return "openai"
    if os.getenv("ANTHROPIC_API_KEY"):
        return "anthropic"
    if os.getenv("GOOGLE_API_KEY"):
        return "google"
    return DEFAULT_PROVIDER


@lru_cache(maxsize=1)
def load_settings() -> Config:
    """Load settings from environment variables and config file.

    Settings are cached for the lifetime of the application.
    Use load_settings.cache_clear() to reload settings.

    Returns:
        Config object populated from environment variables and config file.

    Raises:
        ConfigError: If the config file holds invalid values.
    """
    config_path_str = os.getenv("REPOWIKI_CONFIG")
    base_config = _load_config(Path(config_path_str) if config_path_str else None)

    active_provider = os.getenv("ACTIVE_PROVIDER") or _detect_provider_from_keys()
    active_model = os.getenv("ACTIVE_MODEL") or PROVIDER_DEFAULT_MODELS.get(
        active_provider, PROVIDER_DEFAULT_MODELS[DEFAULT_PROVIDER]
    )

    log_dir_str = os.getenv("REPOWIKI_LOG_DIR")

    return Config(
        active_provider=active_provider,
        active_model=active_model,
        openai_api_key=os.getenv("OPENAI_API_KEY"),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
        google_api_key=os.getenv("GOOGLE_API_KEY"),
        ollama_endpoint=os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434"),
        github_token=os.getenv("GITHUB_TOKEN"),
        log_dir=Path(log_dir_str) if log_dir_str else None,
        generation=base_config.generation,
        source=base_config.source,
        llm=base_config.llm,
        ask=base_config.ask,
    )


Settings = Config
