"""LLM client configuration.

Default parameters for LLM API calls. These can be overridden per-call
but provide sensible defaults for most use cases.
"""

# =============================================================================
# Generation Defaults
# =============================================================================
# MAX_TOKENS caps response length to control costs and ensure responses complete.
# JSON_TEMPERATURE is lower for structured output where consistency matters more.

MAX_TOKENS = 8192
DEFAULT_TEMPERATURE = 0.7
JSON_TEMPERATURE = 0.3

# =============================================================================
# Provider Defaults
# =============================================================================

DEFAULT_PROVIDER = "openai"
PROVIDER_DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-sonnet-20241022",
    "google": "gemini-1.5-pro",
    "ollama": "llama3",
}
