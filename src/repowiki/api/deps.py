"""FastAPI dependency injection functions."""

from functools import lru_cache
from typing import Optional

import httpx
from fastapi import Depends

from repowiki.config import Settings, load_settings
from repowiki.generation.analyzer import RepoAnalyzer
from repowiki.generation.orchestrator import GenerationOrchestrator
from repowiki.generation.page_builder import PageBuilder
from repowiki.llm.client import LLMClient
from repowiki.qa.service import QAService
from repowiki.source.github import GitHubGateway


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return load_settings()


def get_llm(settings: Settings = Depends(get_settings)) -> LLMClient:
    """Get LLM client for the configured provider."""
    return LLMClient(
        provider=settings.active_provider,
        model=settings.active_model,
        api_key=settings.llm_api_key,
        endpoint=settings.llm_endpoint,
        log_path=settings.llm_log_path,
        temperature=settings.llm.default_temperature,
        json_temperature=settings.llm.json_temperature,
        max_tokens=settings.llm.max_tokens,
    )


_http_client: Optional[httpx.AsyncClient] = None


def get_http_client(settings: Settings = Depends(get_settings)) -> httpx.AsyncClient:
    """Get the shared HTTP client, creating it on first use."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=settings.source.timeout_seconds, follow_redirects=True
        )
    return _http_client


async def close_http_client() -> None:
    """Close the shared HTTP client (called on shutdown)."""
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_gateway(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> GitHubGateway:
    """Get GitHub gateway configured from settings."""
    return GitHubGateway(
        client=client,
        api_base=settings.source.api_base,
        raw_base=settings.source.raw_base,
        token=settings.github_token,
        max_file_chars=settings.source.max_file_chars,
        timeout=settings.source.timeout_seconds,
    )


def get_orchestrator(
    settings: Settings = Depends(get_settings),
    gateway: GitHubGateway = Depends(get_gateway),
    llm: LLMClient = Depends(get_llm),
) -> GenerationOrchestrator:
    """Get a generation orchestrator wired to the gateway and LLM client."""
    generation = settings.generation
    return GenerationOrchestrator(
        analyzer=RepoAnalyzer(
            gateway,
            llm,
            max_key_files=settings.source.max_key_files,
            max_tree_paths=settings.source.max_tree_paths,
            max_output_tokens=generation.max_output_tokens,
        ),
        page_builder=PageBuilder(gateway, llm, max_output_tokens=generation.max_output_tokens),
        parallel_limit=generation.parallel_limit,
        partial_results=generation.partial_results,
    )


def get_qa_service(
    settings: Settings = Depends(get_settings),
    llm: LLMClient = Depends(get_llm),
) -> QAService:
    """Get Q&A service instance."""
    return QAService(llm, temperature=settings.ask.temperature)
