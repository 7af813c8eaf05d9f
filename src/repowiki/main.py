"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Logging constants defined here (not in constants/) because logging.basicConfig()
# must run before any module imports that might create loggers.
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    format=LOG_FORMAT,
    datefmt=DATE_FORMAT,
    level=logging.INFO,
)

# Unify uvicorn loggers with app format
for uvicorn_logger_name in ("uvicorn", "uvicorn.access", "uvicorn.error"):
    uvicorn_logger = logging.getLogger(uvicorn_logger_name)
    uvicorn_logger.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
    uvicorn_logger.addHandler(handler)

from repowiki import __version__  # noqa: E402
from repowiki.api.deps import close_http_client, get_settings  # noqa: E402
from repowiki.api.routers import wiki  # noqa: E402

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan handler for startup and shutdown events.

    On startup:
    - Logs the active LLM provider and model

    On shutdown:
    - Closes the shared HTTP client
    """
    settings = get_settings()
    logger.info(
        f"repowiki {__version__} started "
        f"(provider={settings.active_provider}, model={settings.active_model})"
    )

    yield

    await close_http_client()


app = FastAPI(
    title="repowiki",
    description="Streaming wiki generator and Q&A for GitHub repositories",
    version=__version__,
    lifespan=lifespan,
)

# CORS middleware for the Next.js frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


app.include_router(wiki.router)


def run() -> None:
    """Serve the app with uvicorn."""
    import uvicorn

    uvicorn.run("repowiki.main:app", host="127.0.0.1", port=8000, log_config=None)
