"""FastAPI application entry point."""

from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prompt_library.api.router import api_router
from prompt_library.config import get_settings
from prompt_library.core.optimizer import PromptOptimizer, get_optimizer
from prompt_library.core.project_store import get_project_store
from prompt_library.core.prompt_store import get_prompt_store
from prompt_library.utils.logging import setup_logging

logger = structlog.get_logger()

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — load both stores before serving."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger.info("library.starting", port=settings.port, data_dir=str(settings.data_path))

    prompts = get_prompt_store()
    projects = get_project_store()
    logger.info(
        "library.ready",
        prompts=len(prompts.list_prompts()),
        projects=len(projects.list_projects()),
    )

    yield

    logger.info("library.shutdown")


app = FastAPI(
    title="Prompt Library",
    description="Personal library for storing, organizing and consolidating AI prompts",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Service info endpoint."""
    return {"service": "prompt-library", "version": VERSION}


@app.get("/health")
async def health(optimizer: PromptOptimizer = Depends(get_optimizer)):
    """Health check endpoint. Reports whether prompt optimization has an API key."""
    return {
        "status": "healthy",
        "service": "prompt-library",
        "version": VERSION,
        "optimizer": optimizer.configured,
    }
