#!/usr/bin/env python3

"""
Main application entry point for the community events calendar service.

Architecture: FastAPI application serving the merged calendar snapshot, live
per-source feeds and the submission moderation workflow.
Key Features: Lifecycle management of shared clients, error handling, CORS configuration.
"""

import asyncio
import sys

# Add this block to switch asyncio event loop policy on Windows
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from community_calendar.api.admin import router as admin_router
from community_calendar.api.http import router as http_router
from community_calendar.config import settings
from community_calendar.exceptions import (
    ConfigurationError,
    DocumentConflictError,
    DocumentStoreError,
)
from community_calendar.services.document_store import GitHubDocumentStore
from community_calendar.services.event_extractor import LLMEventExtractor
from community_calendar.services.llm_service import (
    close_all_llm_clients,
    get_llm_client,
    initialize_all_llm_clients,
)
from community_calendar.services.ocr_service import create_ocr_service
from community_calendar.services.snapshot_store import SnapshotStore
from community_calendar.services.source_cache import SourceCache
from community_calendar.utils.http_client import create_http_client
from community_calendar.utils.logger import setup_logger

logger = setup_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create the process-wide clients and caches, and close them on shutdown.
    """
    logger.info("Application startup...")
    initialize_all_llm_clients()
    llm_client = get_llm_client()

    http_client = create_http_client()
    app.state.http_client = http_client
    app.state.source_cache = SourceCache(ttl_seconds=settings.source_cache_ttl_seconds)
    app.state.snapshot_store = SnapshotStore(settings.snapshot_file)
    app.state.ocr_service = create_ocr_service(settings.enable_ocr)
    app.state.event_extractor = LLMEventExtractor(llm_client) if llm_client else None
    app.state.document_store = (
        GitHubDocumentStore(
            http_client,
            token=settings.github_token,
            owner=settings.github_owner,
            repo=settings.github_repo,
            api_url=settings.github_api_url,
            user_agent=settings.http_user_agent,
        )
        if settings.github_token
        else None
    )
    logger.info("Community Calendar API startup successful.")

    yield

    logger.info("Community Calendar API shutdown...")
    await app.state.ocr_service.close()
    await http_client.aclose()
    await close_all_llm_clients()
    logger.info("Shutdown complete.")


def create_app():
    app = FastAPI(title="Community Calendar API", lifespan=lifespan)

    @app.exception_handler(DocumentConflictError)
    async def document_conflict_handler(request: Request, exc: DocumentConflictError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"success": False, "detail": str(exc)},
        )

    @app.exception_handler(DocumentStoreError)
    async def document_store_handler(request: Request, exc: DocumentStoreError):
        logger.error(f"Document store failure on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"success": False, "detail": str(exc)},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.critical(f"Configuration error on {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "detail": str(exc)},
        )

    app.include_router(http_router)
    app.include_router(admin_router)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    return app


app = create_app()


def main():
    port = int(settings.server_port)
    host = settings.server_host

    logger.info(f"Starting Community Calendar API server on {host}:{port}")

    try:
        uvicorn.run(app, host=host, port=port, workers=settings.server_workers)
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
