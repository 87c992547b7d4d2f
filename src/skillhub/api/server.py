"""
FastAPI HTTP API server for SkillHub.

集成在 `skillhub serve` 中，提供：
- Health check
- Skills listing / view / refresh

默认端口：18910
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..skills import (
    InvalidSkillPath,
    SkillCatalog,
    SkillError,
    SkillNotFound,
    SourceFetchFailed,
    SourceNotFound,
    UnsupportedContentKind,
)
from .routes import health, skills

logger = logging.getLogger(__name__)

API_HOST = "127.0.0.1"
API_PORT = 18910


def _status_for(error: SkillError) -> int:
    if isinstance(error, (SkillNotFound, SourceNotFound)):
        return 404
    if isinstance(error, InvalidSkillPath):
        return 400
    if isinstance(error, UnsupportedContentKind):
        return 422
    if isinstance(error, SourceFetchFailed):
        return 502
    return 500


def create_app(catalog: SkillCatalog) -> FastAPI:
    """Create the FastAPI application with all routes mounted."""
    from skillhub import __version__

    app = FastAPI(
        title="SkillHub API",
        description="SkillHub HTTP API for skill listing and viewing",
        version=__version__,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.catalog = catalog

    app.include_router(health.router)
    app.include_router(skills.router)

    @app.exception_handler(SkillError)
    async def skill_error_handler(request: Request, exc: SkillError):
        status = _status_for(exc)
        if status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.get("/")
    async def root():
        return {
            "service": "skillhub",
            "api_version": "1.0.0",
            "status": "running",
        }

    return app


async def start_api_server(
    catalog: SkillCatalog,
    host: str = API_HOST,
    port: int = API_PORT,
) -> None:
    """在当前事件循环中运行 HTTP API，直到服务退出"""
    import uvicorn

    config = uvicorn.Config(
        app=create_app(catalog),
        host=host,
        port=port,
        log_level="warning",
        access_log=False,
        log_config=None,  # 禁止 uvicorn 调用 dictConfig 覆盖根日志器
    )
    server = uvicorn.Server(config)

    from skillhub import __version__

    logger.info(f"HTTP API server starting on http://{host}:{port} (version: {__version__})")
    try:
        await server.serve()
    finally:
        await catalog.resolver.github_source.client.aclose()
        logger.info("API server stopped")
