"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routers import recipes, health
from .dependencies.state import app_state
from .middleware import OriginEchoCORSMiddleware, ErrorHandlerMiddleware
from nomie import __version__
from nomie.config import AppConfig, load_config
from nomie.models.manager import ModelManager
from nomie.models.prompts import PromptManager
from nomie.pipeline.recipes.image_negotiator import ImageSizeNegotiator
from nomie.pipeline.recipes.prompt_builder import PromptTemplateBuilder
from nomie.pipeline.recipes.recipes import RecipePipeline
from nomie.pipeline.recipes.sanitizer import ResponseSanitizer
from nomie.pipeline.recipes.types import ClientInputError, RecipePipelineError

logger = logging.getLogger(__name__)


def build_pipeline(config: AppConfig, model_manager: ModelManager) -> RecipePipeline:
    return RecipePipeline(
        model_manager,
        negotiator=ImageSizeNegotiator.from_config(config.image),
        builder=PromptTemplateBuilder(PromptManager(), version=config.pipeline.prompt_version),
        sanitizer=ResponseSanitizer(strip_compliance=config.pipeline.strip_compliance_line),
        task=config.pipeline.task,
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    The config is loaded here (not in the lifespan) because the CORS
    allow-list is needed before the app starts.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting Nomie API server...")
        model_manager = ModelManager(config)
        app_state["model_manager"] = model_manager
        app_state["recipe_pipeline"] = build_pipeline(config, model_manager)
        logger.info(f"Ready: task '{config.pipeline.task}' -> {config.tasks[config.pipeline.task]['model']}")

        yield  # Server runs here

        logger.info("Shutting down Nomie API server...")
        model_manager.cleanup()
        app_state.clear()

    app = FastAPI(
        title="Nomie API",
        description="Ingredient extraction and allergy-safe recipe suggestions from photos and text",
        version=__version__,
        lifespan=lifespan
    )

    # last added runs first: CORS wraps the error handler
    app.middleware("http")(ErrorHandlerMiddleware())
    app.middleware("http")(OriginEchoCORSMiddleware(config.server.cors_allow_origins, config.server.cors_max_age))

    @app.exception_handler(ClientInputError)
    async def client_input_error_handler(request: Request, exc: ClientInputError):
        return _error(400, str(exc))

    @app.exception_handler(RecipePipelineError)
    async def pipeline_error_handler(request: Request, exc: RecipePipelineError):
        logger.error(f"Recipe pipeline failed: {exc}")
        return _error(500, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors())
        return _error(400, f"Invalid request body: {details}")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 405:
            return _error(405, "Method not allowed")
        return _error(exc.status_code, str(exc.detail))

    app.include_router(recipes.router, prefix="/api", tags=["recipes"])
    app.include_router(health.router, prefix="/health", tags=["health"])

    return app


app = create_app()
