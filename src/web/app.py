"""
FastAPI application for the ThreadCraft order workflow.

Routes:
- GET  /health                  : liveness check
- GET  /ws/connections          : live connection statistics
- WS   /ws                      : real-time delivery socket
- POST /api/...                 : workflow and messaging API (see web.workflow_api)
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from middleware.correlation import CorrelationIdMiddleware, get_correlation_id
from realtime.websocket_routes import websocket_router
from services.container import ServiceContainer, build_services
from workflow.exceptions import EntityNotFound, InvalidTransition, WorkflowError

from .workflow_api import router as workflow_router

logger = logging.getLogger(__name__)


def create_error_response(
    status_code: int,
    error: str,
    error_code: str,
    **details,
) -> JSONResponse:
    """Create a standardized error response."""
    content = {
        "success": False,
        "error": error,
        "error_code": error_code,
        "correlation_id": get_correlation_id(),
    }
    content.update(details)
    return JSONResponse(status_code=status_code, content=content)


def _register_exception_handlers(app: FastAPI):

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        logger.info(f"InvalidTransition on {request.url.path}: {exc}")
        return create_error_response(
            409,
            str(exc),
            exc.error_code,
            current_status=exc.current_status,
            target_status=exc.target_status,
        )

    @app.exception_handler(EntityNotFound)
    async def not_found_handler(request: Request, exc: EntityNotFound):
        return create_error_response(404, str(exc), exc.error_code)

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(request: Request, exc: WorkflowError):
        return create_error_response(400, str(exc), exc.error_code)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return create_error_response(400, str(exc), "VALIDATION_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Handle Pydantic validation errors with user-friendly messages."""
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append(f"{field}: {error['msg']}")
        return create_error_response(
            422, "Invalid request data", "VALIDATION_ERROR", details=errors,
        )


def create_app(
    settings: Optional[Settings] = None,
    services: Optional[ServiceContainer] = None,
) -> FastAPI:
    """
    Build the application.

    Tests pass their own ServiceContainer to seed repositories and swap the
    email provider.
    """
    settings = settings or get_settings()
    services = services or build_services(settings)

    app = FastAPI(
        title=settings.name,
        version=settings.version,
        debug=settings.debug,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    # Added last so it runs first and every log line carries the id
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(websocket_router)
    app.include_router(workflow_router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "service": settings.name,
            "version": settings.version,
            "environment": settings.environment,
            "connections": services.connections.get_stats()["total_connections"],
        }

    logger.info(f"{settings.name} v{settings.version} app created ({settings.environment})")
    return app
