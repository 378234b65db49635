"""Custom exception handlers for FastAPI application.

Converts domain exceptions into HTTP responses so they don't leak as 500s.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from mediakeeper.domain.exceptions import (
    CollaboratorError,
    ConfigurationError,
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationError,
)

logger = logging.getLogger(__name__)


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers for domain exceptions.

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Domain validation errors → 422."""
        logger.warning(
            "Validation error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.message},
        )

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Unknown entity → 404."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message},
        )

    @app.exception_handler(DuplicateEntityException)
    async def duplicate_entity_handler(
        request: Request, exc: DuplicateEntityException
    ) -> JSONResponse:
        """Duplicate entity → 409."""
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": exc.message},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Invalid configuration → 400."""
        logger.warning("Configuration error at %s: %s", request.url.path, exc.message)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": exc.message},
        )

    @app.exception_handler(CollaboratorError)
    async def collaborator_error_handler(
        request: Request, exc: CollaboratorError
    ) -> JSONResponse:
        """External service failure → 502."""
        logger.error(
            "Collaborator %s failed at %s: %s",
            exc.collaborator,
            request.url.path,
            exc.message,
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.message, "collaborator": exc.collaborator},
        )
