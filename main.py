"""
FastAPI application entry point for S3 Content Search.
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config import settings

# Configure logging
structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.make_filtering_bound_logger(
        logging.getLevelName(settings.LOG_LEVEL.upper())
    )
)

logger = structlog.get_logger()

from api.routes import router
from api.schemas import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info("Starting S3 Content Search", version=settings.APP_VERSION, env=settings.APP_ENV)

    # Validate configuration
    issues = settings.validate()
    if issues:
        for issue in issues:
            logger.warning(f"Configuration issue: {issue}")

    yield

    # Shutdown
    logger.info("Shutting down S3 Content Search")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Substring search across S3 object contents",
    lifespan=lifespan
)


# Malformed query parameters use the same 400 shape as ValidationError
@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        name = (error.get("loc") or ("",))[-1]
        problems.append(f"'{name}': {error.get('msg', 'invalid value')}")

    message = f"Invalid parameters: {'; '.join(problems)}"
    logger.info("Rejected malformed request", path=request.url.path, problems=problems)
    body = ErrorResponse(status=400, result=message)
    return JSONResponse(status_code=400, content=body.model_dump())


# Include routes
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.APP_ENV == "dev",
        log_level="info"
    )
