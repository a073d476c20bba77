"""
Hub Context - FastAPI Backend
Main application entry point
"""

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from hubcontext.api.routes import context, embedding, health, metrics
from hubcontext.core.config import settings
from hubcontext.core.exceptions import ContextServiceError

# Configure logging
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)


async def context_service_error_handler(request: Request, exc: ContextServiceError):
    """Answer with ``{error}`` and the status carried by the error."""
    logger.warning(f"{request.method} {request.url.path} failed with {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception):
    """Any other failure is a 500 in the same ``{error}`` shape."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Report malformed bodies as client errors in the same ``{error}`` shape."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return JSONResponse(status_code=400, content={"error": "; ".join(messages) or "Invalid request"})


def create_app() -> FastAPI:
    app = FastAPI(
        title="Hub Context API",
        description="Document context retrieval for hub prompt generation",
        version="1.0.0",
    )

    logger.info(f"Setting up CORS with origins: {settings.cors_origins}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ContextServiceError, context_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(health.router, prefix="/api", tags=["health"])
    app.include_router(context.router, prefix="/api/context", tags=["context"])
    app.include_router(embedding.router, prefix="/api", tags=["embedding"])
    app.include_router(metrics.router, prefix="/api/metrics", tags=["metrics"])

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Hub Context API",
            "version": "1.0.0",
            "docs": "/docs"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
