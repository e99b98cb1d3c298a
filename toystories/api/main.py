"""FastAPI application for Toys to Stories."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import CORS_ORIGINS, LOG_JSON, LOG_LEVEL
from .logging import configure_logging
from .routes import sign_image, stories, tts

logger = logging.getLogger(__name__)

# Error bodies for the collaborator endpoints, which answer in {error, ...} form
COLLABORATOR_ERRORS = {
    "/api/tts": {"error": "Failed to generate speech", "extra": {"fallback": True}},
    "/api/sign-image": {"error": "Failed to sign image with C2PA credentials"},
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    configure_logging(json_format=LOG_JSON, level=getattr(logging, LOG_LEVEL, logging.INFO))
    logger.info("Toys to Stories API started")

    yield


app = FastAPI(
    title="Toys to Stories API",
    description="""
Turn a photo of a child's toy into a short illustrated picture book in the language they are learning.

## Features
- **Toy Analysis**: A multimodal model describes the toy so it looks the same on every page
- **Story Composition**: 6 short pages and 4 vocabulary words, shaped by the toy's personality
- **Illustrations**: One image per page, with stock images for any page that fails
- **Provenance**: Optional C2PA signing of generated images
- **Speech**: Read-aloud audio for pages and vocabulary words

## Workflow
1. POST `/stories` with the toy photo and settings
2. Poll GET `/stories/{session_id}` until stage is `done`, `error` or `fallback`
3. On `error`, POST `/stories/{session_id}/retry` or `/stories/{session_id}/fallback`
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for web frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(stories.router, prefix="/stories", tags=["Stories"])
app.include_router(sign_image.router, prefix="/api", tags=["Provenance"])
app.include_router(tts.router, prefix="/api", tags=["Speech"])


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Unreadable collaborator request bodies are a 500 in {error, details} form."""
    body = COLLABORATOR_ERRORS.get(request.url.path)
    if body is None:
        return await request_validation_exception_handler(request, exc)

    details = "; ".join(str(error.get("msg", "invalid request")) for error in exc.errors())
    logger.warning(f"Invalid request body for {request.url.path}: {details}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": body["error"], "details": details, **body.get("extra", {})},
    )


@app.exception_handler(StarletteHTTPException)
async def collaborator_http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED and request.url.path in COLLABORATOR_ERRORS:
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": "Method not allowed"},
            headers=exc.headers,
        )
    return await http_exception_handler(request, exc)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
