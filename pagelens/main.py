"""
PageLens FastAPI Application — Thin host around the page audit core.

  POST /scan   → fetch, rule checks, chunking, optional model enrichment, scoring
  GET  /health → {"status": "ok", ...}
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from pagelens.api.routes.health import router as health_router
from pagelens.api.routes.scan import router as scan_router
from pagelens.config import get_settings
from pagelens.llm.errors import ConfigurationError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("pagelens")

app = FastAPI(
    title="PageLens",
    description="AI readability audit for web pages",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(scan_router)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    logger.warning(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(ValidationError)
async def options_validation_handler(request: Request, exc: ValidationError):
    logger.warning(f"Invalid scan options: {exc.error_count()} error(s)")
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.warning(f"Configuration error: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Scan request failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal error while scanning"})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("pagelens.main:app", host=settings.host, port=settings.port)
