"""FastAPI application for the evaluation gateway."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.errors import ConfigError, InvalidEvaluationTypeError, TutorEvalError
from gateway.api import router as evaluations_router

logger = logging.getLogger(__name__)

app = FastAPI(title="Tutor Evaluation Gateway", version="0.1.0")

app.include_router(evaluations_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.exception_handler(InvalidEvaluationTypeError)
async def invalid_type_handler(request: Request, exc: InvalidEvaluationTypeError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid evaluation type", "validTypes": exc.valid_types},
    )


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError):
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(status_code=400, content={"error": "Configuration error", "details": str(exc)})


@app.exception_handler(TutorEvalError)
async def evaluation_error_handler(request: Request, exc: TutorEvalError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error", "details": str(exc)})


@app.get("/health")
async def health():
    return {"status": "ok"}
