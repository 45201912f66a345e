#!/usr/bin/env python3

import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from equiplend.routes import api
from equiplend.configs import OPTIONS, CORS_ORIGINS
from equiplend.core.exceptions import (
    EquiplendAPIError,
    NotFoundError,
    ConflictError,
    BadRequestError,
    LockTimeoutError,
)
from equiplend import __version__ as VERSION

logger = logging.getLogger(__name__)

STATUS_CODES = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (BadRequestError, 400),
    (LockTimeoutError, 503),
)

app = FastAPI(
    title="Equiplend API",
    description="Equiplend: equipment loans, assignments and maintenance",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EquiplendAPIError)
async def equiplend_error(request: Request, exc: EquiplendAPIError):
    status_code = next((code for cls, code in STATUS_CODES if isinstance(exc, cls)), 500)
    if status_code == 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    reasons = [f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in exc.errors()]
    return JSONResponse(
        status_code=400,
        content={"error": "bad_request", "message": "; ".join(reasons)},
    )


app.include_router(api.router, prefix="/v1/api")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("equiplend.app:app", **OPTIONS)
