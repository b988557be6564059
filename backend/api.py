"""FastAPI entrypoint for the transactions HTTP endpoints."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any
from uuid import UUID

from fastapi import Body, FastAPI, Header, HTTPException, Query
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.auth.supabase_auth import (
    UnauthorizedError,
    extract_bearer_token,
    get_user_from_bearer_token,
    principal_id_from_user,
)
from backend.factory import build_transaction_service
from backend.services.transaction_service import TransactionService
from shared import config as _config
from shared.models import ServiceError, ServiceErrorCode


logger = logging.getLogger(__name__)


_STATUS_BY_ERROR_CODE: dict[ServiceErrorCode, int] = {
    ServiceErrorCode.VALIDATION_ERROR: 400,
    ServiceErrorCode.UNAUTHORIZED: 401,
    ServiceErrorCode.NOT_FOUND: 404,
    ServiceErrorCode.BACKEND_ERROR: 500,
}


@lru_cache(maxsize=1)
def get_transaction_service() -> TransactionService:
    """Create and cache the transaction service once per process."""

    return build_transaction_service()


def _resolve_principal(authorization: str | None) -> UUID:
    """Reject the request unless it carries a valid bearer token."""

    try:
        token = extract_bearer_token(authorization)
        user_payload = get_user_from_bearer_token(token)
        return principal_id_from_user(user_payload)
    except UnauthorizedError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc


def _unwrap(result: Any) -> Any:
    if isinstance(result, ServiceError):
        raise HTTPException(status_code=_STATUS_BY_ERROR_CODE[result.code], detail=result.message)
    return jsonable_encoder(result)


app = FastAPI(title="Expense Ledger API")

ALLOW_ORIGINS = _config.cors_allow_origins()


@app.middleware("http")
async def log_http_requests(request: Request, call_next):
    """Log incoming requests, HTTP status codes and unexpected errors."""

    logger.info("http_request_received method=%s path=%s", request.method, request.url.path)
    try:
        response = await call_next(request)
    except Exception:
        logger.exception(
            "http_request_failed method=%s path=%s",
            request.method,
            request.url.path,
        )
        raise

    logger.info(
        "http_response_sent method=%s path=%s status_code=%s",
        request.method,
        request.url.path,
        response.status_code,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("cors_allow_origins=%s", ALLOW_ORIGINS)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as `{message}` bodies."""

    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 instead of FastAPI's default 422."""

    messages = [
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'Invalid value')}"
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "; ".join(messages) or "Invalid request"})


@app.exception_handler(Exception)
async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
    """Return a JSON 500 response for unhandled exceptions."""

    logger.exception(
        "unhandled_exception method=%s path=%s exception_type=%s message=%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal Server Error"})


@app.get("/")
def root() -> dict[str, str]:
    return {"message": "API is running..."}


@app.get("/health")
def health() -> dict[str, str]:
    """Healthcheck endpoint."""

    return {"status": "ok"}


@app.get("/transactions")
def list_transactions(
    authorization: str | None = Header(default=None),
    page: str | None = None,
    limit: str | None = None,
    search: str | None = None,
    category: str | None = None,
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> Any:
    """Return one page of the authenticated user's transactions, newest first."""

    principal_id = _resolve_principal(authorization)
    raw_params = {
        "page": page,
        "limit": limit,
        "search": search,
        "category": category,
        "startDate": start_date,
        "endDate": end_date,
    }
    params = {name: value for name, value in raw_params.items() if value is not None}
    return _unwrap(get_transaction_service().list_transactions(principal_id, params))


@app.post("/transactions", status_code=201)
def add_transaction(
    payload: Any = Body(default=None),
    authorization: str | None = Header(default=None),
) -> Any:
    """Create a transaction owned by the authenticated user."""

    principal_id = _resolve_principal(authorization)
    return _unwrap(get_transaction_service().add_transaction(principal_id, payload))


@app.get("/transactions/summary")
def get_transactions_summary(authorization: str | None = Header(default=None)) -> Any:
    """Return income/expense totals and the per-category breakdown."""

    principal_id = _resolve_principal(authorization)
    return _unwrap(get_transaction_service().get_summary(principal_id))


@app.put("/transactions/{transaction_id}")
def update_transaction(
    transaction_id: str,
    payload: Any = Body(default=None),
    authorization: str | None = Header(default=None),
) -> Any:
    principal_id = _resolve_principal(authorization)
    return _unwrap(get_transaction_service().update_transaction(principal_id, transaction_id, payload))


@app.delete("/transactions/{transaction_id}")
def delete_transaction(
    transaction_id: str,
    authorization: str | None = Header(default=None),
) -> Any:
    principal_id = _resolve_principal(authorization)
    return _unwrap(get_transaction_service().delete_transaction(principal_id, transaction_id))
