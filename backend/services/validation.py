"""Pure request validation, independent from any store adapter."""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from shared.models import (
    ServiceError,
    ServiceErrorCode,
    TransactionCreateRequest,
    TransactionListQuery,
    TransactionUpdateRequest,
)


_ModelT = TypeVar("_ModelT", bound=BaseModel)


def format_validation_message(exc: ValidationError) -> str:
    """Flatten pydantic errors into `field: message` pairs."""

    parts: list[str] = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(part) for part in error.get("loc", ()))
        message = str(error.get("msg", "Invalid value"))
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid payload"


def _validate(model: type[_ModelT], payload: object) -> _ModelT | ServiceError:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        return ServiceError(
            code=ServiceErrorCode.VALIDATION_ERROR,
            message=format_validation_message(exc),
            details={"validation_errors": exc.errors(include_url=False, include_context=False)},
        )


def validate_transaction_create(payload: object) -> TransactionCreateRequest | ServiceError:
    return _validate(TransactionCreateRequest, payload)


def validate_transaction_update(payload: object) -> TransactionUpdateRequest | ServiceError:
    return _validate(TransactionUpdateRequest, payload)


def validate_list_query(params: object) -> TransactionListQuery | ServiceError:
    return _validate(TransactionListQuery, params)
