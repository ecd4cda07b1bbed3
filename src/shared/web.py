"""FastAPI integration — maps domain and commerce errors to HTTP responses.

Protean's own exceptions (``ValidationError`` → 400, ``ObjectNotFoundError``
→ 404, ...) are handled by ``protean.integrations.fastapi``. Commerce errors
answer with ``{"error": <exception class name>, "messages": {...}}``;
insufficient stock responses also list every offending line under
``issues``, and a partial failure carries the order that was persisted.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from protean.integrations.fastapi import register_exception_handlers as register_domain_exception_handlers

from shared.errors import (
    CommerceError,
    Conflict,
    EmptyCart,
    Forbidden,
    InsufficientStock,
    PartialFailure,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS_CODES: dict[type, int] = {
    EmptyCart: 400,
    Forbidden: 403,
    InsufficientStock: 409,
    Conflict: 409,
    PartialFailure: 500,
}


def status_code_for(exc: CommerceError) -> int:
    for cls in type(exc).__mro__:
        if cls in ERROR_STATUS_CODES:
            return ERROR_STATUS_CODES[cls]
    return 500


async def commerce_error_handler(request: Request, exc: CommerceError) -> JSONResponse:
    status_code = status_code_for(exc)
    content = {"error": type(exc).__name__, "messages": exc.messages}

    if isinstance(exc, InsufficientStock):
        content["issues"] = [issue.model_dump() for issue in exc.issues]
    if isinstance(exc, PartialFailure) and exc.order is not None:
        content["order"] = jsonable_encoder(exc.order.to_dict())

    if status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=type(exc).__name__, messages=exc.messages)
    else:
        logger.info("Request rejected", path=request.url.path, error=type(exc).__name__, status_code=status_code)

    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    register_domain_exception_handlers(app)
    app.add_exception_handler(CommerceError, commerce_error_handler)
