"""HTTP mapping for marketplace exceptions.

Registered next to Protean's ``register_exception_handlers``, which already
turns ``ValidationError`` into 400. Starlette resolves handlers along the
exception's MRO, so the more specific classes below win over it.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError

from marketplace.exceptions import (
    CheckoutRejected,
    ConflictError,
    GatewayError,
    IllegalTransition,
    InvalidSignature,
    PreconditionFailed,
)

logger = structlog.get_logger(__name__)


async def _checkout_rejected(request: Request, exc: CheckoutRejected) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "Cart validation failed",
            "violations": [v.to_dict() for v in exc.violations],
            "messages": exc.messages,
        },
    )


async def _illegal_transition(request: Request, exc: IllegalTransition) -> JSONResponse:
    return JSONResponse(
        status_code=409,
        content={
            "error": "illegal_transition",
            "message": f"Cannot transition from {exc.current} to {exc.target}",
            "current_status": exc.current,
        },
    )


async def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"error": exc.code, "message": exc.message})


async def _precondition_failed(request: Request, exc: PreconditionFailed) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "precondition_failed", "message": exc.message})


async def _gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.error("Gateway call failed", gateway=exc.gateway, message=exc.message, path=request.url.path)
    return JSONResponse(
        status_code=502,
        content={
            "error": "gateway_error",
            "gateway": exc.gateway,
            "message": exc.message,
            "retryable": exc.retryable,
        },
    )


async def _invalid_signature(request: Request, exc: InvalidSignature) -> JSONResponse:
    return JSONResponse(status_code=401, content={"error": "invalid_signature", "message": str(exc)})


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"error": "not_found", "message": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CheckoutRejected, _checkout_rejected)
    app.add_exception_handler(IllegalTransition, _illegal_transition)
    app.add_exception_handler(ConflictError, _conflict)
    app.add_exception_handler(PreconditionFailed, _precondition_failed)
    app.add_exception_handler(GatewayError, _gateway_error)
    app.add_exception_handler(InvalidSignature, _invalid_signature)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
