"""Exception handlers mapping delivery errors onto HTTP responses."""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from delivery.errors import DeliveryError

logger = structlog.get_logger(__name__)


def _validation_details(exc: RequestValidationError) -> list[dict]:
    # Drop "input" and "ctx": they can echo signatures or codes back
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


def register_delivery_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DeliveryError)
    async def delivery_error_handler(request: Request, exc: DeliveryError) -> JSONResponse:
        logger.info(
            "Request rejected",
            path=request.url.path,
            error=exc.code,
            status_code=exc.status_code,
            context={k: str(v) for k, v in exc.context.items()},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": "invalid_payload", "details": _validation_details(exc)},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", path=request.url.path, method=request.method)
        return JSONResponse(
            status_code=500,
            content={"error": "internal_error", "message": "An unexpected error occurred"},
        )
