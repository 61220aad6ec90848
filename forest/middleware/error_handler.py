import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from forest.exceptions import (
    ConfirmationFailure,
    GatewayError,
    InvalidTransition,
    SubmissionError,
    ValidationError,
)
from forest.services.error_translator import translate_error


def register_error_handlers(app: FastAPI):
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        sentry_sdk.capture_exception(exc)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error",
                "type": type(exc).__name__,
            },
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": exc.message, "field": exc.field},
        )

    @app.exception_handler(SubmissionError)
    @app.exception_handler(ConfirmationFailure)
    async def transaction_failure_handler(
        request: Request, exc: SubmissionError | ConfirmationFailure
    ):
        return JSONResponse(
            status_code=502,
            content={
                "detail": exc.reason.message,
                "reason": exc.reason.reason,
                "tx_hash": getattr(exc, "tx_hash", None),
            },
        )

    @app.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError):
        translated = translate_error(exc)
        return JSONResponse(
            status_code=502,
            content={"detail": translated.message, "reason": translated.reason},
        )

    @app.exception_handler(InvalidTransition)
    async def invalid_transition_handler(request: Request, exc: InvalidTransition):
        return JSONResponse(status_code=409, content={"detail": str(exc)})
