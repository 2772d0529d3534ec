"""Error taxonomy for the webhook endpoint and the boundary that renders it.

Handlers raise :class:`ValidationError` or :class:`LimitExceededError`; both
carry their HTTP status. Everything else is an unexpected error and is
answered with a generic 500 so internal details never reach the caller.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from webhook_receiver.utils.logging import get_logger

logger = get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Unexpected server error."


class WebhookError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(WebhookError):
    """The client sent something the endpoint cannot accept."""


class LimitExceededError(WebhookError):
    """A file count, file size, field or body size ceiling was breached."""


async def webhook_error_handler(request: Request, exc: WebhookError) -> JSONResponse:
    event = "webhook_limit_exceeded" if isinstance(exc, LimitExceededError) else "webhook_rejected"
    logger.warning(event, extra={"path": request.url.path, "reason": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("webhook_unexpected_error", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": UNEXPECTED_ERROR_MESSAGE},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WebhookError, webhook_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unexpected_error_handler)
