from fastapi import APIRouter, Depends, Request

from webhook_receiver.core.config.config import Settings, get_settings
from webhook_receiver.models import ErrorResponse, JsonBodyResponse, MultipartResponse
from webhook_receiver.services.receiver import WebhookReceiver
from webhook_receiver.utils.logging import get_logger

router = APIRouter()
logger = get_logger(__name__)


def get_receiver(settings: Settings = Depends(get_settings)) -> WebhookReceiver:
    return WebhookReceiver(settings)


@router.post(
    "/webhook",
    response_model=JsonBodyResponse | MultipartResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def receive_webhook(
    request: Request,
    receiver: WebhookReceiver = Depends(get_receiver),
) -> JsonBodyResponse | MultipartResponse:
    logger.info(
        "webhook_received",
        extra={"content_type": request.headers.get("content-type"), "client": getattr(request.client, "host", None)},
    )
    return await receiver.handle(request)
