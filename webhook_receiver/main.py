from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webhook_receiver.api.routes import webhook
from webhook_receiver.core.config.config import get_settings
from webhook_receiver.core.errors import register_error_handlers
from webhook_receiver.utils.logging import configure_logging, get_logger

settings = get_settings()
configure_logging(settings.log_level)
logger = get_logger(__name__)

app = FastAPI(title="Webhook Receiver", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(webhook.router)


@app.on_event("startup")
async def startup_event() -> None:
    current = get_settings()
    current.uploads_root.mkdir(parents=True, exist_ok=True)
    logger.info(
        "app_startup",
        extra={
            "uploads_root": str(current.uploads_root),
            "max_files": current.max_files,
            "max_file_bytes": current.max_file_bytes,
        },
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "webhook_receiver.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
