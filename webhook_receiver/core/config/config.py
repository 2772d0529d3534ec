from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MB = 1024 * 1024


class Settings(BaseSettings):
    uploads_root: Path = Field(Path("uploads"), description="Directory holding one sub-directory per request")
    max_files: int = Field(50, ge=1, description="Upper bound for file parts in a multipart request")
    max_file_bytes: int = Field(20 * MB, ge=1, description="Upper bound for a single uploaded file")
    max_fields: int = Field(1000, ge=1, description="Upper bound for non-file form fields")
    max_field_bytes: int = Field(1 * MB, ge=1, description="Upper bound for a single non-file form field")
    max_json_body_bytes: int = Field(100 * MB, ge=1, description="Upper bound for an application/json body")
    metadata_field_names: list[str] = Field(
        default_factory=lambda: ["json", "data", "metadata", "result"],
        description="Form fields probed first for JSON metadata",
    )
    unique_session_dirs: bool = Field(
        False, description="Append a random suffix to per-request directory names"
    )
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    host: str = Field("0.0.0.0", description="Bind address for the development server")
    port: int = Field(3000, ge=1, le=65535)
    log_level: str = Field("INFO")

    model_config = SettingsConfigDict(
        env_prefix="WEBHOOK_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
