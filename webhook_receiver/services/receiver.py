import asyncio
import logging
from pathlib import Path
from typing import Any, Optional

from fastapi import Request
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from webhook_receiver.core.config.config import Settings
from webhook_receiver.core.errors import LimitExceededError, ValidationError
from webhook_receiver.models import JsonBodyResponse, MetadataFile, MultipartResponse, Summary, UploadedFile
from webhook_receiver.services.classification import group_files, is_json_file, media_type
from webhook_receiver.services.metadata import FieldValue, metadata_from_fields, metadata_from_files
from webhook_receiver.services.storage import UploadSession, dump_json, guess_mime_type, load_json, relative_to_cwd
from webhook_receiver.utils.logging import get_logger

logger = get_logger(__name__)

JSON_SAVED_MESSAGE = "JSON received and saved"
MULTIPART_SAVED_MESSAGE = "Files and data received successfully"
NOTHING_RECEIVED_MESSAGE = "At least one file or JSON data is required."
INVALID_JSON_MESSAGE = "Invalid JSON body."
BODY_TOO_LARGE_MESSAGE = "request entity too large"
FILE_TOO_LARGE_MESSAGE = "File too large"


class ParsedForm:
    """Non-file fields in arrival order plus the uploaded file parts."""

    def __init__(self, fields: dict[str, FieldValue], uploads: list[tuple[str, UploadFile]]) -> None:
        self.fields = fields
        self.uploads = uploads


def split_form(form: FormData) -> ParsedForm:
    fields: dict[str, FieldValue] = {}
    uploads: list[tuple[str, UploadFile]] = []
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            uploads.append((key, value))
            continue
        existing = fields.get(key)
        if existing is None:
            fields[key] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            fields[key] = [existing, value]
    return ParsedForm(fields, uploads)


class WebhookReceiver:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def new_session(self) -> UploadSession:
        return UploadSession(self.settings.uploads_root, unique=self.settings.unique_session_dirs)

    @staticmethod
    def is_json_request(request: Request) -> bool:
        return media_type(request.headers.get("content-type")) == "application/json"

    async def handle(self, request: Request) -> JsonBodyResponse | MultipartResponse:
        if self.is_json_request(request):
            return await self.receive_json(request)
        return await self.receive_multipart(request)

    async def read_json_body(self, request: Request) -> Any:
        limit = self.settings.max_json_body_bytes
        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise LimitExceededError(BODY_TOO_LARGE_MESSAGE)
        body = bytearray()
        async for chunk in request.stream():
            body.extend(chunk)
            if len(body) > limit:
                raise LimitExceededError(BODY_TOO_LARGE_MESSAGE)
        try:
            return load_json(bytes(body))
        except ValueError as exc:
            raise ValidationError(INVALID_JSON_MESSAGE) from exc

    async def receive_json(self, request: Request) -> JsonBodyResponse:
        payload = await self.read_json_body(request)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("json_body_received", extra={"body": dump_json(payload)})

        session = self.new_session()
        target = await asyncio.to_thread(session.write_json, payload, "data.json")
        logger.info("json_body_saved", extra={"stored_name": target.name, "upload_dir": str(session.directory)})
        return JsonBodyResponse(
            message=JSON_SAVED_MESSAGE,
            file=target.name,
            upload_dir=relative_to_cwd(session.directory),
            path=relative_to_cwd(target),
        )

    async def read_form(self, request: Request) -> FormData:
        try:
            return await request.form(
                max_files=self.settings.max_files,
                max_fields=self.settings.max_fields,
                max_part_size=self.settings.max_field_bytes,
            )
        except MultiPartException as exc:
            raise LimitExceededError(exc.message) from exc
        except StarletteHTTPException as exc:
            # Starlette wraps parser limit errors when running inside an app
            raise LimitExceededError(str(exc.detail)) from exc

    def check_file_sizes(self, uploads: list[tuple[str, UploadFile]]) -> None:
        for field_name, upload in uploads:
            if upload.size is not None and upload.size > self.settings.max_file_bytes:
                logger.warning(
                    "file_too_large",
                    extra={"field": field_name, "original_name": upload.filename, "size": upload.size},
                )
                raise LimitExceededError(FILE_TOO_LARGE_MESSAGE)

    async def store_uploads(
        self, session: UploadSession, uploads: list[tuple[str, UploadFile]]
    ) -> list[tuple[UploadedFile, Path]]:
        stored: list[tuple[UploadedFile, Path]] = []
        if not uploads:
            return stored
        await asyncio.to_thread(session.ensure)
        for field_name, upload in uploads:
            original_name = upload.filename or ""
            target = await asyncio.to_thread(session.store_stream, upload.file, original_name)
            record = UploadedFile(
                field_name=field_name,
                original_name=original_name,
                stored_name=target.name,
                mime_type=guess_mime_type(original_name, upload.content_type),
                size=target.stat().st_size,
                path=relative_to_cwd(target),
            )
            stored.append((record, target))
        logger.info("files_stored", extra={"count": len(stored), "upload_dir": str(session.directory)})
        return stored

    async def receive_multipart(self, request: Request) -> MultipartResponse:
        session = self.new_session()
        form = await self.read_form(request)
        try:
            parsed = split_form(form)
            self.check_file_sizes(parsed.uploads)

            json_data = metadata_from_fields(parsed.fields, self.settings.metadata_field_names)

            stored = await self.store_uploads(session, parsed.uploads)

            json_paths = [path for record, path in stored if is_json_file(record.original_name, record.mime_type)]
            json_data = await asyncio.to_thread(metadata_from_files, json_paths, json_data)

            if not stored and json_data is None:
                raise ValidationError(NOTHING_RECEIVED_MESSAGE)

            metadata_file = await self.persist_metadata(session, json_data)
        finally:
            await form.close()

        files = [record for record, _ in stored]
        groups = group_files(files)
        return MultipartResponse(
            message=MULTIPART_SAVED_MESSAGE,
            summary=Summary(
                total_files=len(files),
                obj_files=len(groups.obj),
                json_files=len(groups.json_),
                other_files=len(groups.other),
                has_json_metadata=json_data is not None,
            ),
            files=files,
            files_by_type=groups,
            form_fields=parsed.fields,
            json_data=json_data,
            metadata_file=metadata_file,
            upload_dir=session.relative_dir,
        )

    async def persist_metadata(self, session: UploadSession, json_data: Optional[Any]) -> Optional[MetadataFile]:
        if json_data is None:
            return None
        target = await asyncio.to_thread(session.write_json, json_data, "metadata.json")
        logger.info("metadata_saved", extra={"stored_name": target.name, "upload_dir": str(session.directory)})
        return MetadataFile(filename=target.name, path=relative_to_cwd(target))
