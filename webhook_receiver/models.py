from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UploadedFile(CamelModel):
    field_name: str
    original_name: str
    stored_name: str
    mime_type: str
    size: int
    path: str


class FilesByType(CamelModel):
    obj: list[UploadedFile] = Field(default_factory=list)
    json_: list[UploadedFile] = Field(default_factory=list, alias="json")
    other: list[UploadedFile] = Field(default_factory=list)


class MetadataFile(CamelModel):
    filename: str
    path: str


class Summary(CamelModel):
    total_files: int
    obj_files: int
    json_files: int
    other_files: int
    has_json_metadata: bool


class JsonBodyResponse(CamelModel):
    message: str
    file: str
    upload_dir: str
    path: str


class MultipartResponse(CamelModel):
    message: str
    summary: Summary
    files: list[UploadedFile]
    files_by_type: FilesByType
    form_fields: dict[str, Union[str, list[str]]]
    json_data: Any = None
    metadata_file: Optional[MetadataFile] = None
    upload_dir: Optional[str] = None


class ErrorResponse(BaseModel):
    error: str
