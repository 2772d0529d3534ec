from typing import Iterable

from webhook_receiver.models import FilesByType, UploadedFile

OBJ_MIME_TYPE = "application/octet-stream"
JSON_MIME_TYPE = "application/json"


def media_type(content_type: str | None) -> str:
    """Lower-cased media type with any parameters dropped."""
    return (content_type or "").split(";", 1)[0].strip().lower()


def is_json_file(original_name: str, mime_type: str | None) -> bool:
    return media_type(mime_type) == JSON_MIME_TYPE or original_name.lower().endswith(".json")


def is_obj_file(original_name: str, mime_type: str | None) -> bool:
    return media_type(mime_type) == OBJ_MIME_TYPE or original_name.lower().endswith(".obj")


def classify(original_name: str, mime_type: str | None) -> str:
    # .obj wins over .json so every file lands in exactly one group
    if is_obj_file(original_name, mime_type):
        return "obj"
    if is_json_file(original_name, mime_type):
        return "json"
    return "other"


def group_files(files: Iterable[UploadedFile]) -> FilesByType:
    groups: dict[str, list[UploadedFile]] = {"obj": [], "json": [], "other": []}
    for item in files:
        groups[classify(item.original_name, item.mime_type)].append(item)
    return FilesByType(obj=groups["obj"], json_=groups["json"], other=groups["other"])
