"""JSON metadata discovery for multipart submissions.

Metadata can arrive as a form field (preferably one of the reserved names)
or as an uploaded ``.json`` file. Parse failures are never fatal: the value
is skipped and the search goes on.
"""

from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Sequence, Union

from webhook_receiver.services.storage import load_json
from webhook_receiver.utils.logging import get_logger

logger = get_logger(__name__)

FieldValue = Union[str, list[str]]


def parse_json(text: str, *, source: str) -> Optional[Any]:
    """Parse *text*, returning ``None`` when it is not JSON or is JSON ``null``."""
    try:
        return load_json(text)
    except ValueError as exc:
        logger.warning("metadata_parse_failed", extra={"source": source, "reason": str(exc)})
        return None


def _candidates(value: FieldValue) -> list[str]:
    return list(value) if isinstance(value, list) else [value]


def _looks_like_json(value: str) -> bool:
    return value.startswith("{") or value.startswith("[")


def metadata_from_fields(fields: Mapping[str, FieldValue], reserved_names: Sequence[str]) -> Optional[Any]:
    """Find JSON metadata among form fields.

    Reserved names are tried first, in field order; the first one that parses
    wins. Otherwise the first field of any name whose value starts with
    ``{`` or ``[`` and parses is used.
    """
    reserved = set(reserved_names)
    for key, value in fields.items():
        if key not in reserved:
            continue
        for text in _candidates(value):
            data = parse_json(text, source=f"field:{key}")
            if data is not None:
                logger.info("metadata_from_field", extra={"field": key})
                return data

    for key, value in fields.items():
        for text in _candidates(value):
            if not _looks_like_json(text):
                continue
            data = parse_json(text, source=f"field:{key}")
            if data is not None:
                logger.info("metadata_from_field", extra={"field": key, "auto_detected": True})
                return data
    return None


def read_json_file(path: Path) -> Optional[Any]:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("metadata_parse_failed", extra={"source": f"file:{path.name}", "reason": str(exc)})
        return None
    return parse_json(text, source=f"file:{path.name}")


def metadata_from_files(paths: Iterable[Path], current: Optional[Any] = None) -> Optional[Any]:
    """Return the content of the last JSON file that parses, else *current*.

    File content replaces field metadata outright; the two are never merged.
    """
    data = current
    for path in paths:
        parsed = read_json_file(path)
        if parsed is None:
            continue
        if data is not None:
            logger.info("metadata_overridden_by_file", extra={"source": f"file:{path.name}"})
        logger.info("metadata_from_file", extra={"source": f"file:{path.name}"})
        data = parsed
    return data
