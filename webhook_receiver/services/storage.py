import json
import mimetypes
import os
import random
import re
import secrets
import shutil
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, BinaryIO, Optional

from webhook_receiver.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def sanitize_filename(name: Optional[str]) -> str:
    """Replace every character outside ``[a-zA-Z0-9._-]`` with ``_``."""
    sanitized = _UNSAFE_CHARS.sub("_", name or "")
    return sanitized or "upload"


def unique_name(suffix: str) -> str:
    """``<epoch-ms>-<random-int>-<suffix>``, unique enough for concurrent writers."""
    return f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}-{suffix}"


def session_stamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with ``:`` and ``.`` turned into ``-``.

    ``2026-10-18T09:15:02.123Z`` becomes ``2026-10-18T09-15-02-123Z``.
    """
    moment = moment.astimezone(timezone.utc)
    return f"{moment:%Y-%m-%dT%H-%M-%S}-{moment.microsecond // 1000:03d}Z"


def guess_mime_type(filename: str, declared: Optional[str]) -> str:
    if declared:
        return declared
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or DEFAULT_MIME_TYPE


def relative_to_cwd(path: Path) -> str:
    return os.path.relpath(path, Path.cwd())


# Deeper documents cannot be echoed back or re-encoded reliably
MAX_JSON_DEPTH = 128


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def _nesting_depth(value: Any) -> int:
    deepest = 0
    pending = [(value, 1)]
    while pending:
        item, depth = pending.pop()
        if isinstance(item, dict):
            children = item.values()
        elif isinstance(item, list):
            children = item
        else:
            continue
        deepest = max(deepest, depth)
        pending.extend((child, depth + 1) for child in children)
    return deepest


def load_json(text: str | bytes) -> Any:
    """Strict ``json.loads``: no ``NaN``/``Infinity`` and bounded nesting.

    Every failure surfaces as :class:`ValueError`.
    """
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except RecursionError as exc:
        raise ValueError("JSON nesting too deep") from exc
    if _nesting_depth(value) > MAX_JSON_DEPTH:
        raise ValueError("JSON nesting too deep")
    return value


def dump_json(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)


class UploadSession:
    """Per-request upload directory, created on first use and at most once."""

    def __init__(self, root: Path, *, unique: bool = False, moment: Optional[datetime] = None) -> None:
        self.root = Path(root)
        self.timestamp = moment or datetime.now(timezone.utc)
        name = session_stamp(self.timestamp)
        if unique:
            name = f"{name}-{secrets.token_hex(4)}"
        self.directory = self.root / name
        self.created = False

    def ensure(self) -> Path:
        if not self.created:
            self.directory.mkdir(parents=True, exist_ok=True)
            self.created = True
            logger.debug("session_created", extra={"upload_dir": str(self.directory)})
        return self.directory

    @property
    def relative_dir(self) -> Optional[str]:
        return relative_to_cwd(self.directory) if self.created else None

    def write_json(self, value: Any, suffix: str) -> Path:
        target = self.ensure() / unique_name(suffix)
        target.write_text(dump_json(value), encoding="utf-8")
        return target

    def store_stream(self, source: BinaryIO, original_name: Optional[str]) -> Path:
        target = self.ensure() / unique_name(sanitize_filename(original_name))
        source.seek(0)
        with target.open("wb") as fh:
            shutil.copyfileobj(source, fh)
        return target
