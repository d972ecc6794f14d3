"""
File metadata rules: size limits, MIME allow-lists, classification and naming.

These functions are pure; the disk side of uploads lives in
qup.services.file_service.
"""

import re
import time
from typing import Any

from qup.constants import (
    ALLOWED_DOCUMENT_TYPES,
    ALLOWED_IMAGE_TYPES,
    ALLOWED_VIDEO_TYPES,
    FILE_MAX_SIZE,
)
from qup.exceptions import ValidationError
from qup.enums import FileType

_EXTENSION_PATTERN = re.compile(r"^[A-Za-z0-9]{1,16}$")


def validate_file_size(size: int) -> None:
    if size <= 0:
        raise ValidationError("File is empty", field="file", context={"size": size})
    if size > FILE_MAX_SIZE:
        raise ValidationError(
            f"File size cannot exceed {FILE_MAX_SIZE // (1024 * 1024)}MB",
            field="file",
            context={"size": size, "max_size": FILE_MAX_SIZE},
        )


def _validate_type(mime_type: str, allowed: tuple, label: str) -> None:
    if mime_type not in allowed:
        raise ValidationError(
            f"{label} type not allowed. Allowed types: {', '.join(allowed)}",
            field="mimeType",
            context={"mime_type": mime_type},
        )


def validate_image_type(mime_type: str) -> None:
    _validate_type(mime_type, ALLOWED_IMAGE_TYPES, "Image")


def validate_video_type(mime_type: str) -> None:
    _validate_type(mime_type, ALLOWED_VIDEO_TYPES, "Video")


def validate_document_type(mime_type: str) -> None:
    _validate_type(mime_type, ALLOWED_DOCUMENT_TYPES, "Document")


def file_type_from_mime(mime_type: str) -> FileType:
    """Classifies by allow-list; anything unlisted is treated as AUDIO."""
    if mime_type in ALLOWED_IMAGE_TYPES:
        return FileType.IMAGE
    if mime_type in ALLOWED_VIDEO_TYPES:
        return FileType.VIDEO
    if mime_type in ALLOWED_DOCUMENT_TYPES:
        return FileType.DOCUMENT
    return FileType.AUDIO


def is_accepted_mime(mime_type: str) -> bool:
    """Upload gate: the three allow-lists plus any audio/* type."""
    return (
        mime_type in ALLOWED_IMAGE_TYPES
        or mime_type in ALLOWED_VIDEO_TYPES
        or mime_type in ALLOWED_DOCUMENT_TYPES
        or mime_type.startswith("audio/")
    )


def validate_upload_type(mime_type: str) -> FileType:
    if not is_accepted_mime(mime_type):
        raise ValidationError(
            f"File type '{mime_type}' is not supported",
            field="file",
            context={"mime_type": mime_type},
        )
    return file_type_from_mime(mime_type)


def generate_file_name(original_name: str, user_id: Any) -> str:
    """
    Builds `{user_id}_{epoch_ms}.{ext}`.

    The extension is the text after the last dot of `original_name`; names
    without a usable extension get `bin`. No other part of the client's
    filename reaches the disk.
    """
    extension = original_name.rsplit(".", 1)[-1] if "." in original_name else ""
    if not _EXTENSION_PATTERN.match(extension):
        extension = "bin"
    return f"{user_id}_{int(time.time() * 1000)}.{extension.lower()}"
