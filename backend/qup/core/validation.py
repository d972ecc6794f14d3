"""
Qup Backend - Content Validation Rules
========================================

What:  Business-rule validation for user-supplied text.
How:   Each validator raises ValidationError (→ 400 / BAD_USER_INPUT) with a
       message that is shown verbatim in the admin client, and returns the
       normalized value where normalization applies.
Who:   Called by the auth, user, channel, message and question services.
"""

import re
from typing import Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email as _check_email

from qup import constants
from qup.exceptions import ValidationError

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")


def _is_blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def validate_message_content(content: str) -> str:
    if _is_blank(content):
        raise ValidationError("Message content cannot be empty", field="content")
    if len(content) > constants.MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Message content cannot exceed {constants.MESSAGE_MAX_LENGTH} characters",
            field="content",
        )
    return content


def validate_question_title(title: str) -> str:
    if _is_blank(title):
        raise ValidationError("Question title cannot be empty", field="title")
    if len(title) < constants.QUESTION_MIN_TITLE_LENGTH:
        raise ValidationError(
            f"Question title must be at least {constants.QUESTION_MIN_TITLE_LENGTH} characters",
            field="title",
        )
    if len(title) > constants.QUESTION_MAX_TITLE_LENGTH:
        raise ValidationError(
            f"Question title cannot exceed {constants.QUESTION_MAX_TITLE_LENGTH} characters",
            field="title",
        )
    return title


def validate_question_content(content: str) -> str:
    if _is_blank(content):
        raise ValidationError("Question content cannot be empty", field="content")
    if len(content) < constants.QUESTION_MIN_CONTENT_LENGTH:
        raise ValidationError(
            f"Question content must be at least {constants.QUESTION_MIN_CONTENT_LENGTH} characters",
            field="content",
        )
    if len(content) > constants.QUESTION_MAX_CONTENT_LENGTH:
        raise ValidationError(
            f"Question content cannot exceed {constants.QUESTION_MAX_CONTENT_LENGTH} characters",
            field="content",
        )
    return content


def validate_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """
    Normalize a tag list: strip, lower-case, drop empties, de-duplicate in order.

    The tag limit applies after normalization, so ["Py", "py"] counts once.
    """
    normalized: List[str] = []
    for tag in tags or []:
        cleaned = tag.strip().lower()
        if cleaned and cleaned not in normalized:
            normalized.append(cleaned)
    if len(normalized) > constants.QUESTION_MAX_TAGS:
        raise ValidationError(
            f"A question cannot have more than {constants.QUESTION_MAX_TAGS} tags",
            field="tags",
        )
    return normalized


def validate_username(username: str) -> str:
    if _is_blank(username):
        raise ValidationError("Username cannot be empty", field="username")
    if len(username) < constants.USERNAME_MIN_LENGTH:
        raise ValidationError(
            f"Username must be at least {constants.USERNAME_MIN_LENGTH} characters",
            field="username",
        )
    if len(username) > constants.USERNAME_MAX_LENGTH:
        raise ValidationError(
            f"Username cannot exceed {constants.USERNAME_MAX_LENGTH} characters",
            field="username",
        )
    if not USERNAME_PATTERN.match(username):
        raise ValidationError(
            "Username can only contain letters, numbers, underscores, and hyphens",
            field="username",
        )
    return username


def validate_display_name(display_name: str) -> str:
    if _is_blank(display_name):
        raise ValidationError("Display name cannot be empty", field="displayName")
    if len(display_name) > constants.DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Display name cannot exceed {constants.DISPLAY_NAME_MAX_LENGTH} characters",
            field="displayName",
        )
    return display_name.strip()


def validate_email(email: str) -> str:
    """Syntax-only check (no DNS lookup); returns the normalized, lower-cased address."""
    try:
        result = _check_email((email or "").strip(), check_deliverability=False)
    except EmailNotValidError:
        raise ValidationError("Invalid email format", field="email")
    return result.normalized.lower()


def validate_password(password: str) -> str:
    if not password or len(password) < constants.PASSWORD_MIN_LENGTH:
        raise ValidationError(
            f"Password must be at least {constants.PASSWORD_MIN_LENGTH} characters",
            field="password",
        )
    return password


def validate_channel_name(name: str) -> str:
    if _is_blank(name):
        raise ValidationError("Channel name cannot be empty", field="name")
    if len(name) > constants.CHANNEL_MAX_NAME_LENGTH:
        raise ValidationError(
            f"Channel name cannot exceed {constants.CHANNEL_MAX_NAME_LENGTH} characters",
            field="name",
        )
    return name.strip()


def validate_channel_description(description: Optional[str]) -> Optional[str]:
    if description is not None and len(description) > constants.CHANNEL_MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            f"Channel description cannot exceed {constants.CHANNEL_MAX_DESCRIPTION_LENGTH} characters",
            field="description",
        )
    return description
