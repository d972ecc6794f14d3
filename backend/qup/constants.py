"""
Qup Backend - Domain Limits and Role Tables
=============================================

What:  Size limits for user content and the role → weight / permission tables.
Who:   core.validation, core.files, core.voting and core.permissions.

Role permissions are cumulative: each role holds everything the role below it
holds, plus its own additions.
"""

from typing import Dict, FrozenSet

from qup.enums import UserRole

# ── Content Limits ────────────────────────────────────────────────────────
MESSAGE_MAX_LENGTH = 10_000
MESSAGE_MAX_ATTACHMENTS = 10
MESSAGE_MAX_MENTIONS = 50

QUESTION_MIN_TITLE_LENGTH = 10
QUESTION_MAX_TITLE_LENGTH = 300
QUESTION_MIN_CONTENT_LENGTH = 20
QUESTION_MAX_CONTENT_LENGTH = 10_000
QUESTION_MAX_TAGS = 10

FILE_MAX_SIZE = 100 * 1024 * 1024  # 100MB
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
ALLOWED_VIDEO_TYPES = ("video/mp4", "video/webm", "video/ogg")
ALLOWED_DOCUMENT_TYPES = ("application/pdf", "text/plain", "application/msword")

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
DISPLAY_NAME_MAX_LENGTH = 100
PASSWORD_MIN_LENGTH = 8

CHANNEL_MAX_NAME_LENGTH = 100
CHANNEL_MAX_DESCRIPTION_LENGTH = 500

DEFAULT_WORKSPACE_ID = "default"

# ── Vote Weights ──────────────────────────────────────────────────────────
ROLE_WEIGHTS: Dict[UserRole, int] = {
    UserRole.NORMAL: 1,
    UserRole.SPECIAL: 5,
    UserRole.MODERATOR: 10,
    UserRole.ADMIN: 20,
}

# ── Permissions ───────────────────────────────────────────────────────────
_NORMAL = frozenset({
    "send_messages",
    "vote",
    "ask_questions",
    "answer_questions",
    "edit_own_messages",
    "delete_own_messages",
})
_SPECIAL = _NORMAL | {"pin_messages", "moderate_own_channel"}
_MODERATOR = _SPECIAL | {
    "delete_any_message",
    "ban_users",
    "close_questions",
    "mark_best_answer",
}
_ADMIN = _MODERATOR | {
    "manage_users",
    "manage_channels",
    "manage_roles",
    "system_settings",
}

ROLE_PERMISSIONS: Dict[UserRole, FrozenSet[str]] = {
    UserRole.NORMAL: _NORMAL,
    UserRole.SPECIAL: _SPECIAL,
    UserRole.MODERATOR: _MODERATOR,
    UserRole.ADMIN: _ADMIN,
}
