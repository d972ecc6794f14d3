"""
Domain enumerations shared by the ORM models, Pydantic schemas and the GraphQL schema.

Values equal names so they serialize identically in REST payloads,
GraphQL enums and database columns.
"""

import enum


class UserRole(str, enum.Enum):
    NORMAL = "NORMAL"
    SPECIAL = "SPECIAL"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class UserStatus(str, enum.Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"
    AWAY = "AWAY"
    DO_NOT_DISTURB = "DO_NOT_DISTURB"


class ChannelType(str, enum.Enum):
    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    DIRECT = "DIRECT"


class MessageType(str, enum.Enum):
    TEXT = "TEXT"
    QUESTION = "QUESTION"
    ANSWER = "ANSWER"
    COMMENT = "COMMENT"
    SYSTEM = "SYSTEM"


class QuestionStatus(str, enum.Enum):
    OPEN = "OPEN"
    ANSWERED = "ANSWERED"
    CLOSED = "CLOSED"
    DUPLICATE = "DUPLICATE"


class VoteType(str, enum.Enum):
    UP = "UP"
    DOWN = "DOWN"


class VoteTarget(str, enum.Enum):
    MESSAGE = "MESSAGE"
    QUESTION = "QUESTION"
    ANSWER = "ANSWER"


class FileType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    DOCUMENT = "DOCUMENT"
    AUDIO = "AUDIO"


class NotificationType(str, enum.Enum):
    MESSAGE = "MESSAGE"
    MENTION = "MENTION"
    VOTE = "VOTE"
    ANSWER = "ANSWER"
    QUESTION_ANSWERED = "QUESTION_ANSWERED"
    SYSTEM = "SYSTEM"
