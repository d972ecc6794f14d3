"""
ORM models. Importing this package registers every table on Base.metadata,
which Alembic and the test fixtures rely on.
"""

from qup.models.channel import Channel, ChannelMember
from qup.models.file import File
from qup.models.message import Message
from qup.models.notification import Notification
from qup.models.question import Question
from qup.models.user import User
from qup.models.vote import Vote

__all__ = [
    "Channel",
    "ChannelMember",
    "File",
    "Message",
    "Notification",
    "Question",
    "User",
    "Vote",
]
