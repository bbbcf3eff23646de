"""Database model type definitions."""

from src.models.chat import ChatMessageRow, ChatRow
from src.models.connection import ConnectionRow, ConnectionStatus
from src.models.profile import (
    Gender,
    InterestRow,
    LearnSkillRow,
    TaughtSkillRow,
    UserProfileRow,
)

__all__ = [
    "ChatMessageRow",
    "ChatRow",
    "ConnectionRow",
    "ConnectionStatus",
    "Gender",
    "InterestRow",
    "LearnSkillRow",
    "TaughtSkillRow",
    "UserProfileRow",
]
