"""
Chat models — transcript messages and dispatch modes.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class Sender(str, Enum):
    USER = "user"
    AGENT = "agent"


class ChatMode(str, Enum):
    STANDARD = "standard"   # /api/chat/message/
    EXTENDED = "extended"   # /api/customchatbot/message/, forwards saved settings


class Message(BaseModel):
    id: int
    text: str
    sender: Sender
    timestamp: datetime
    is_error: bool = False

    model_config = {"frozen": True}
