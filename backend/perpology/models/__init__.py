from perpology.models.chat import Chat
from perpology.models.message import Message

__all__ = [
    "Chat",
    "Message",
]
