from perpology.services.chat_store import create_chat, generate_title, get_chat, list_chats
from perpology.services.metadata import ResponseMetadata, extract

__all__ = ["create_chat", "generate_title", "get_chat", "list_chats", "ResponseMetadata", "extract"]
