"""
Chat: one identity-scoped conversation. Messages cascade on delete.
"""
from sqlalchemy import Column, DateTime, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from perpology.db.base import Base


class Chat(Base):
    __tablename__ = "chats"

    id = Column(String(32), primary_key=True)  # uuid4 hex
    owner_identity = Column(String(128), nullable=False, index=True)  # wallet address
    title = Column(String(200), nullable=False, default="New Chat")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    messages = relationship(
        "Message",
        back_populates="chat",
        passive_deletes=True,
    )
