# db/models.py
from datetime import datetime
from sqlalchemy import (
    Column, Integer, String, DateTime, JSON, Text, Index
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def _iso(dt):
    return dt.isoformat() if dt else None


class ChatTurn(Base):
    __tablename__ = "chats"
    id = Column(Integer, primary_key=True, autoincrement=True)
    request = Column(Text, nullable=False)             # what the user asked
    response = Column(Text, nullable=False)            # what the model answered
    source = Column(String(32), nullable=False, default="text_chat")  # "text_chat" | "voice" | "voice_conversation"
    conversation_id = Column(String(128))
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_chats_created_at", "created_at"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "request": self.request,
            "message": self.request,
            "response": self.response,
            "source": self.source,
            "conversation_id": self.conversation_id,
            "created_at": _iso(self.created_at),
        }


class VoiceInteraction(Base):
    __tablename__ = "voice"
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_audio_transcript = Column(Text, nullable=False)
    ai_response = Column(Text, nullable=False)
    interaction_type = Column(String(32), nullable=False, default="multi-step")
    duration_ms = Column(Integer)
    audio_url = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_voice_created_at", "created_at"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_audio_transcript": self.user_audio_transcript,
            "ai_response": self.ai_response,
            "interaction_type": self.interaction_type,
            "duration_ms": self.duration_ms,
            "audio_url": self.audio_url,
            "created_at": _iso(self.created_at),
        }


class Post(Base):
    __tablename__ = "posts"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    platform = Column(String(16), nullable=False, default="general")
    post_type = Column(String(16), nullable=False, default="idea")
    tags = Column(JSON, nullable=False, default=list)  # list[str], insertion order kept
    source = Column(String(32), nullable=False, default="chat")
    status = Column(String(16), nullable=False, default="draft")
    scheduled_date = Column(DateTime)
    user_prompt = Column(Text)
    # "metadata" is reserved on declarative classes
    meta = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_posts_created_at", "created_at"),)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "platform": self.platform,
            "post_type": self.post_type,
            "tags": list(self.tags or []),
            "source": self.source,
            "status": self.status,
            "scheduled_date": _iso(self.scheduled_date),
            "user_prompt": self.user_prompt,
            "metadata": dict(self.meta or {}),
            "created_at": _iso(self.created_at),
        }
