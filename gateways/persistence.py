# gateways/persistence.py
"""
Persistence Gateway.

CRUD over the chats, voice and posts tables (SQLAlchemy) and the images bucket
(ObjectStorage). Rows are insert-only apart from post updates and chat
deletion. Any failure of the store surfaces as StoreError with the store's own
message; absent credentials surface as ConfigError.
"""
import re
import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from config import settings as cfg
from db.init_db import init_db
from db.models import ChatTurn, Post, VoiceInteraction
from gateways.schemas import Platform, PostStatus, PostType
from gateways.storage import ObjectStorage
from utils.exceptions import ConfigError, NotFoundError, StoreError, ValidationError
from utils.logger import get_logger

log = get_logger(__name__)

STORE_MISSING = "Supabase configuration missing"

REQUIRED_POST_FIELDS = ("title", "content", "platform", "post_type", "tags", "source", "status")

_UNSAFE_NAME_RE = re.compile(r"[^a-zA-Z0-9.-]")


def sanitize_filename(name: str) -> str:
    return _UNSAFE_NAME_RE.sub("_", name or "upload")


def image_path(folder: str, filename: str, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{folder}/{stamp}_{sanitize_filename(filename)}"


def validate_image(content_type: Optional[str], size: int) -> None:
    if content_type not in cfg.ALLOWED_IMAGE_TYPES:
        raise ValidationError("Invalid file type. Only JPEG, PNG, GIF, and WebP images are allowed.")
    if size > cfg.MAX_IMAGE_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB.")


def merge_metadata(current: Optional[Dict[str, Any]], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Shallow merge; a key patched to None is removed."""
    merged = dict(current or {})
    for key, value in patch.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = value
    return merged


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"Invalid scheduled_date: {value}") from e


def _check_enum(field: str, value: Any, enum_cls) -> str:
    value = getattr(value, "value", value)
    allowed = [m.value for m in enum_cls]
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value!r}", details=f"Allowed: {', '.join(allowed)}")
    return value


def _check_tags(tags: Any) -> List[str]:
    if not isinstance(tags, (list, tuple)) or not all(isinstance(t, str) for t in tags):
        raise ValidationError("tags must be a list of strings")
    seen, out = set(), []
    for t in tags:
        if t not in seen:
            seen.add(t)
            out.append(t)
    return out


class PersistenceGateway:
    def __init__(self, session_factory: Optional[sessionmaker], storage: Optional[ObjectStorage] = None):
        self._session_factory = session_factory
        self.storage = storage

    # -------- plumbing --------
    @contextmanager
    def _session(self) -> Iterator[Session]:
        if self._session_factory is None:
            raise ConfigError(STORE_MISSING)
        db = self._session_factory()
        try:
            yield db
        except SQLAlchemyError as e:
            db.rollback()
            log.error("store error: %s", e)
            raise StoreError(f"Database error: {e.__class__.__name__}", details=str(getattr(e, "orig", None) or e)) from e
        finally:
            db.close()

    def init_schema(self) -> None:
        """Create missing tables; a no-op when no database is configured."""
        if self._session_factory is None:
            return
        with self._session() as db:
            init_db(db.get_bind())

    def _storage(self) -> ObjectStorage:
        if self.storage is None:
            raise ConfigError(STORE_MISSING)
        return self.storage

    # -------- chats --------
    def create_chat_turn(self, request: str, response: str, source: str = "text_chat", conversation_id: Optional[str] = None) -> int:
        with self._session() as db:
            turn = ChatTurn(request=request, response=response, source=source or "text_chat", conversation_id=conversation_id)
            db.add(turn)
            db.commit()
            log.info("chat turn %s saved (%s)", turn.id, turn.source)
            return turn.id

    def list_chat_turns(self, limit: int = cfg.CHAT_HISTORY_LIMIT) -> List[ChatTurn]:
        with self._session() as db:
            stmt = select(ChatTurn).order_by(ChatTurn.created_at.desc(), ChatTurn.id.desc()).limit(limit)
            return list(db.scalars(stmt))

    def delete_chat_turn(self, chat_id: int) -> bool:
        with self._session() as db:
            turn = db.get(ChatTurn, chat_id)
            if turn is None:
                log.info("chat turn %s already absent", chat_id)
                return True
            db.delete(turn)
            db.commit()
            return True

    def count_chat_turns(self) -> int:
        with self._session() as db:
            return db.scalar(select(func.count()).select_from(ChatTurn)) or 0

    # -------- voice --------
    def create_voice_interaction(
        self,
        user_audio_transcript: str,
        ai_response: str,
        interaction_type: str = "multi-step",
        duration_ms: Optional[int] = None,
        audio_url: Optional[str] = None,
    ) -> int:
        with self._session() as db:
            row = VoiceInteraction(
                user_audio_transcript=user_audio_transcript,
                ai_response=ai_response,
                interaction_type=interaction_type or "multi-step",
                duration_ms=duration_ms,
                audio_url=audio_url,
            )
            db.add(row)
            db.commit()
            log.info("voice interaction %s saved", row.id)
            return row.id

    def list_voice_interactions(self, limit: int = cfg.VOICE_HISTORY_LIMIT) -> List[VoiceInteraction]:
        with self._session() as db:
            stmt = select(VoiceInteraction).order_by(VoiceInteraction.created_at.desc(), VoiceInteraction.id.desc()).limit(limit)
            return list(db.scalars(stmt))

    def recent_context(self, limit: int = cfg.VOICE_CONTEXT_TURNS) -> List[Dict[str, Any]]:
        """Latest turns across chats and voice, newest first, ties by id then table."""
        chats = [(0, c.to_dict()) for c in self.list_chat_turns(limit)]
        voice = [(1, v.to_dict()) for v in self.list_voice_interactions(limit)]
        merged = chats + voice
        # stable sorts, least significant key first
        merged.sort(key=lambda item: item[0])
        merged.sort(key=lambda item: item[1]["id"])
        merged.sort(key=lambda item: item[1]["created_at"] or "", reverse=True)
        return [row for _, row in merged[:limit]]

    # -------- posts --------
    def create_post(self, fields: Dict[str, Any]) -> Post:
        title, content = fields.get("title"), fields.get("content")
        if not title or not content:
            raise ValidationError("Missing required fields: title and content")
        post = Post(
            title=title,
            content=content,
            platform=_check_enum("platform", fields.get("platform") or "general", Platform),
            post_type=_check_enum("post_type", fields.get("post_type") or "idea", PostType),
            tags=_check_tags(fields.get("tags") or []),
            source=fields.get("source") or "chat",
            status=_check_enum("status", fields.get("status") or "draft", PostStatus),
            scheduled_date=_parse_datetime(fields.get("scheduled_date")),
            user_prompt=fields.get("user_prompt"),
            meta=merge_metadata({}, fields.get("metadata") or {}),
        )
        with self._session() as db:
            db.add(post)
            db.commit()
            log.info("post %s saved (%s/%s)", post.id, post.platform, post.post_type)
            return post

    def update_post(self, post_id: int, changes: Dict[str, Any]) -> Post:
        """Apply only the keys present in ``changes``."""
        for key in REQUIRED_POST_FIELDS:
            if key in changes and changes[key] is None:
                raise ValidationError(f"{key} cannot be null")
        with self._session() as db:
            post = db.get(Post, post_id)
            if post is None:
                raise NotFoundError(f"Post {post_id} not found")
            for key, value in changes.items():
                if key == "platform":
                    post.platform = _check_enum(key, value, Platform)
                elif key == "post_type":
                    post.post_type = _check_enum(key, value, PostType)
                elif key == "status":
                    post.status = _check_enum(key, value, PostStatus)
                elif key == "tags":
                    post.tags = _check_tags(value)
                elif key == "scheduled_date":
                    post.scheduled_date = _parse_datetime(value)
                elif key == "metadata":
                    if value is None:
                        post.meta = {}
                    elif not isinstance(value, dict):
                        raise ValidationError("metadata must be an object")
                    else:
                        post.meta = merge_metadata(post.meta, value)
                elif key in ("title", "content", "source", "user_prompt"):
                    setattr(post, key, value)
                else:
                    raise ValidationError(f"Unknown post field: {key}")
            db.commit()
            log.info("post %s updated (%s)", post_id, ", ".join(sorted(changes)) or "no fields")
            return post

    def list_posts(self, limit: int = cfg.POSTS_HISTORY_LIMIT) -> List[Post]:
        with self._session() as db:
            stmt = select(Post).order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
            return list(db.scalars(stmt))

    # -------- images --------
    def upload_image(self, data: bytes, content_type: str, path: str) -> str:
        validate_image(content_type, len(data))
        return self._storage().upload(path, data, content_type)

    def list_images(self, folder: str = cfg.DEFAULT_IMAGE_FOLDER, limit: int = cfg.IMAGE_LIST_LIMIT) -> List[Dict[str, Any]]:
        storage = self._storage()
        files = []
        for f in storage.list(folder, limit=limit):
            path = f"{folder}/{f.get('name')}"
            files.append({
                "name": f.get("name"),
                "size": (f.get("metadata") or {}).get("size", 0),
                "created_at": f.get("created_at"),
                "updated_at": f.get("updated_at"),
                "url": storage.public_url(path),
                "path": path,
            })
        return files

    def delete_image(self, path: str) -> bool:
        if not path:
            raise ValidationError("File path is required")
        self._storage().remove([path])
        return True
