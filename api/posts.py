# api/posts.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from api.deps import get_store
from api.errors import error_response
from gateways.persistence import PersistenceGateway
from utils.exceptions import StoryForgeError
from utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(prefix="/posts-history", tags=["posts"])


# --- Schemas
class PostCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    platform: str = "general"
    post_type: str = "idea"
    tags: List[str] = []
    source: str = "chat"
    status: str = "draft"
    scheduled_date: Optional[datetime] = None
    user_prompt: Optional[str] = None
    metadata: Dict[str, Any] = {}


class PostUpdate(BaseModel):
    """Every field optional; only keys present in the JSON body are applied."""
    model_config = ConfigDict(extra="forbid")

    id: int
    title: Optional[str] = None
    content: Optional[str] = None
    platform: Optional[str] = None
    post_type: Optional[str] = None
    tags: Optional[List[str]] = None
    source: Optional[str] = None
    status: Optional[str] = None
    scheduled_date: Optional[datetime] = None
    user_prompt: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


@router.get("")
def list_posts(store: PersistenceGateway = Depends(get_store)):
    try:
        posts = [p.to_dict() for p in store.list_posts()]
    except StoryForgeError as e:
        return error_response(e, posts=[])
    log.info("Successfully fetched %d posts", len(posts))
    return {"success": True, "posts": posts, "count": len(posts)}


@router.post("")
def create_post(body: PostCreate, store: PersistenceGateway = Depends(get_store)):
    post = store.create_post(body.model_dump())
    return {"success": True, "id": post.id, "post": post.to_dict(), "message": "Post stored successfully"}


@router.put("")
def update_post(body: PostUpdate, store: PersistenceGateway = Depends(get_store)):
    changes = body.model_dump(exclude_unset=True)
    post_id = changes.pop("id")
    post = store.update_post(post_id, changes)
    return {"success": True, "post": post.to_dict(), "message": "Post updated successfully"}
