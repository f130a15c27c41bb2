# api/chats.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from api.deps import get_generation, get_store
from api.errors import error_response
from config import settings as cfg
from gateways.generation import GenerationGateway
from gateways.persistence import PersistenceGateway
from gateways.prompts import CONTENT_SYSTEM_PROMPT, CREATE_POST_TOOL
from gateways.schemas import ChatCompletion
from utils.exceptions import StoryForgeError, ValidationError
from utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["chats"])


# --- Schemas
class ChatIn(BaseModel):
    message: Optional[str] = None
    response: Optional[str] = None
    source: Optional[str] = None
    conversation_id: Optional[str] = None


def save_tool_posts(
    store: PersistenceGateway,
    completion: ChatCompletion,
    source: str,
    user_prompt: Optional[str] = None,
) -> List[dict]:
    """Store every create_post tool call; a failing call is logged and skipped."""
    saved = []
    for call in completion.tool_calls:
        if call.name != "create_post":
            log.warning("ignoring unknown tool call %s", call.name)
            continue
        try:
            draft = call.post_draft()
            post = store.create_post({
                **draft.model_dump(mode="json"),
                "source": source,
                "status": "idea",
                "user_prompt": user_prompt,
            })
            saved.append(post.to_dict())
        except StoryForgeError as e:
            log.error("create_post tool call %s failed: %s", call.id, e.message)
    return saved


@router.post("/chat")
def chat(
    body: ChatIn,
    store: PersistenceGateway = Depends(get_store),
    generation: GenerationGateway = Depends(get_generation),
):
    message = (body.message or "").strip()
    if not message:
        raise ValidationError("Message is required")

    # exchange already completed elsewhere (voice conversation UI): just record it
    if body.response is not None:
        chat_id = store.create_chat_turn(
            message, body.response,
            source=body.source or "voice_conversation",
            conversation_id=body.conversation_id,
        )
        return {"success": True, "id": chat_id}

    completion = generation.generate_chat_completion(
        CONTENT_SYSTEM_PROMPT, message, tools=[CREATE_POST_TOOL], temperature=0.7, max_tokens=500,
    )
    posts = save_tool_posts(store, completion, source="chat", user_prompt=message)
    text = completion.text
    if not text and posts:
        text = "\n\n".join(f"{p['title']}\n{p['content']}" for p in posts)

    try:
        store.create_chat_turn(message, text, source=body.source or "text_chat", conversation_id=body.conversation_id)
    except StoryForgeError as e:
        log.error("Failed to save chat history: %s", e.message)

    return {"message": text, "posts": posts}


@router.get("/chat-history")
def chat_history(
    limit: int = Query(cfg.CHAT_HISTORY_LIMIT, ge=1, le=cfg.CHAT_HISTORY_MAX_LIMIT),
    store: PersistenceGateway = Depends(get_store),
):
    try:
        chats = [c.to_dict() for c in store.list_chat_turns(limit)]
    except StoryForgeError as e:
        return error_response(e, chats=[])
    log.info("Successfully fetched %d chat messages", len(chats))
    return {"chats": chats, "success": True, "count": len(chats)}


@router.delete("/chat-history")
def delete_chat(
    id: int = Query(..., description="Chat turn id"),
    store: PersistenceGateway = Depends(get_store),
):
    store.delete_chat_turn(id)
    return {"success": True, "id": id}
