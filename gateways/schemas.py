# gateways/schemas.py
import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from utils.exceptions import UpstreamError, ValidationError


class Platform(str, Enum):
    instagram = "instagram"
    twitter = "twitter"
    linkedin = "linkedin"
    tiktok = "tiktok"
    facebook = "facebook"
    youtube = "youtube"
    general = "general"


class PostType(str, Enum):
    idea = "idea"
    caption = "caption"
    story = "story"
    reel = "reel"
    post = "post"
    thread = "thread"
    video = "video"


class PostStatus(str, Enum):
    draft = "draft"
    idea = "idea"
    published = "published"


class PostDraft(BaseModel):
    """Arguments of a create_post tool call."""
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    platform: Platform = Platform.general
    post_type: PostType = PostType.idea
    tags: List[str] = Field(default_factory=list)


class ToolCall(BaseModel):
    id: Optional[str] = None
    name: str
    raw_arguments: str = ""

    def arguments(self) -> Dict[str, Any]:
        try:
            data = json.loads(self.raw_arguments or "{}")
        except ValueError as e:
            raise ValidationError(f"Tool call '{self.name}' arguments are not valid JSON", details=str(e)) from e
        if not isinstance(data, dict):
            raise ValidationError(f"Tool call '{self.name}' arguments must be an object")
        return data

    def post_draft(self) -> PostDraft:
        try:
            return PostDraft.model_validate(self.arguments())
        except PydanticValidationError as e:
            raise ValidationError(f"Tool call '{self.name}' arguments do not describe a post", details=str(e)) from e


class ChatCompletion(BaseModel):
    text: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)

    @classmethod
    def from_vendor(cls, data: Any) -> "ChatCompletion":
        """Parse a chat-completions body; raise UpstreamError on an unexpected shape."""
        try:
            message = data["choices"][0]["message"]
        except (KeyError, IndexError, TypeError) as e:
            raise UpstreamError("Unexpected completion response shape", status=0, body=data) from e
        calls = []
        for tc in message.get("tool_calls") or []:
            fn = tc.get("function") or {}
            if not fn.get("name"):
                continue
            calls.append(ToolCall(id=tc.get("id"), name=fn["name"], raw_arguments=fn.get("arguments") or ""))
        return cls(text=(message.get("content") or "").strip(), tool_calls=calls)


class VoiceSettings(BaseModel):
    stability: float = 0.5
    similarity_boost: float = 0.8
    style: float = 0.0
    use_speaker_boost: bool = True


class AgentInfo(BaseModel):
    id: Optional[str] = None
    name: str = "Unnamed Agent"
    description: str = "No description"
    voice_id: Optional[str] = None
    created_at: Any = None
    updated_at: Any = None

    @classmethod
    def from_vendor(cls, data: Dict[str, Any]) -> "AgentInfo":
        return cls(
            id=data.get("agent_id") or data.get("id"),
            name=data.get("name") or "Unnamed Agent",
            description=data.get("description") or "No description",
            voice_id=data.get("voice_id"),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )
