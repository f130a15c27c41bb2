"""
Configuration settings for the Story Forge API.

All values come from environment variables. They are read once into a frozen
Settings object which the app factory hands to every gateway it builds.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

# CORS origins (dev Next/Vite front-ends)
DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

OPENAI_BASE_URL = "https://api.openai.com/v1"
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"

# Rachel voice, good for conversational content
DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"
DEFAULT_AGENT_ID = "agent_1101k161d5y2fp1ssvejv791505r"

# =============================================================================
# Storage
# =============================================================================

STORAGE_BUCKET = "images"
DEFAULT_IMAGE_FOLDER = "post-images"
MAX_IMAGE_BYTES = 5 * 1024 * 1024
ALLOWED_IMAGE_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp")

# =============================================================================
# History limits
# =============================================================================

CHAT_HISTORY_LIMIT = 50
CHAT_HISTORY_MAX_LIMIT = 100
POSTS_HISTORY_LIMIT = 100
VOICE_HISTORY_LIMIT = 50
IMAGE_LIST_LIMIT = 100
VOICE_CONTEXT_TURNS = 3


def _csv(value: Optional[str]) -> List[str]:
    return [o.strip() for o in (value or "").split(",") if o.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: Optional[str] = None
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    elevenlabs_api_key: Optional[str] = None
    openai_base_url: str = OPENAI_BASE_URL
    elevenlabs_base_url: str = ELEVENLABS_BASE_URL
    chat_model: str = "gpt-3.5-turbo"
    tools_model: str = "gpt-4-turbo-preview"
    voice_id: str = DEFAULT_VOICE_ID
    agent_id: str = DEFAULT_AGENT_ID
    storage_bucket: str = STORAGE_BUCKET
    api_key: str = ""
    allowed_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    http_timeout: float = 60.0
    http_max_attempts: int = 1
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL") or None,
            supabase_url=(os.getenv("SUPABASE_URL") or "").rstrip("/") or None,
            supabase_service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY") or None,
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL", OPENAI_BASE_URL).rstrip("/"),
            elevenlabs_base_url=os.getenv("ELEVENLABS_BASE_URL", ELEVENLABS_BASE_URL).rstrip("/"),
            chat_model=os.getenv("OPENAI_CHAT_MODEL", "gpt-3.5-turbo"),
            tools_model=os.getenv("OPENAI_TOOLS_MODEL", "gpt-4-turbo-preview"),
            voice_id=os.getenv("ELEVENLABS_VOICE_ID", DEFAULT_VOICE_ID),
            agent_id=os.getenv("ELEVENLABS_AGENT_ID", DEFAULT_AGENT_ID),
            storage_bucket=os.getenv("STORAGE_BUCKET", STORAGE_BUCKET),
            api_key=os.getenv("STORY_FORGE_API_KEY", ""),
            allowed_origins=DEFAULT_ORIGINS + _csv(os.getenv("FRONTEND_ORIGINS")),
            http_timeout=float(os.getenv("HTTP_TIMEOUT", "60")),
            http_max_attempts=int(os.getenv("HTTP_MAX_ATTEMPTS", "1")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    @property
    def has_database(self) -> bool:
        return bool(self.database_url)

    @property
    def has_storage(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)
