# api/main.py
from typing import Optional

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.chats import router as chats_router
from api.diagnostics import router as diagnostics_router
from api.errors import install_error_handlers
from api.images import router as images_router
from api.posts import router as posts_router
from api.security import check_key
from api.voice import router as voice_router
from config.settings import Settings
from db.session import make_engine, make_session_factory
from gateways.generation import GenerationGateway, LLMClient, VoiceClient
from gateways.http import RequestPolicy
from gateways.persistence import PersistenceGateway
from gateways.storage import ObjectStorage
from utils.exceptions import StoryForgeError
from utils.logger import get_logger, setup_logging

log = get_logger(__name__)


def build_store(settings: Settings, policy: RequestPolicy) -> PersistenceGateway:
    session_factory = None
    if settings.has_database:
        session_factory = make_session_factory(make_engine(settings.database_url))
    else:
        log.warning("DATABASE_URL not set; chat, voice and post routes will answer 500")

    storage = None
    if settings.has_storage:
        storage = ObjectStorage(
            settings.supabase_url, settings.supabase_service_role_key,
            bucket=settings.storage_bucket, policy=policy,
        )
    else:
        log.warning("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not set; image routes will answer 500")
    return PersistenceGateway(session_factory, storage)


def build_generation(settings: Settings, policy: RequestPolicy) -> GenerationGateway:
    llm = LLMClient(
        settings.openai_api_key, base_url=settings.openai_base_url,
        chat_model=settings.chat_model, tools_model=settings.tools_model, policy=policy,
    )
    voice = VoiceClient(
        settings.elevenlabs_api_key, base_url=settings.elevenlabs_base_url,
        voice_id=settings.voice_id, policy=policy,
    )
    return GenerationGateway(llm, voice)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[PersistenceGateway] = None,
    generation: Optional[GenerationGateway] = None,
) -> FastAPI:
    """Build the app; gateways are made from ``settings`` unless injected."""
    settings = settings or Settings.from_env()
    setup_logging(settings.log_level)
    policy = RequestPolicy(max_attempts=settings.http_max_attempts, timeout=settings.http_timeout)

    app = FastAPI(title="Story Forge API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.store = store or build_store(settings, policy)
    app.state.generation = generation or build_generation(settings, policy)

    @app.on_event("startup")
    def _startup():
        try:
            app.state.store.init_schema()
        except StoryForgeError as e:
            log.error("schema setup failed, store routes will answer 500: %s", e.details or e.message)

    install_error_handlers(app)

    guarded = [Depends(check_key)]
    for router in (chats_router, posts_router, voice_router, images_router, diagnostics_router):
        app.include_router(router, dependencies=guarded)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")), log_level="info")
