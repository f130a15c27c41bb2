"""
Shared test fixtures for the Story Forge API.

Fixtures include an in-memory SQLite store, mocked vendor clients, a FastAPI
TestClient wired to both, and a factory for fake ``requests`` responses.
"""
import json
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from config.settings import Settings
from db.init_db import init_db
from db.session import make_engine, make_session_factory
from gateways.generation import GenerationGateway, LLMClient, VoiceClient
from gateways.persistence import PersistenceGateway
from gateways.schemas import ChatCompletion, ToolCall
from gateways.storage import ObjectStorage


# =============================================================================
# HTTP Fixtures
# =============================================================================

def make_response(
    status: int = 200,
    json_data: Any = None,
    content: bytes = b"",
    text: Optional[str] = None,
    headers: Optional[Dict[str, str]] = None,
) -> MagicMock:
    """A stand-in for ``requests.Response``."""
    resp = MagicMock()
    resp.status_code = status
    resp.ok = 200 <= status < 300
    resp.content = content
    resp.headers = headers or {}
    if text is None:
        text = json.dumps(json_data) if json_data is not None else ""
    resp.text = text
    if json_data is not None:
        resp.json.return_value = json_data
    else:
        resp.json.side_effect = ValueError("no json")
    return resp


@pytest.fixture
def http_session():
    """A mocked ``requests.Session``; set ``request.return_value`` per test."""
    return MagicMock()


def completion(text: str = "", *calls: ToolCall) -> ChatCompletion:
    return ChatCompletion(text=text, tool_calls=list(calls))


def create_post_call(args: Any, call_id: str = "call_1") -> ToolCall:
    raw = args if isinstance(args, str) else json.dumps(args)
    return ToolCall(id=call_id, name="create_post", raw_arguments=raw)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://")
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def storage():
    mock = MagicMock(spec=ObjectStorage)
    mock.upload.side_effect = lambda path, data, ctype: f"https://proj.supabase.co/storage/v1/object/public/images/{path}"
    mock.public_url.side_effect = lambda path: f"https://proj.supabase.co/storage/v1/object/public/images/{path}"
    return mock


@pytest.fixture
def store(session_factory, storage):
    return PersistenceGateway(session_factory, storage)


@pytest.fixture
def unconfigured_store():
    return PersistenceGateway(None, None)


# =============================================================================
# Vendor Fixtures
# =============================================================================

@pytest.fixture
def llm():
    mock = MagicMock(spec=LLMClient)
    mock.configured = True
    mock.complete.return_value = completion("Here are three remote work tips.")
    mock.transcribe.return_value = "Give me a post idea about coffee"
    return mock


@pytest.fixture
def voice():
    mock = MagicMock(spec=VoiceClient)
    mock.configured = True
    mock.synthesize.return_value = b"ID3-mp3-bytes"
    mock.speech_to_speech.return_value = b"sts-mp3-bytes"
    mock.converse.return_value = b"agent-mp3-bytes"
    return mock


@pytest.fixture
def generation(llm, voice):
    return GenerationGateway(llm, voice)


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", supabase_url="https://proj.supabase.co",
                    supabase_service_role_key="service-key", openai_api_key="sk-test",
                    elevenlabs_api_key="xi-test")


@pytest.fixture
def client(settings, store, generation):
    app = create_app(settings=settings, store=store, generation=generation)
    with TestClient(app) as c:
        yield c
