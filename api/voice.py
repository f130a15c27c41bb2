# api/voice.py
import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from api.chats import save_tool_posts
from api.deps import get_generation, get_store
from api.errors import error_response
from gateways.generation import GenerationGateway
from gateways.persistence import PersistenceGateway
from gateways.prompts import BRAINSTORM_SYSTEM_PROMPT, CREATE_POST_TOOL, saved_posts_reply, with_context
from utils.exceptions import StoryForgeError, UpstreamError, ValidationError
from utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["voice"])

AUDIO_MPEG = "audio/mpeg"


# --- Schemas
class VoiceIn(BaseModel):
    user_audio_transcript: Optional[str] = None
    ai_response: Optional[str] = None
    interaction_type: str = "multi-step"
    duration_ms: Optional[int] = None
    audio_url: Optional[str] = None


def audio_response(data: bytes) -> Response:
    return Response(content=data, media_type=AUDIO_MPEG, headers={"Content-Length": str(len(data))})


def read_audio(audio: Optional[UploadFile]) -> bytes:
    data = audio.file.read() if audio is not None else b""
    if not data:
        raise ValidationError("No audio file provided")
    return data


# -------- history --------
@router.get("/voice-history")
def voice_history(store: PersistenceGateway = Depends(get_store)):
    try:
        voice = [v.to_dict() for v in store.list_voice_interactions()]
    except StoryForgeError as e:
        return error_response(e, voice=[])
    log.info("Successfully fetched %d voice interactions", len(voice))
    return {"success": True, "voice": voice, "count": len(voice)}


@router.post("/voice-history")
def create_voice(body: VoiceIn, store: PersistenceGateway = Depends(get_store)):
    if not body.user_audio_transcript or not body.ai_response:
        raise ValidationError("Missing required fields: user_audio_transcript and ai_response")
    voice_id = store.create_voice_interaction(
        body.user_audio_transcript, body.ai_response,
        interaction_type=body.interaction_type,
        duration_ms=body.duration_ms,
        audio_url=body.audio_url,
    )
    return {"success": True, "id": voice_id, "message": "Voice interaction stored successfully"}


# -------- multi-step pipeline --------
@router.post("/voice-chat")
def voice_chat(
    audio: Optional[UploadFile] = File(None),
    include_context: bool = Form(True),
    store: PersistenceGateway = Depends(get_store),
    generation: GenerationGateway = Depends(get_generation),
):
    started = time.monotonic()
    data = read_audio(audio)
    # no transcription spend when speech can't be produced anyway
    generation.llm.require()
    generation.voice.require()

    user_text = generation.transcribe_audio(
        data, filename=audio.filename or "audio.webm", content_type=audio.content_type or "audio/webm",
    )
    log.info("Transcribed text: %s", user_text)

    prompt = user_text
    if include_context:
        try:
            prompt = with_context(user_text, store.recent_context())
        except StoryForgeError as e:
            log.warning("voice context unavailable: %s", e.message)

    completion = generation.generate_chat_completion(
        BRAINSTORM_SYSTEM_PROMPT, prompt, tools=[CREATE_POST_TOOL], temperature=0.8, max_tokens=300,
    )
    posts = save_tool_posts(store, completion, source="voice", user_prompt=user_text)
    reply = completion.text or saved_posts_reply(p["title"] for p in posts)
    if not reply:
        raise UpstreamError("AI response generation failed: empty response", status=0)
    log.info("AI response text: %s", reply)

    speech = generation.synthesize_speech(reply)

    try:
        store.create_voice_interaction(
            user_text, reply,
            interaction_type="multi-step",
            duration_ms=int((time.monotonic() - started) * 1000),
        )
    except StoryForgeError as e:
        log.error("Failed to save voice interaction: %s", e.message)

    return audio_response(speech)


@router.post("/voice-speech-to-speech")
def voice_speech_to_speech(
    audio: Optional[UploadFile] = File(None),
    generation: GenerationGateway = Depends(get_generation),
):
    data = read_audio(audio)
    log.info("Making speech-to-speech request")
    speech = generation.voice.speech_to_speech(
        data, BRAINSTORM_SYSTEM_PROMPT,
        filename=audio.filename or "input.webm", content_type=audio.content_type or "audio/webm",
    )
    return audio_response(speech)


# -------- conversational agent --------
async def _agent_request(request: Request):
    """(agent_id, action, upload) from either a JSON or a multipart body."""
    ctype = request.headers.get("content-type", "")
    if ctype.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("audio")
        return form.get("agentId"), form.get("action"), upload if hasattr(upload, "read") else None
    try:
        body = await request.json()
    except (ValueError, UnicodeDecodeError) as e:
        raise ValidationError("Invalid JSON body") from e
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")
    return body.get("agentId"), body.get("action"), None


@router.post("/voice-conversational-agent")
async def voice_conversational_agent(
    request: Request,
    generation: GenerationGateway = Depends(get_generation),
):
    agent_id, action, upload = await _agent_request(request)
    if not agent_id:
        raise ValidationError("Agent ID is required")
    voice = generation.voice
    voice.require()

    if action == "connect":
        log.info("Attempting to connect to conversational agent: %s", agent_id)
        try:
            agent = await run_in_threadpool(voice.get_agent, agent_id)
        except UpstreamError as e:
            if e.status == 404:
                return JSONResponse({
                    "error": f"Conversational agent not found. Please verify the agent ID '{agent_id}' exists.",
                    "details": e.details,
                    "agentId": agent_id,
                }, status_code=404)
            return error_response(e, status_code=e.status or 500)
        return {
            "success": True,
            "message": "Connected to conversational agent",
            "agentId": agent_id,
            "agentName": agent.name or "Unknown Agent",
            "status": "connected",
        }

    if action == "disconnect":
        log.info("Disconnecting from conversational agent: %s", agent_id)
        return {
            "success": True,
            "message": "Disconnected from conversational agent",
            "agentId": agent_id,
            "status": "disconnected",
        }

    if upload is None:
        raise ValidationError("No audio file provided for processing")
    data = await upload.read()
    if not data:
        raise ValidationError("No audio file provided for processing")

    log.info("Processing audio through conversational agent: %s", agent_id)
    speech = await run_in_threadpool(
        voice.converse, agent_id, data,
        upload.filename or "input.webm", upload.content_type or "audio/webm",
    )
    return audio_response(speech)
