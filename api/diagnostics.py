# api/diagnostics.py
"""Read-only vendor connectivity probes. Nothing here writes to the store."""
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.deps import get_generation, get_settings, get_store
from config.settings import Settings
from gateways.generation import GenerationGateway
from gateways.persistence import PersistenceGateway
from gateways.prompts import CREATE_POST_TOOL, FUNCTION_CALLING_SYSTEM_PROMPT, FUNCTION_CALLING_TEST_MESSAGE
from gateways.schemas import AgentInfo, VoiceSettings
from utils.exceptions import StoryForgeError, UpstreamError
from utils.logger import get_logger

log = get_logger(__name__)

router = APIRouter(tags=["diagnostics"])


def _fail(error: str, status: int = 500, **extra) -> JSONResponse:
    return JSONResponse({"error": error, **extra}, status_code=status)


def _agent_summary(agents, n: int):
    return [{"id": a.id, "name": a.name} for a in agents[:n]]


@router.get("/list-agents")
def list_agents(generation: GenerationGateway = Depends(get_generation)):
    voice = generation.voice
    if not voice.configured:
        return _fail("ElevenLabs API key not configured", hasKey=False)
    try:
        agents = voice.list_agents()
    except UpstreamError as e:
        return _fail("Failed to fetch agents", e.status or 500, status=e.status, details=e.details, hasKey=True)
    return {
        "success": True,
        "message": f"Found {len(agents)} conversational agents",
        "hasKey": True,
        "totalAgents": len(agents),
        "agents": [a.model_dump() for a in agents],
    }


@router.get("/test-voice")
def test_voice(generation: GenerationGateway = Depends(get_generation)):
    has_voice, has_llm = generation.voice.configured, generation.llm.configured
    keys = {"hasElevenLabsKey": has_voice, "hasOpenAIKey": has_llm}
    if not has_voice:
        return _fail("ElevenLabs API key not configured", **keys)
    if not has_llm:
        return _fail("OpenAI API key not configured", **keys)
    try:
        voices = generation.voice.list_voices()
    except UpstreamError as e:
        return _fail("ElevenLabs API connection failed", status=e.status, details=e.details, **keys)

    try:
        generation.voice.synthesize(
            "Hello! This is a test of the voice assistant.",
            settings=VoiceSettings(),
        )
        tts_working = True
    except UpstreamError as e:
        log.warning("TTS probe failed: %s", e.message)
        tts_working = False

    return {
        "success": True,
        "message": "API connections successful",
        "voiceCount": len(voices),
        "ttsWorking": tts_working,
        "availableVoices": [
            {"voice_id": v.get("voice_id"), "name": v.get("name"), "category": v.get("category")}
            for v in voices[:5]
        ],
        **keys,
    }


@router.get("/test-speech-to-speech")
def test_speech_to_speech(generation: GenerationGateway = Depends(get_generation)):
    voice = generation.voice
    if not voice.configured:
        return _fail("ElevenLabs API key not configured", hasKey=False)
    try:
        models = voice.list_models()
    except UpstreamError as e:
        return _fail("ElevenLabs API connection failed", status=e.status, details=e.details, hasKey=True)

    sts_models = [
        m for m in models
        if m.get("can_do_voice_conversion")
        or "sts" in (m.get("model_id") or "")
        or "speech" in (m.get("name") or "").lower()
    ]
    try:
        voice_count = len(voice.list_voices())
        voices_working = True
    except UpstreamError:
        voice_count, voices_working = 0, False

    return {
        "success": True,
        "message": "ElevenLabs API connection successful",
        "hasKey": True,
        "voicesWorking": voices_working,
        "voiceCount": voice_count,
        "totalModels": len(models),
        "speechToSpeechModels": [
            {
                "model_id": m.get("model_id"),
                "name": m.get("name"),
                "can_do_voice_conversion": m.get("can_do_voice_conversion"),
                "description": m.get("description"),
            }
            for m in sts_models
        ],
        "recommendedModel": "eleven_english_sts_v2",
    }


@router.get("/test-conversational-agent")
def test_conversational_agent(
    settings: Settings = Depends(get_settings),
    generation: GenerationGateway = Depends(get_generation),
):
    voice, agent_id = generation.voice, settings.agent_id
    if not voice.configured:
        return _fail("ElevenLabs API key not configured", hasKey=False)

    try:
        available = voice.list_agents()
    except UpstreamError as e:
        log.info("Agents list error: %s", e.details)
        available = []

    try:
        agent: AgentInfo = voice.get_agent(agent_id)
    except UpstreamError as e:
        return _fail(
            "Failed to access conversational agent", e.status or 500,
            status=e.status,
            details=e.details,
            hasKey=True,
            agentId=agent_id,
            availableAgentsCount=len(available),
            availableAgents=_agent_summary(available, 3),
            suggestion=(
                "Try using one of the available agent IDs listed above" if available
                else "No agents found. You may need to create an agent first in ElevenLabs dashboard"
            ),
        )

    try:
        voice.list_voices()
        voices_working = True
    except UpstreamError:
        voices_working = False

    return {
        "success": True,
        "message": "ElevenLabs conversational agent accessible",
        "hasKey": True,
        "agentId": agent_id,
        "agentName": agent.name or "Unknown",
        "agentDescription": agent.description or "No description",
        "voicesWorking": voices_working,
        "availableAgentsCount": len(available),
        "agentDetails": agent.model_dump(),
    }


@router.post("/test-function-calling")
def test_function_calling(generation: GenerationGateway = Depends(get_generation)):
    data = generation.llm.complete_raw(FUNCTION_CALLING_SYSTEM_PROMPT, FUNCTION_CALLING_TEST_MESSAGE, [CREATE_POST_TOOL])
    message = ((data.get("choices") or [{}])[0]).get("message") or {}
    return {
        "success": True,
        "message_content": message.get("content"),
        "tool_calls": message.get("tool_calls") or None,
        "full_response": data,
    }


@router.get("/test-storage")
def test_storage(settings: Settings = Depends(get_settings), store: PersistenceGateway = Depends(get_store)):
    storage = store.storage
    if storage is None:
        return _fail("Supabase configuration missing")
    try:
        buckets = storage.list_buckets()
    except StoryForgeError as e:
        return _fail("Failed to list buckets", details=e.details or e.message)

    bucket = next((b for b in buckets if b.get("id") == settings.storage_bucket), None)
    if bucket is None:
        return _fail(
            "Images bucket not found", 404,
            suggestion=f"Create a public storage bucket named '{settings.storage_bucket}'",
            availableBuckets=[b.get("id") for b in buckets],
        )

    try:
        sample = storage.list("post-images", limit=5)
        list_error = None
    except StoryForgeError as e:
        sample, list_error = [], e.message

    return {
        "success": True,
        "bucket": bucket,
        "canList": list_error is None,
        "listError": list_error,
        "sampleFiles": len(sample),
        "message": "Storage bucket is properly configured",
    }


@router.get("/test-supabase")
def test_supabase(settings: Settings = Depends(get_settings), store: PersistenceGateway = Depends(get_store)):
    log.info("Testing database connection (url set: %s)", settings.has_database)
    if not settings.has_database:
        return _fail(
            "Missing environment variables",
            details={"hasUrl": settings.has_database, "hasKey": bool(settings.supabase_service_role_key)},
        )
    try:
        count = store.count_chat_turns()
    except StoryForgeError as e:
        return _fail("Supabase connection failed", details=e.details or e.message)
    return {
        "success": True,
        "message": "Supabase connection successful",
        "tableExists": True,
        "recordCount": count,
    }
