# gateways/generation.py
"""
Generation Gateway.

Wraps the text-completion vendor (chat completions with optional tools and
speech-to-text) and the voice vendor (text-to-speech, speech-to-speech,
conversational agents). Every call is one attempt through RequestPolicy; a
non-2xx answer becomes UpstreamError. Nothing here touches persistence: tool
calls are surfaced to the caller, who decides what to store.
"""
import json
from typing import Any, Dict, List, Optional

import requests

from gateways.http import RequestPolicy, json_or_none, raise_for_vendor
from gateways.schemas import AgentInfo, ChatCompletion, VoiceSettings
from utils.exceptions import ConfigError, ValidationError
from utils.logger import get_logger

log = get_logger(__name__)

TRANSCRIBE_MODEL = "whisper-1"
TTS_MODEL = "eleven_monolingual_v1"
STS_MODEL = "eleven_english_sts_v2"


class LLMClient:
    """Chat completions and transcription against an OpenAI-compatible API."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.openai.com/v1",
        chat_model: str = "gpt-3.5-turbo",
        tools_model: str = "gpt-4-turbo-preview",
        session: Optional[requests.Session] = None,
        policy: Optional[RequestPolicy] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.chat_model = chat_model
        self.tools_model = tools_model
        self.session = session or requests.Session()
        self.policy = policy or RequestPolicy()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def require(self) -> None:
        if not self.api_key:
            raise ConfigError("OpenAI API key not configured")

    def _auth(self) -> Dict[str, str]:
        self.require()
        return {"Authorization": f"Bearer {self.api_key}"}

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        tools: Optional[List[Dict[str, Any]]] = None,
        temperature: float = 0.7,
        max_tokens: int = 500,
        tool_choice: str = "auto",
    ) -> ChatCompletion:
        headers = self._auth()
        payload: Dict[str, Any] = {
            "model": self.tools_model if tools else self.chat_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = tool_choice
        log.info("chat completion (%s, %d tools)", payload["model"], len(tools or []))
        resp = self.policy.send(self.session, "POST", f"{self.base_url}/chat/completions", json=payload, headers=headers)
        raise_for_vendor(resp, "OpenAI API error")
        completion = ChatCompletion.from_vendor(resp.json())
        log.debug("completion text=%r tool_calls=%d", completion.text[:80], len(completion.tool_calls))
        return completion

    def complete_raw(self, system_prompt: str, user_message: str, tools: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Unparsed vendor body; used by the function-calling probe."""
        headers = self._auth()
        payload = {
            "model": self.tools_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            "max_tokens": 500,
            "temperature": 0.7,
            "tools": tools,
            "tool_choice": "auto",
        }
        resp = self.policy.send(self.session, "POST", f"{self.base_url}/chat/completions", json=payload, headers=headers)
        raise_for_vendor(resp, "OpenAI API error")
        return resp.json()

    def transcribe(self, audio: bytes, filename: str = "audio.webm", content_type: str = "audio/webm") -> str:
        headers = self._auth()
        if not audio:
            raise ValidationError("No audio file provided")
        resp = self.policy.send(
            self.session, "POST", f"{self.base_url}/audio/transcriptions",
            files={"file": (filename, audio, content_type)},
            data={"model": TRANSCRIBE_MODEL},
            headers=headers,
        )
        raise_for_vendor(resp, "Speech recognition failed")
        text = ((json_or_none(resp) or {}).get("text") or "").strip()
        if not text:
            raise ValidationError("No speech detected. Please try speaking more clearly.")
        log.info("transcribed %d chars", len(text))
        return text


class VoiceClient:
    """Text-to-speech, speech-to-speech and conversational agents."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://api.elevenlabs.io/v1",
        voice_id: str = "21m00Tcm4TlvDq8ikWAM",
        session: Optional[requests.Session] = None,
        policy: Optional[RequestPolicy] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.voice_id = voice_id
        self.session = session or requests.Session()
        self.policy = policy or RequestPolicy()

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def require(self) -> None:
        if not self.api_key:
            raise ConfigError("ElevenLabs API key not configured")

    def _auth(self) -> Dict[str, str]:
        self.require()
        return {"xi-api-key": self.api_key}

    def _get(self, path: str) -> requests.Response:
        return self.policy.send(self.session, "GET", f"{self.base_url}{path}", headers=self._auth())

    def synthesize(self, text: str, voice_id: Optional[str] = None, settings: Optional[VoiceSettings] = None) -> bytes:
        headers = self._auth()
        if not text or not text.strip():
            raise ValidationError("Nothing to synthesize")
        settings = settings or VoiceSettings()
        resp = self.policy.send(
            self.session, "POST", f"{self.base_url}/text-to-speech/{voice_id or self.voice_id}",
            json={"text": text, "model_id": TTS_MODEL, "voice_settings": settings.model_dump()},
            headers={**headers, "Content-Type": "application/json"},
        )
        raise_for_vendor(resp, "Text-to-speech failed")
        return resp.content

    def speech_to_speech(
        self,
        audio: bytes,
        prompt: str,
        voice_id: Optional[str] = None,
        settings: Optional[VoiceSettings] = None,
        filename: str = "input.webm",
        content_type: str = "audio/webm",
    ) -> bytes:
        headers = self._auth()
        settings = settings or VoiceSettings()
        resp = self.policy.send(
            self.session, "POST", f"{self.base_url}/speech-to-speech/{voice_id or self.voice_id}",
            files={"audio": (filename, audio, content_type)},
            data={
                "model_id": STS_MODEL,
                "text": prompt,
                "voice_settings": json.dumps(settings.model_dump()),
            },
            headers=headers,
        )
        raise_for_vendor(resp, "ElevenLabs speech-to-speech error")
        return resp.content

    def get_agent(self, agent_id: str) -> AgentInfo:
        resp = self._get(f"/convai/agents/{agent_id}")
        raise_for_vendor(resp, "Failed to verify agent")
        return AgentInfo.from_vendor(resp.json() or {})

    def list_agents(self) -> List[AgentInfo]:
        resp = self._get("/convai/agents")
        raise_for_vendor(resp, "Failed to fetch agents")
        data = resp.json()
        items = data.get("agents", []) if isinstance(data, dict) else (data or [])
        return [AgentInfo.from_vendor(a) for a in items]

    def converse(self, agent_id: str, audio: bytes, filename: str = "input.webm", content_type: str = "audio/webm") -> bytes:
        headers = self._auth()
        resp = self.policy.send(
            self.session, "POST", f"{self.base_url}/convai/agents/{agent_id}/conversation",
            files={"audio": (filename, audio, content_type)},
            headers=headers,
        )
        raise_for_vendor(resp, "ElevenLabs conversational agent error")
        return resp.content

    def list_voices(self) -> List[Dict[str, Any]]:
        resp = self._get("/voices")
        raise_for_vendor(resp, "ElevenLabs API connection failed")
        return (resp.json() or {}).get("voices") or []

    def list_models(self) -> List[Dict[str, Any]]:
        resp = self._get("/models")
        raise_for_vendor(resp, "ElevenLabs API connection failed")
        return resp.json() or []


class GenerationGateway:
    """The pair of vendor clients the request handlers generate with."""

    def __init__(self, llm: LLMClient, voice: VoiceClient):
        self.llm = llm
        self.voice = voice

    def generate_chat_completion(self, system_prompt: str, user_message: str, tools=None, **kw) -> ChatCompletion:
        return self.llm.complete(system_prompt, user_message, tools=tools, **kw)

    def transcribe_audio(self, audio: bytes, **kw) -> str:
        return self.llm.transcribe(audio, **kw)

    def synthesize_speech(self, text: str, voice_id: Optional[str] = None, voice_settings: Optional[VoiceSettings] = None) -> bytes:
        return self.voice.synthesize(text, voice_id=voice_id, settings=voice_settings)
