"""
Tests for the voice routes: history, the multi-step pipeline, speech-to-speech
and the conversational agent proxy.
"""
from unittest.mock import MagicMock

from conftest import completion, create_post_call
from utils.exceptions import ConfigError, StoreError, UpstreamError, ValidationError

WEBM = ("clip.webm", b"\x1aE\xdf\xa3-fake-webm", "audio/webm")


class TestVoiceHistory:
    def test_create_and_list(self, client):
        resp = client.post("/voice-history", json={
            "user_audio_transcript": "hello", "ai_response": "hi!", "duration_ms": 900,
        })
        assert resp.status_code == 200
        assert resp.json()["message"] == "Voice interaction stored successfully"

        body = client.get("/voice-history").json()
        assert body["count"] == 1
        assert body["voice"][0]["interaction_type"] == "multi-step"
        assert body["voice"][0]["duration_ms"] == 900

    def test_missing_fields(self, client):
        resp = client.post("/voice-history", json={"user_audio_transcript": "hello"})
        assert resp.status_code == 400


class TestVoiceChat:
    def test_pipeline_returns_audio_and_records(self, client, llm, voice, store):
        resp = client.post("/voice-chat", files={"audio": WEBM})

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "audio/mpeg"
        assert resp.content == b"ID3-mp3-bytes"
        assert resp.headers["content-length"] == str(len(b"ID3-mp3-bytes"))
        voice.synthesize.assert_called_once()
        assert voice.synthesize.call_args.args[0] == "Here are three remote work tips."

        rows = store.list_voice_interactions()
        assert rows[0].user_audio_transcript == "Give me a post idea about coffee"
        assert rows[0].ai_response == "Here are three remote work tips."
        assert rows[0].duration_ms is not None

    def test_context_prepended(self, client, llm, store):
        store.create_chat_turn("earlier question", "earlier answer")

        client.post("/voice-chat", files={"audio": WEBM})

        prompt = llm.complete.call_args.args[1]
        assert "earlier question" in prompt
        assert "Give me a post idea about coffee" in prompt
        assert llm.complete.call_args.kwargs["temperature"] == 0.8

    def test_context_can_be_skipped(self, client, llm, store):
        store.create_chat_turn("earlier question", "earlier answer")
        client.post("/voice-chat", files={"audio": WEBM}, data={"include_context": "false"})
        assert llm.complete.call_args.args[1] == "Give me a post idea about coffee"

    def test_tool_only_reply_is_spoken(self, client, llm, voice, store):
        llm.complete.return_value = completion("", create_post_call({
            "title": "Latte art", "content": "Swirls", "platform": "instagram", "post_type": "reel",
        }))

        resp = client.post("/voice-chat", files={"audio": WEBM})

        assert resp.status_code == 200
        assert "Latte art" in voice.synthesize.call_args.args[0]
        assert store.list_posts()[0].source == "voice"

    def test_missing_audio(self, client, llm):
        resp = client.post("/voice-chat", data={"include_context": "true"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "No audio file provided"
        llm.transcribe.assert_not_called()

    def test_no_speech_detected(self, client, llm, voice):
        llm.transcribe.side_effect = ValidationError("No speech detected. Please try speaking more clearly.")
        resp = client.post("/voice-chat", files={"audio": WEBM})
        assert resp.status_code == 400
        voice.synthesize.assert_not_called()

    def test_voice_key_missing_stops_before_transcription(self, client, llm, voice, store):
        voice.require.side_effect = ConfigError("ElevenLabs API key not configured")
        resp = client.post("/voice-chat", files={"audio": WEBM})
        assert resp.status_code == 500
        assert resp.json()["error"] == "ElevenLabs API key not configured"
        llm.transcribe.assert_not_called()
        assert store.list_voice_interactions() == []

    def test_audio_survives_interaction_save_failure(self, client, voice, store, monkeypatch):
        monkeypatch.setattr(
            store, "create_voice_interaction", MagicMock(side_effect=StoreError("Database error: OperationalError")),
        )

        resp = client.post("/voice-chat", files={"audio": WEBM})

        assert resp.status_code == 200
        assert resp.content == b"ID3-mp3-bytes"

    def test_empty_reply_is_upstream_error(self, client, llm, voice):
        llm.complete.return_value = completion("")
        resp = client.post("/voice-chat", files={"audio": WEBM})
        assert resp.status_code == 500
        assert resp.json()["error"].startswith("AI response generation failed")
        voice.synthesize.assert_not_called()

    def test_tts_failure(self, client, voice, store):
        voice.synthesize.side_effect = UpstreamError("Text-to-speech failed: 500 - boom", status=500)
        resp = client.post("/voice-chat", files={"audio": WEBM})
        assert resp.status_code == 500
        assert store.list_voice_interactions() == []


def test_speech_to_speech(client, voice):
    resp = client.post("/voice-speech-to-speech", files={"audio": WEBM})
    assert resp.status_code == 200
    assert resp.content == b"sts-mp3-bytes"
    assert voice.speech_to_speech.call_args.args[0] == WEBM[1]


class TestConversationalAgent:
    def test_connect(self, client, voice):
        from gateways.schemas import AgentInfo
        voice.get_agent.return_value = AgentInfo(id="agent_1", name="Ava")

        body = client.post("/voice-conversational-agent", json={"agentId": "agent_1", "action": "connect"}).json()

        assert body["status"] == "connected"
        assert body["agentName"] == "Ava"

    def test_connect_unknown_agent(self, client, voice):
        voice.get_agent.side_effect = UpstreamError("Failed to verify agent: 404 - nope", status=404, details="nope")
        resp = client.post("/voice-conversational-agent", json={"agentId": "agent_x", "action": "connect"})
        assert resp.status_code == 404
        assert "agent_x" in resp.json()["error"]
        assert resp.json()["agentId"] == "agent_x"

    def test_connect_vendor_status_passed_through(self, client, voice):
        voice.get_agent.side_effect = UpstreamError("Failed to verify agent: 401 - unauthorized", status=401)
        resp = client.post("/voice-conversational-agent", json={"agentId": "agent_1", "action": "connect"})
        assert resp.status_code == 401

    def test_disconnect(self, client, voice):
        body = client.post("/voice-conversational-agent", json={"agentId": "agent_1", "action": "disconnect"}).json()
        assert body["status"] == "disconnected"
        voice.get_agent.assert_not_called()

    def test_audio_forwarded(self, client, voice):
        resp = client.post("/voice-conversational-agent", data={"agentId": "agent_1"}, files={"audio": WEBM})
        assert resp.status_code == 200
        assert resp.content == b"agent-mp3-bytes"
        assert voice.converse.call_args.args[:2] == ("agent_1", WEBM[1])

    def test_agent_id_required(self, client):
        resp = client.post("/voice-conversational-agent", json={"action": "connect"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Agent ID is required"

    def test_audio_required(self, client):
        resp = client.post("/voice-conversational-agent", json={"agentId": "agent_1"})
        assert resp.status_code == 400
