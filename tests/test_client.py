"""
Tests for the client package: the API client, history helpers and audio helpers.
"""
from datetime import datetime, timezone

import numpy as np
import pytest

from client.api_client import ApiError, StoryForgeClient, storage_path_from_url
from client.audio import downsample, float32_to_pcm16, frame_to_pcm, to_mono
from client.history import filter_chats, format_timestamp, source_label
from conftest import make_response


# =============================================================================
# API client
# =============================================================================

@pytest.fixture
def api(http_session):
    http_session.headers = {}
    return StoryForgeClient("http://localhost:8000/", api_key="k", session=http_session)


def test_send_message(api, http_session):
    http_session.request.return_value = make_response(json_data={"message": "hi", "posts": []})
    assert api.send_message("hello")["message"] == "hi"
    assert http_session.request.call_args.args == ("POST", "http://localhost:8000/chat")
    assert http_session.headers["X-API-Key"] == "k"


def test_error_json_body(api, http_session):
    http_session.request.return_value = make_response(
        400, json_data={"error": "Message is required"}, headers={"content-type": "application/json"},
    )
    with pytest.raises(ApiError) as exc:
        api.send_message("")
    assert exc.value.status == 400
    assert exc.value.message == "Message is required"


def test_error_non_json_body(api, http_session):
    http_session.request.return_value = make_response(502, text="<html>Bad gateway</html>", headers={"content-type": "text/html"})
    with pytest.raises(ApiError, match="Server error occurred"):
        api.chat_history()


def test_voice_chat_requires_audio_response(api, http_session):
    http_session.request.return_value = make_response(json_data={"ok": True}, headers={"content-type": "application/json"})
    with pytest.raises(ApiError, match="Invalid response format"):
        api.voice_chat(b"webm")


def test_voice_chat_returns_bytes(api, http_session):
    http_session.request.return_value = make_response(content=b"mp3", headers={"content-type": "audio/mpeg"})
    assert api.voice_chat(b"webm", include_context=False) == b"mp3"
    assert http_session.request.call_args.kwargs["data"] == {"include_context": "false"}


def test_remove_post_image(api, http_session):
    http_session.request.side_effect = [
        make_response(json_data={"success": True}),
        make_response(json_data={"success": True, "post": {"id": 3, "metadata": {}}}),
    ]
    post = api.remove_post_image(3, "https://proj.supabase.co/storage/v1/object/public/images/post-images/1_a%20b.png")

    delete_call, put_call = http_session.request.call_args_list
    assert delete_call.kwargs["params"] == {"path": "post-images/1_a b.png"}
    assert put_call.kwargs["json"]["metadata"]["image_url"] is None
    assert post["id"] == 3


def test_storage_path_from_url():
    assert storage_path_from_url("https://x/storage/v1/object/public/images/a/b.png") == "a/b.png"
    assert storage_path_from_url("https://x/other/a.png") is None


# =============================================================================
# History helpers
# =============================================================================

CHATS = [
    {"message": "Coffee ideas", "response": "Latte art", "source": "text_chat"},
    {"message": "Dog reels", "response": "Park day", "source": "voice"},
    {"message": "Launch plan", "response": "Teaser", "source": "voice_conversation"},
    {"message": "Old row", "response": "coffee again", "source": None},
]


def test_filter_by_kind():
    assert len(filter_chats(CHATS, "voice")) == 2
    assert [c["message"] for c in filter_chats(CHATS, "text")] == ["Coffee ideas", "Old row"]


def test_filter_query_matches_message_or_response():
    assert [c["message"] for c in filter_chats(CHATS, "all", "COFFEE")] == ["Coffee ideas", "Old row"]


def test_filter_unknown_kind():
    with pytest.raises(ValueError):
        filter_chats(CHATS, "fax")


def test_source_label():
    assert source_label(CHATS[2]) == "Voice"
    assert source_label(CHATS[3]) == "Text"


def test_format_timestamp():
    now = datetime(2024, 5, 10, 12, 0, tzinfo=timezone.utc)
    assert format_timestamp("2024-05-10T09:15:00Z", now) == "09:15"
    assert format_timestamp("2024-05-08T09:15:00+00:00", now) == "Wed 09:15"
    assert format_timestamp("2024-04-01T09:15:00", now) == "Apr 1"


# =============================================================================
# Audio helpers
# =============================================================================

def test_to_mono_averages_channels():
    stereo = np.array([[1.0, 0.0], [0.5, 0.5]], dtype=np.float32)
    np.testing.assert_allclose(to_mono(stereo), [0.5, 0.5])


def test_downsample_48k_to_16k():
    out = downsample(np.ones(4800, dtype=np.float32), 48000)
    assert out.shape == (1600,)
    assert out.dtype == np.float32


def test_downsample_same_rate_is_passthrough():
    samples = np.linspace(-1, 1, 10, dtype=np.float32)
    np.testing.assert_array_equal(downsample(samples, 16000), samples)


def test_pcm16_clips_and_is_little_endian():
    pcm = float32_to_pcm16(np.array([0.0, 1.0, -1.0, 2.0], dtype=np.float32))
    values = np.frombuffer(pcm, dtype="<i2")
    assert list(values) == [0, 32767, -32767, 32767]


def test_frame_to_pcm_length():
    assert len(frame_to_pcm(np.zeros(480, dtype=np.float32), 48000)) == 160 * 2
