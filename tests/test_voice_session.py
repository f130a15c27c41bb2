"""
Tests for the voice conversation session state machine.
"""
from unittest.mock import MagicMock

import numpy as np
import pytest

from client.voice_session import VoiceSession, VoiceState


@pytest.fixture
def channel():
    ch = MagicMock()
    ch.is_open.return_value = True
    return ch


@pytest.fixture
def mic():
    return MagicMock()


@pytest.fixture
def player():
    return MagicMock()


@pytest.fixture
def session(channel, mic, player):
    states = []
    s = VoiceSession(lambda _: channel, mic, player, on_state=states.append)
    s.states = states
    return s


def frame():
    return np.zeros(480, dtype=np.float32)


def test_connect_starts_listening(session, mic):
    session.start()
    assert session.state is VoiceState.CONNECTING
    mic.start.assert_not_called()

    session.on_connected()

    assert session.state is VoiceState.LISTENING
    mic.start.assert_called_once()
    assert session.states == [VoiceState.CONNECTING, VoiceState.LISTENING]


def test_capture_only_while_listening(session, channel):
    assert session.capture(frame(), 48000) is False
    session.start()
    assert session.capture(frame(), 48000) is False
    session.on_connected()
    assert session.capture(frame(), 48000) is True
    channel.send.assert_called_once()
    assert len(channel.send.call_args.args[0]) == 320


def test_capture_dropped_when_channel_closed(session, channel):
    session.start()
    session.on_connected()
    channel.is_open.return_value = False
    assert session.capture(frame(), 16000) is False
    channel.send.assert_not_called()


def test_agent_audio_pauses_mic_until_playback_ends(session, mic, player, channel):
    session.start()
    session.on_connected()

    session.on_audio(b"mp3")

    assert session.state is VoiceState.SPEAKING
    mic.stop.assert_called_once()
    player.play.assert_called_once_with(b"mp3")
    assert session.capture(frame(), 16000) is False

    session.on_playback_finished()

    assert session.state is VoiceState.LISTENING
    assert mic.start.call_count == 2


def test_toggle_stops_and_releases_everything(session, mic, channel, player):
    session.toggle()
    session.on_connected()

    assert session.toggle() is VoiceState.DISCONNECTED
    mic.stop.assert_called_once()
    channel.close.assert_called_once()
    player.stop.assert_called_once()


def test_release_continues_when_a_step_fails(session, mic, channel, player):
    session.start()
    session.on_connected()
    mic.stop.side_effect = RuntimeError("device gone")

    session.stop()

    channel.close.assert_called_once()
    player.stop.assert_called_once()
    assert session.state is VoiceState.DISCONNECTED


def test_remote_close(session, channel):
    session.start()
    session.on_connected()
    session.on_closed()
    assert session.state is VoiceState.DISCONNECTED
    channel.close.assert_called_once()


def test_error_releases_and_records(session, channel):
    session.start()
    session.on_connected()
    err = ConnectionError("socket reset")
    session.on_error(err)
    assert session.state is VoiceState.DISCONNECTED
    assert session.last_error is err


def test_failed_connect_returns_to_disconnected(mic, player):
    def boom(_):
        raise ConnectionError("refused")

    s = VoiceSession(boom, mic, player)
    with pytest.raises(ConnectionError):
        s.start()
    assert s.state is VoiceState.DISCONNECTED
    assert isinstance(s.last_error, ConnectionError)
    mic.start.assert_not_called()


def test_mic_failure_disconnects(session, mic, channel):
    mic.start.side_effect = PermissionError("microphone denied")
    session.start()
    session.on_connected()
    assert session.state is VoiceState.DISCONNECTED
    assert isinstance(session.last_error, PermissionError)
    channel.close.assert_called_once()


def test_restart_stops_previous_session(session, channel):
    session.start()
    session.on_connected()
    session.start()
    channel.close.assert_called_once()
    assert session.state is VoiceState.CONNECTING


def test_mic_stop_failure_on_agent_audio_disconnects(session, mic, channel, player):
    mic.stop.side_effect = OSError("device busy")
    session.start()
    session.on_connected()

    session.on_audio(b"mp3")

    assert session.state is VoiceState.DISCONNECTED
    assert isinstance(session.last_error, OSError)
    channel.close.assert_called_once()
    player.play.assert_not_called()


def test_channel_rejected_during_connect_is_closed(mic, player):
    first, second = MagicMock(), MagicMock()
    channels = [first, second]

    def reject_first(s):
        ch = channels.pop(0)
        if ch is first:
            s.on_error(ConnectionError("handshake rejected"))
        return ch

    s = VoiceSession(reject_first, mic, player)
    s.start()

    assert s.state is VoiceState.DISCONNECTED
    first.close.assert_called_once()

    s.start()
    s.stop()
    assert first.close.call_count == 1
    second.close.assert_called_once()
