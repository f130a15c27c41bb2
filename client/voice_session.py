# client/voice_session.py
"""
Voice conversation session.

States: DISCONNECTED -> CONNECTING -> LISTENING <-> SPEAKING -> DISCONNECTED.
The microphone runs only while LISTENING and captured frames go out only
while the channel is open. Every path back to DISCONNECTED (stop, remote
close, error, failed connect) goes through _release(), which stops the
microphone, closes the channel and stops playback even if one of them fails.
"""
from enum import Enum
from typing import Callable, Optional, Protocol

import numpy as np

from client.audio import frame_to_pcm
from utils.logger import get_logger

log = get_logger(__name__)


class VoiceState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    LISTENING = "listening"
    SPEAKING = "speaking"


class Channel(Protocol):
    def is_open(self) -> bool: ...
    def send(self, data: bytes) -> None: ...
    def close(self) -> None: ...


class Microphone(Protocol):
    def start(self, on_frame: Callable[[np.ndarray, int], None]) -> None: ...
    def stop(self) -> None: ...


class Player(Protocol):
    def play(self, audio: bytes) -> None: ...
    def stop(self) -> None: ...


class VoiceSession:
    def __init__(
        self,
        connect: Callable[["VoiceSession"], Channel],
        microphone: Microphone,
        player: Optional[Player] = None,
        on_state: Optional[Callable[[VoiceState], None]] = None,
    ):
        self._connect = connect
        self._mic = microphone
        self._player = player
        self._on_state = on_state
        self._channel: Optional[Channel] = None
        self._mic_running = False
        self._state = VoiceState.DISCONNECTED
        self.last_error: Optional[BaseException] = None

    @property
    def state(self) -> VoiceState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state in (VoiceState.LISTENING, VoiceState.SPEAKING)

    def _set_state(self, state: VoiceState) -> None:
        if state is self._state:
            return
        log.debug("voice session %s -> %s", self._state.value, state.value)
        self._state = state
        if self._on_state:
            self._on_state(state)

    # -------- user actions --------
    def toggle(self) -> VoiceState:
        if self._state is VoiceState.DISCONNECTED:
            self.start()
        else:
            self.stop()
        return self._state

    def start(self) -> None:
        if self._state is not VoiceState.DISCONNECTED:
            self.stop()
        self.last_error = None
        self._set_state(VoiceState.CONNECTING)
        try:
            channel = self._connect(self)
        except Exception as e:
            self.last_error = e
            self._release()
            raise
        if self._state is VoiceState.DISCONNECTED:
            # closed or failed while connecting
            if channel is not None:
                try:
                    channel.close()
                except Exception as e:
                    log.warning("releasing channel failed: %s", e)
            return
        self._channel = channel

    def stop(self) -> None:
        self._release()

    # -------- channel events --------
    def on_connected(self) -> None:
        if self._state is not VoiceState.CONNECTING:
            return
        self._set_state(VoiceState.LISTENING)
        self._start_mic()

    def on_audio(self, chunk: bytes) -> None:
        if not self.connected:
            return
        try:
            self._stop_mic()
        except Exception as e:
            self.on_error(e)
            return
        self._set_state(VoiceState.SPEAKING)
        if self._player:
            try:
                self._player.play(chunk)
            except Exception as e:
                self.on_error(e)

    def on_playback_finished(self) -> None:
        if self._state is not VoiceState.SPEAKING:
            return
        self._set_state(VoiceState.LISTENING)
        self._start_mic()

    def on_closed(self) -> None:
        self._release()

    def on_error(self, exc: BaseException) -> None:
        log.error("voice session error: %s", exc)
        self.last_error = exc
        self._release()

    # -------- microphone --------
    def capture(self, samples: np.ndarray, rate: int) -> bool:
        """Forward one captured frame; False when it was dropped."""
        channel = self._channel
        if self._state is not VoiceState.LISTENING or channel is None or not channel.is_open():
            return False
        channel.send(frame_to_pcm(samples, rate))
        return True

    def _start_mic(self) -> None:
        if self._mic_running:
            return
        try:
            self._mic.start(self.capture)
            self._mic_running = True
        except Exception as e:
            self.on_error(e)

    def _stop_mic(self) -> None:
        if not self._mic_running:
            return
        self._mic_running = False
        self._mic.stop()

    # -------- teardown --------
    def _release(self) -> None:
        steps = (
            ("microphone", self._stop_mic),
            ("channel", self._close_channel),
            ("player", self._player.stop if self._player else None),
        )
        for name, step in steps:
            if step is None:
                continue
            try:
                step()
            except Exception as e:
                log.warning("releasing %s failed: %s", name, e)
        self._set_state(VoiceState.DISCONNECTED)

    def _close_channel(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            channel.close()
