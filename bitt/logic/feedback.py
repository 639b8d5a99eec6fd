"""Turns engine phase transitions into audio and speech feedback."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from bitt.common import RecognizedEvent
from bitt.config import INSTRUCTIONS_TEXT
from bitt.logic.state_machine import Phase
from bitt.preferences import PreferenceGate


class AudioSink(Protocol):
    def play_scanning_cue(self, muted: bool = False) -> None: ...

    def stop_scanning_cue(self) -> None: ...

    def play_recognized_cue(self, muted: bool = False) -> None: ...


class SpeechSink(Protocol):
    def speak(self, text: str) -> None: ...


class FeedbackCoordinator:
    """
    Issues feedback intents for engine transitions.

    Preferences are read at every transition, never cached. Cues are issued
    muted instead of skipped when sounds are off, so the scanning cue
    bookkeeping matches what the audio sink was told.
    """

    def __init__(
        self,
        audio: AudioSink,
        speech: SpeechSink,
        preferences: PreferenceGate,
        display: Callable[[str], str] = str,
        gate_speech: bool = False,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._audio = audio
        self._speech = speech
        self._preferences = preferences
        self._display = display
        self._gate_speech = gate_speech
        self._lock = threading.Lock()
        self._scanning = False
        self._scanning_muted: Optional[bool] = None

    @property
    def scanning(self) -> bool:
        return self._scanning

    def flash_enabled(self) -> bool:
        return self._preferences.get().flash_enabled

    def on_transition(self, before: Phase, after: Phase, event: RecognizedEvent | None = None) -> None:
        if event is not None:
            self._on_recognized(event)
            return
        # a playing cue follows the sound toggle in every phase
        if after is Phase.PENDING or self._scanning:
            self._ensure_scanning()

    def pause(self) -> None:
        """Silence the scanning cue while recognition is paused."""
        self._stop_scanning()

    def resume(self) -> None:
        """Restart the scanning cue right away when recognition resumes."""
        self._ensure_scanning()

    def speak_instructions(self) -> None:
        self._stop_scanning()
        self._speech.speak(INSTRUCTIONS_TEXT)

    def _ensure_scanning(self) -> None:
        muted = not self._preferences.get().sounds_enabled
        with self._lock:
            if self._scanning and self._scanning_muted == muted:
                return
            self._audio.play_scanning_cue(muted=muted)
            self._scanning = True
            self._scanning_muted = muted

    def _stop_scanning(self) -> None:
        with self._lock:
            if not self._scanning:
                return
            self._audio.stop_scanning_cue()
            self._scanning = False
            self._scanning_muted = None

    def _on_recognized(self, event: RecognizedEvent) -> None:
        prefs = self._preferences.get()
        self._stop_scanning()
        self._audio.play_recognized_cue(muted=not prefs.sounds_enabled)
        text = self._display(event.label)
        if self._gate_speech and not prefs.sounds_enabled:
            self._logger.info("Speech muted for %s", text)
            return
        self._speech.speak(text)
