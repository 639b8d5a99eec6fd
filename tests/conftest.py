from __future__ import annotations

from typing import List, Tuple

import pytest

from bitt.logic.feedback import FeedbackCoordinator
from bitt.preferences import PreferenceGate

DISPLAY = {"20ar": "20 pesos", "50ba": "50 pesos", "A": "A pesos", "B": "B pesos"}


class RecordingAudio:
    def __init__(self) -> None:
        self.calls: List[Tuple] = []

    def play_scanning_cue(self, muted: bool = False) -> None:
        self.calls.append(("scanning", muted))

    def stop_scanning_cue(self) -> None:
        self.calls.append(("stop",))

    def play_recognized_cue(self, muted: bool = False) -> None:
        self.calls.append(("recognized", muted))


class RecordingSpeech:
    def __init__(self) -> None:
        self.spoken: List[str] = []

    def speak(self, text: str) -> None:
        self.spoken.append(text)


class RecordingPresenter:
    def __init__(self) -> None:
        self.results: List[Tuple[str, float]] = []

    def on_result(self, label: str, confidence_pct: float) -> None:
        self.results.append((label, confidence_pct))


class ManualScheduler:
    def __init__(self) -> None:
        self.armed: List[float] = []
        self.cancelled = 0

    def rearm(self, delay_s: float) -> None:
        self.armed.append(delay_s)

    def cancel(self) -> None:
        self.cancelled += 1


def display(label: str) -> str:
    return DISPLAY.get(label, "0")


@pytest.fixture
def audio() -> RecordingAudio:
    return RecordingAudio()


@pytest.fixture
def speech() -> RecordingSpeech:
    return RecordingSpeech()


@pytest.fixture
def presenter() -> RecordingPresenter:
    return RecordingPresenter()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def preferences() -> PreferenceGate:
    return PreferenceGate()


@pytest.fixture
def coordinator(audio: RecordingAudio, speech: RecordingSpeech, preferences: PreferenceGate) -> FeedbackCoordinator:
    return FeedbackCoordinator(audio, speech, preferences, display=display)
