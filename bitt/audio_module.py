"""Scanning and recognized audio cues played through sounddevice."""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

import numpy as np

from bitt.config import (
    CUE_SAMPLE_RATE,
    CUE_VOLUME,
    RECOGNIZED_CUE_HZ,
    RECOGNIZED_CUE_NOTE_S,
    SCANNING_CUE_BEEP_S,
    SCANNING_CUE_HZ,
    SCANNING_CUE_PERIOD_S,
)


def tone(freq_hz: float, duration_s: float, sample_rate: int = CUE_SAMPLE_RATE) -> np.ndarray:
    """Sine tone with short linear fades to avoid clicks."""
    n = max(1, int(duration_s * sample_rate))
    t = np.arange(n, dtype=np.float32) / sample_rate
    wave = np.sin(2.0 * np.pi * freq_hz * t).astype(np.float32)
    fade = min(n // 2, int(0.005 * sample_rate))
    if fade > 0:
        ramp = np.linspace(0.0, 1.0, fade, dtype=np.float32)
        wave[:fade] *= ramp
        wave[-fade:] *= ramp[::-1]
    return wave


def scanning_cue(sample_rate: int = CUE_SAMPLE_RATE) -> np.ndarray:
    """One period of the looping scanning cue: a short beep then silence."""
    beep = tone(SCANNING_CUE_HZ, SCANNING_CUE_BEEP_S, sample_rate)
    period = max(len(beep), int(SCANNING_CUE_PERIOD_S * sample_rate))
    out = np.zeros(period, dtype=np.float32)
    out[: len(beep)] = beep
    return out


def recognized_cue(
    notes_hz: Sequence[float] = RECOGNIZED_CUE_HZ, sample_rate: int = CUE_SAMPLE_RATE
) -> np.ndarray:
    return np.concatenate([tone(freq, RECOGNIZED_CUE_NOTE_S, sample_rate) for freq in notes_hz])


class CuePlayer:
    """Audio sink for the feedback cues. Falls back to logging when no audio device is available."""

    def __init__(self, volume: float = CUE_VOLUME, sample_rate: int = CUE_SAMPLE_RATE) -> None:
        self._logger = logging.getLogger(__name__)
        self._volume = max(0.0, min(1.0, volume))
        self._sample_rate = sample_rate
        self._lock = threading.Lock()
        self._scanning = False
        self._sd = None
        self._scanning_buf = scanning_cue(sample_rate)
        self._recognized_buf = recognized_cue(sample_rate=sample_rate)
        try:
            import sounddevice as sd

            self._sd = sd
        except (ImportError, OSError) as exc:
            self._logger.error("sounddevice not available: %s", exc)

    @property
    def available(self) -> bool:
        return self._sd is not None

    def play_scanning_cue(self, muted: bool = False) -> None:
        with self._lock:
            self._scanning = True
            self._play(self._scanning_buf, muted, loop=True)

    def stop_scanning_cue(self) -> None:
        with self._lock:
            if not self._scanning:
                return
            self._scanning = False
            if self._sd is None:
                return
            try:
                self._sd.stop()
            except self._sd.PortAudioError as exc:
                self._logger.error("Stopping scanning cue failed: %s", exc)

    def play_recognized_cue(self, muted: bool = False) -> None:
        with self._lock:
            self._scanning = False
            self._play(self._recognized_buf, muted, loop=False)

    def _play(self, buf: np.ndarray, muted: bool, loop: bool) -> None:
        if self._sd is None:
            self._logger.debug("Cue skipped: no audio backend.")
            return
        gain = 0.0 if muted else self._volume
        try:
            self._sd.play(buf * gain, self._sample_rate, loop=loop)
        except self._sd.PortAudioError as exc:
            self._logger.error("Cue playback failed: %s", exc)

    def close(self) -> None:
        self.stop_scanning_cue()
        if self._sd is not None:
            try:
                self._sd.stop()
            except self._sd.PortAudioError as exc:
                self._logger.error("Closing audio failed: %s", exc)
