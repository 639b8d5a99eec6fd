"""
Offline TTS with queue-flushing semantics.

- pyttsx3 engine owned by a single worker thread
- a new utterance interrupts the one in progress and drops anything queued
- macOS 'say' fallback when pyttsx3 cannot start
"""

from __future__ import annotations

import logging
import platform
import queue
import shutil
import subprocess
import threading
from dataclasses import dataclass
from typing import Optional

from bitt.config import SPEECH_LANGUAGE, SPEECH_RATE


@dataclass(frozen=True)
class SpeechConfig:
    language: str = SPEECH_LANGUAGE  # voice language prefix, e.g. "es"
    rate: Optional[int] = SPEECH_RATE  # None = keep default
    volume: Optional[float] = None  # 0.0..1.0; None = keep default
    say_voice: Optional[str] = "Paulina"  # macOS fallback voice


class SpeechEngine:
    """Speech sink: ``speak(text)`` returns immediately."""

    def __init__(self, config: SpeechConfig | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self.config = config or SpeechConfig()

        self._q: queue.Queue[str] = queue.Queue()
        self._shutdown = threading.Event()
        self._ready = threading.Event()
        self._engine: Optional[object] = None
        self._say_proc: Optional[subprocess.Popen] = None
        self._fallback_say = False
        self._last_spoken: Optional[str] = None

        self._worker = threading.Thread(target=self._run_worker, name="SpeechWorker", daemon=True)
        self._worker.start()

    # ---------------------------
    # Public API
    # ---------------------------

    @property
    def available(self) -> bool:
        self._ready.wait(timeout=5.0)
        return self._engine is not None or self._fallback_say

    @property
    def last_spoken(self) -> Optional[str]:
        return self._last_spoken

    def speak(self, text: str) -> None:
        """Interrupt current speech and say ``text`` next."""
        text = (text or "").strip()
        if not text or self._shutdown.is_set():
            return
        self.clear_queue()
        self.stop()
        self._q.put_nowait(text)

    def repeat_last(self) -> None:
        if self._last_spoken:
            self.speak(self._last_spoken)

    def stop(self) -> None:
        """Stop the utterance in progress, if any."""
        # engine.stop() must not wait for the worker's runAndWait to return
        engine = self._engine
        if engine is not None:
            try:
                engine.stop()
            except RuntimeError as exc:
                self._logger.debug("pyttsx3 stop failed: %s", exc)
        proc = self._say_proc
        if proc is not None and proc.poll() is None:
            proc.terminate()

    def clear_queue(self) -> None:
        try:
            while True:
                self._q.get_nowait()
                self._q.task_done()
        except queue.Empty:
            return

    def shutdown(self) -> None:
        if self._shutdown.is_set():
            return
        self._shutdown.set()
        self.clear_queue()
        self.stop()
        self._q.put_nowait("")
        self._worker.join(timeout=2.0)

    # ---------------------------
    # Internal helpers
    # ---------------------------

    def _init_engine(self) -> None:
        try:
            import pyttsx3

            self._engine = pyttsx3.init()
            self._apply_config()
        except (ImportError, RuntimeError, OSError) as exc:
            self._logger.error("pyttsx3 init failed: %s", exc)
            self._engine = None
            if platform.system() == "Darwin" and shutil.which("say") is not None:
                self._fallback_say = True
                self._logger.warning("Falling back to macOS 'say' command for TTS.")
        finally:
            self._ready.set()

    def _apply_config(self) -> None:
        if self._engine is None:
            return
        if self.config.rate is not None:
            self._engine.setProperty("rate", int(self.config.rate))
        if self.config.volume is not None:
            self._engine.setProperty("volume", max(0.0, min(1.0, float(self.config.volume))))
        self._select_voice()

    def _select_voice(self) -> None:
        try:
            voices = self._engine.getProperty("voices") or []
        except RuntimeError as exc:
            self._logger.error("Failed to list voices: %s", exc)
            return
        for voice in voices:
            if self._matches_language(voice, self.config.language):
                self._engine.setProperty("voice", voice.id)
                self._logger.info("Using voice: %s", voice.id)
                return
        self._logger.warning("No '%s' voice found; using default voice.", self.config.language)

    @staticmethod
    def _matches_language(voice, language: str) -> bool:
        fields = [getattr(voice, "id", "") or "", getattr(voice, "name", "") or ""]
        for lang in getattr(voice, "languages", []) or []:
            if isinstance(lang, bytes):
                fields.append(lang.decode("utf-8", errors="ignore"))
            else:
                fields.append(str(lang))
        lang = language.lower()
        tokens = " ".join(fields).lower().replace("-", "_").replace("/", " ").replace(".", " ").split()
        return any(token == lang or token.startswith(f"{lang}_") for token in tokens) or (
            lang == "es" and any("spanish" in token for token in tokens)
        )

    def _run_worker(self) -> None:
        self._init_engine()
        while not self._shutdown.is_set():
            try:
                text = self._q.get(timeout=0.2)
            except queue.Empty:
                continue
            try:
                if not text or self._shutdown.is_set():
                    continue
                self._say(text)
            finally:
                self._q.task_done()

    def _say(self, text: str) -> None:
        self._logger.info("Speaking: %s", text)
        if self._engine is not None:
            try:
                self._engine.say(text)
                self._engine.runAndWait()
                self._last_spoken = text
                return
            except RuntimeError as exc:
                self._logger.error("pyttsx3 speak failed: %s", exc)
        if self._fallback_say:
            cmd = ["say", "-v", self.config.say_voice, text] if self.config.say_voice else ["say", text]
            try:
                self._say_proc = subprocess.Popen(cmd)
                self._say_proc.wait()
                self._last_spoken = text
            except OSError as exc:
                self._logger.error("macOS say failed: %s", exc)
            finally:
                self._say_proc = None
        else:
            self._logger.warning("TTS unavailable: no backend available.")
