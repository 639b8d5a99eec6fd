"""
Recognition session: the single actor that owns the stabilization engine.

Observations and reset-timer firings arrive from different threads (camera
loop, timer thread). Both are posted to one mailbox and applied to the engine
by one worker thread, in arrival order. Feedback and presentation updates are
dispatched after each transition is computed.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, Tuple, Union

from bitt.common import InvalidObservation, Observation
from bitt.config import IDLE_RESULT, SESSION_QUEUE_MAXSIZE, EngineConfig
from bitt.logic.feedback import FeedbackCoordinator
from bitt.logic.stabilizer import ResetScheduler, StabilizationEngine
from bitt.logic.state_machine import Phase


class PresentationSink(Protocol):
    def on_result(self, label: str, confidence_pct: float) -> None: ...


@dataclass(frozen=True)
class _ResetFired:
    now: float


@dataclass(frozen=True)
class _Stop:
    pass


_Message = Union[Observation, _ResetFired, _Stop]


class ThreadingResetScheduler:
    """Cancel-and-rearm timer that reports firings through a callback."""

    def __init__(self, on_fire: Callable[[float], None], clock: Callable[[], float] = time.monotonic) -> None:
        self._on_fire = on_fire
        self._clock = clock
        self._lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None

    def rearm(self, delay_s: float) -> None:
        timer = threading.Timer(delay_s, self._fire)
        timer.daemon = True
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _fire(self) -> None:
        self._on_fire(self._clock())


class RecognitionSession:
    """Mailbox-driven owner of a StabilizationEngine."""

    def __init__(
        self,
        coordinator: FeedbackCoordinator,
        config: EngineConfig | None = None,
        presentation: PresentationSink | None = None,
        display: Callable[[str], str] = str,
        scheduler: ResetScheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
        queue_maxsize: int = SESSION_QUEUE_MAXSIZE,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._coordinator = coordinator
        self._presentation = presentation
        if queue_maxsize < 1:
            raise ValueError(f"queue_maxsize must be at least 1, got {queue_maxsize}")
        self._display = display
        # observations are bounded, control messages bypass the bound
        self._mailbox: queue.Queue[_Message] = queue.Queue()
        self._frame_slots = threading.BoundedSemaphore(queue_maxsize)
        self._scheduler = scheduler or ThreadingResetScheduler(self.post_reset, clock)
        self._engine = StabilizationEngine(config, scheduler=self._scheduler)
        self._paused = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._result_lock = threading.Lock()
        self._result: Tuple[str, float] = (IDLE_RESULT, 0.0)
        self._dropped = 0
        self._overflowed = 0

    # ---------------------------
    # Public API
    # ---------------------------

    @property
    def phase(self) -> Phase:
        return self._engine.phase

    @property
    def last_result(self) -> str:
        with self._result_lock:
            return self._result[0]

    @property
    def last_confidence(self) -> float:
        with self._result_lock:
            return self._result[1]

    @property
    def dropped(self) -> int:
        return self._dropped

    @property
    def overflowed(self) -> int:
        """Observations discarded because the mailbox was full."""
        return self._overflowed

    @property
    def paused(self) -> bool:
        return self._paused.is_set()

    def submit(self, obs: Observation) -> None:
        """Queue an observation. Non-blocking; drops the frame when the mailbox is full."""
        if not self._frame_slots.acquire(blocking=False):
            self._overflowed += 1
            self._logger.debug("Mailbox full, discarding frame at %s", obs.timestamp)
            return
        self._mailbox.put(obs)

    def post_reset(self, now: float) -> None:
        self._mailbox.put(_ResetFired(now))

    def start(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._run_worker, name="RecognitionSession", daemon=True)
        self._worker.start()

    def stop(self, timeout: float | None = 2.0) -> None:
        self._scheduler.cancel()
        worker = self._worker
        if worker is None:
            return
        self._mailbox.put(_Stop())
        worker.join(timeout)
        self._worker = None
        self._coordinator.pause()

    def pause(self) -> None:
        """Stop recognizing (help dialog shown). Pending candidates are dropped."""
        self._paused.set()
        self._coordinator.pause()

    def resume(self) -> None:
        self._paused.clear()
        self._coordinator.resume()

    def show_instructions(self) -> None:
        self.pause()
        self._coordinator.speak_instructions()

    def process_next(self, timeout: float | None = None) -> bool:
        """Apply one queued message to the engine. Returns False when stopping."""
        try:
            message = self._mailbox.get(timeout=timeout)
        except queue.Empty:
            return True
        try:
            if isinstance(message, _Stop):
                return False
            if isinstance(message, _ResetFired):
                self._handle_reset(message.now)
            else:
                self._frame_slots.release()
                self._handle_observation(message)
            return True
        finally:
            self._mailbox.task_done()

    def drain(self) -> None:
        """Process every queued message on the calling thread."""
        while not self._mailbox.empty():
            if not self.process_next(timeout=0):
                return

    # ---------------------------
    # Internal helpers
    # ---------------------------

    def _run_worker(self) -> None:
        while self.process_next(timeout=0.2):
            pass

    def _handle_observation(self, obs: Observation) -> None:
        if self._paused.is_set():
            if self._engine.phase is Phase.PENDING:
                self._engine.reset()
            return
        before = self._engine.phase
        try:
            event = self._engine.on_observation(obs)
        except InvalidObservation as exc:
            self._dropped += 1
            self._logger.warning("Dropping frame: %s", exc)
            return
        after = self._engine.phase
        self._dispatch(self._coordinator.on_transition, before, after, event)
        if event is not None:
            self._dispatch(self._publish, self._display(event.label), event.confidence * 100.0)

    def _handle_reset(self, now: float) -> None:
        before = self._engine.phase
        self._engine.on_reset_timer_fired(now)
        after = self._engine.phase
        if before is not after:
            self._dispatch(self._coordinator.on_transition, before, after)
            self._dispatch(self._publish, IDLE_RESULT, 0.0)

    def _dispatch(self, handler: Callable[..., None], *args) -> None:
        # sink errors are logged and the worker keeps running
        try:
            handler(*args)
        except Exception as exc:
            self._logger.error("Feedback dispatch failed: %s", exc)

    def _publish(self, label: str, confidence_pct: float) -> None:
        with self._result_lock:
            self._result = (label, confidence_pct)
        if self._presentation is not None:
            self._presentation.on_result(label, confidence_pct)
