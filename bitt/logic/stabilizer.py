"""Prediction stabilization: debounce per-frame classifications into recognitions."""

from __future__ import annotations

import logging
import math
from typing import Optional, Protocol

from bitt.common import InvalidObservation, Observation, RecognizedEvent
from bitt.config import EngineConfig
from bitt.logic.state_machine import EngineState, LabelPolicy, Phase


class ResetScheduler(Protocol):
    def rearm(self, delay_s: float) -> None: ...

    def cancel(self) -> None: ...


def _is_real(value: object) -> bool:
    # bool is an int subclass but never a valid confidence or timestamp
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)

class StabilizationEngine:
    """Dwell-time stabilizer with a reset-to-idle timer.

    Not thread-safe: every call must come from one actor (see ``RecognitionSession``).
    """

    def __init__(self, config: EngineConfig | None = None, scheduler: ResetScheduler | None = None) -> None:
        self._logger = logging.getLogger(__name__)
        self._config = config or EngineConfig()
        self._scheduler = scheduler
        self._state = EngineState()
        self._last_timestamp: Optional[float] = None

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def state(self) -> EngineState:
        return self._state.copy()

    def on_observation(self, obs: Observation) -> Optional[RecognizedEvent]:
        self._validate(obs)
        self._last_timestamp = obs.timestamp
        state = self._state

        if obs.confidence < self._config.threshold:
            if state.phase is Phase.PENDING:
                self._logger.debug("Candidate %s dropped (conf=%.3f)", state.pending_label, obs.confidence)
                state.to_idle()
            return None

        if state.phase is Phase.IDLE:
            state.to_pending(obs.label, obs.timestamp)
            self._logger.debug("Candidate %s pending since %.3f", obs.label, obs.timestamp)
            return None

        if state.phase is Phase.SETTLED:
            return None

        if obs.label != state.pending_label:
            policy = self._config.label_policy
            if policy is LabelPolicy.RESTART:
                self._logger.debug("Candidate %s replaced by %s", state.pending_label, obs.label)
                state.to_pending(obs.label, obs.timestamp)
                return None
            if policy is LabelPolicy.ABANDON:
                self._logger.debug("Candidate %s abandoned for %s", state.pending_label, obs.label)
                state.to_idle()
                return None

        since = state.pending_since
        if since is None:
            raise RuntimeError("pending candidate has no start time")
        if obs.timestamp - since < self._config.dwell_s:
            return None

        event = RecognizedEvent(label=obs.label, confidence=obs.confidence, settled_at=obs.timestamp)
        state.to_settled(event)
        self._logger.info("Recognized %s (conf=%.3f)", event.label, event.confidence)
        if self._scheduler is not None:
            self._scheduler.rearm(self._config.reset_interval_s)
        return event

    def on_reset_timer_fired(self, now: float) -> None:
        settled = self._state.settled
        if self._state.phase is not Phase.SETTLED or settled is None:
            return
        if now - settled.settled_at < self._config.reset_interval_s:
            self._logger.debug("Stale reset timer ignored (%.3fs since settle)", now - settled.settled_at)
            return
        self._logger.info("Recognition of %s expired", settled.label)
        self._state.to_idle()

    def reset(self) -> None:
        """Drop any candidate or recognition and cancel the reset timer."""
        if self._scheduler is not None:
            self._scheduler.cancel()
        self._state.to_idle()

    def _validate(self, obs: Observation) -> None:
        conf = obs.confidence
        if not _is_real(conf) or not 0.0 <= conf <= 1.0:
            raise InvalidObservation(f"confidence out of range: {conf!r}")
        if not _is_real(obs.timestamp):
            raise InvalidObservation(f"invalid timestamp: {obs.timestamp!r}")
        if self._last_timestamp is not None and obs.timestamp < self._last_timestamp:
            raise InvalidObservation(
                f"timestamp went backwards: {obs.timestamp} < {self._last_timestamp}"
            )
