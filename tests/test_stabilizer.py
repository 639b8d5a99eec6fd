from __future__ import annotations

import math

import pytest

from bitt.common import InvalidObservation, Observation, RecognizedEvent
from bitt.config import EngineConfig
from bitt.logic.stabilizer import StabilizationEngine
from bitt.logic.state_machine import LabelPolicy, Phase

ALL_POLICIES = list(LabelPolicy)


def _engine(scheduler=None, **overrides) -> StabilizationEngine:
    return StabilizationEngine(EngineConfig(**overrides), scheduler=scheduler)


def _obs(t: float, conf: float, label: str = "A") -> Observation:
    return Observation(label=label, confidence=conf, timestamp=t)


@pytest.mark.parametrize("policy", ALL_POLICIES)
def test_low_confidence_stream_never_recognizes(policy: LabelPolicy) -> None:
    engine = _engine(label_policy=policy)

    for i, conf in enumerate([0.0, 0.5, 0.9, 0.98, 0.989, 0.3] * 5):
        assert engine.on_observation(_obs(i * 0.5, conf, label="AB"[i % 2])) is None
        assert engine.phase is Phase.IDLE


def test_single_high_frame_then_low_frame_returns_to_idle() -> None:
    engine = _engine()

    assert engine.on_observation(_obs(0.0, 0.995)) is None
    assert engine.phase is Phase.PENDING
    assert engine.state.pending_label == "A"
    assert engine.state.pending_since == 0.0

    assert engine.on_observation(_obs(0.1, 0.2)) is None
    state = engine.state
    assert state.phase is Phase.IDLE
    assert state.pending_label is None
    assert state.pending_since is None


def test_threshold_is_inclusive() -> None:
    engine = _engine(threshold=0.9)

    engine.on_observation(_obs(0.0, 0.9))

    assert engine.phase is Phase.PENDING


def test_reference_scenario(scheduler) -> None:
    engine = _engine(scheduler, threshold=0.99, dwell_s=2.0, reset_interval_s=30.0)

    assert engine.on_observation(_obs(0.0, 0.995)) is None
    assert engine.phase is Phase.PENDING
    assert engine.on_observation(_obs(0.5, 0.995)) is None
    assert engine.phase is Phase.PENDING

    event = engine.on_observation(_obs(2.1, 0.996))
    assert event == RecognizedEvent(label="A", confidence=0.996, settled_at=2.1)
    assert engine.phase is Phase.SETTLED
    assert engine.state.settled == event
    assert scheduler.armed == [30.0]

    assert engine.on_observation(_obs(2.2, 0.5)) is None
    assert engine.phase is Phase.SETTLED

    engine.on_reset_timer_fired(32.1)
    assert engine.phase is Phase.IDLE
    assert engine.state.settled is None


@pytest.mark.parametrize("policy", ALL_POLICIES)
def test_sustained_detection_emits_exactly_one_event(policy: LabelPolicy, scheduler) -> None:
    engine = _engine(scheduler, label_policy=policy)

    events = [engine.on_observation(_obs(i * 0.25, 0.995)) for i in range(40)]

    recognized = [event for event in events if event is not None]
    assert len(recognized) == 1
    assert recognized[0].settled_at == 2.0
    assert scheduler.armed == [30.0]


def test_settled_is_not_reemitted_before_reset() -> None:
    engine = _engine()
    engine.on_observation(_obs(0.0, 0.995))
    assert engine.on_observation(_obs(2.0, 0.995)) is not None

    for t in (2.5, 3.0, 10.0, 25.0, 31.9):
        assert engine.on_observation(_obs(t, 0.999, label="50ba")) is None
    assert engine.phase is Phase.SETTLED
    assert engine.state.settled.label == "A"


def test_stale_reset_timer_is_ignored() -> None:
    engine = _engine()
    engine.on_observation(_obs(0.0, 0.995))
    event = engine.on_observation(_obs(2.1, 0.995))

    engine.on_reset_timer_fired(31.0)

    assert engine.phase is Phase.SETTLED
    assert engine.state.settled == event


def test_reset_timer_outside_settled_is_noop() -> None:
    engine = _engine()
    engine.on_reset_timer_fired(100.0)
    assert engine.phase is Phase.IDLE

    engine.on_observation(_obs(0.0, 0.995))
    engine.on_reset_timer_fired(100.0)
    assert engine.phase is Phase.PENDING


def test_detection_after_reset_settles_again_and_rearms(scheduler) -> None:
    engine = _engine(scheduler)
    engine.on_observation(_obs(0.0, 0.995))
    engine.on_observation(_obs(2.0, 0.995))
    engine.on_reset_timer_fired(32.0)

    assert engine.on_observation(_obs(40.0, 0.995, label="B")) is None
    event = engine.on_observation(_obs(42.0, 0.997, label="B"))

    assert event == RecognizedEvent(label="B", confidence=0.997, settled_at=42.0)
    assert scheduler.armed == [30.0, 30.0]


@pytest.mark.parametrize("policy", [LabelPolicy.RESTART, LabelPolicy.ABANDON])
def test_flickering_labels_never_settle(policy: LabelPolicy) -> None:
    engine = _engine(threshold=0.9, label_policy=policy)

    labels = ["A", "B", "A", "B", "A", "B", "A"]
    events = [engine.on_observation(_obs(i * 1.5, 0.95, label)) for i, label in enumerate(labels)]

    assert events == [None] * len(labels)
    assert engine.phase is not Phase.SETTLED


def test_restart_policy_starts_new_window_for_new_label() -> None:
    engine = _engine(threshold=0.9, label_policy=LabelPolicy.RESTART)
    engine.on_observation(_obs(0.0, 0.95, "A"))
    engine.on_observation(_obs(1.5, 0.95, "B"))

    assert engine.state.pending_label == "B"
    assert engine.state.pending_since == 1.5
    assert engine.on_observation(_obs(3.0, 0.95, "B")) is None
    event = engine.on_observation(_obs(3.5, 0.95, "B"))
    assert event is not None and event.label == "B"


def test_abandon_policy_drops_candidate_on_label_change() -> None:
    engine = _engine(threshold=0.9, label_policy=LabelPolicy.ABANDON)
    engine.on_observation(_obs(0.0, 0.95, "A"))

    assert engine.on_observation(_obs(1.0, 0.95, "B")) is None
    assert engine.phase is Phase.IDLE


def test_continue_policy_keeps_dwell_window_across_labels() -> None:
    engine = _engine(threshold=0.9, label_policy=LabelPolicy.CONTINUE)

    assert engine.on_observation(_obs(0.0, 0.95, "A")) is None
    assert engine.on_observation(_obs(1.0, 0.95, "B")) is None
    event = engine.on_observation(_obs(2.0, 0.95, "A"))

    assert event == RecognizedEvent(label="A", confidence=0.95, settled_at=2.0)


@pytest.mark.parametrize("conf", [-0.01, 1.01, math.nan, math.inf])
def test_out_of_range_confidence_is_rejected(conf: float) -> None:
    engine = _engine()
    engine.on_observation(_obs(0.0, 0.995))
    before = engine.state

    with pytest.raises(InvalidObservation):
        engine.on_observation(_obs(1.0, conf))

    assert engine.state == before


def test_backwards_timestamp_is_rejected_without_state_change() -> None:
    engine = _engine()
    engine.on_observation(_obs(5.0, 0.995))
    before = engine.state

    with pytest.raises(InvalidObservation):
        engine.on_observation(_obs(4.0, 0.2))

    assert engine.state == before
    assert engine.on_observation(_obs(5.0, 0.995)) is None
    assert engine.on_observation(_obs(7.0, 0.995)) is not None


def test_invalid_observation_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        _engine().on_observation(_obs(0.0, 2.0))


def test_reset_cancels_timer_and_returns_to_idle(scheduler) -> None:
    engine = _engine(scheduler)
    engine.on_observation(_obs(0.0, 0.995))
    engine.on_observation(_obs(2.0, 0.995))

    engine.reset()

    assert engine.phase is Phase.IDLE
    assert engine.state.settled is None
    assert scheduler.cancelled == 1


def test_state_snapshot_is_a_copy() -> None:
    engine = _engine()
    snapshot = engine.state
    snapshot.to_pending("X", 0.0)

    assert engine.phase is Phase.IDLE


@pytest.mark.parametrize("conf", [True, False])
def test_boolean_confidence_is_rejected(conf: bool) -> None:
    with pytest.raises(InvalidObservation):
        _engine().on_observation(_obs(0.0, conf))


@pytest.mark.parametrize("timestamp", [math.inf, -math.inf, math.nan, True])
def test_non_finite_timestamp_does_not_poison_later_frames(timestamp: float) -> None:
    engine = _engine()

    with pytest.raises(InvalidObservation):
        engine.on_observation(_obs(timestamp, 0.995))

    assert engine.phase is Phase.IDLE
    assert engine.on_observation(_obs(10.0, 0.995)) is None
    assert engine.on_observation(_obs(12.0, 0.995)) is not None
