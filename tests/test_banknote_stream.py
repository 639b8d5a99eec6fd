from __future__ import annotations

import itertools

import pytest

from bitt.banknote.banknote_module import observation_stream
from bitt.banknote.classifier import BanknoteClassifier
from bitt.banknote.vocabulary import Vocabulary
from bitt.common import ClassifierUnavailable, Observation
from bitt.config import DEPLOYMENTS


class FakeCamera:
    def __init__(self, frames) -> None:
        self._frames = iter(frames)

    def read(self):
        return next(self._frames, None)


class FakeClassifier:
    def __init__(self) -> None:
        self.seen = []

    def classify(self, frame) -> Observation:
        self.seen.append(frame)
        return Observation(label=f"f{frame}", confidence=0.5, timestamp=float(frame))


def test_stream_skips_missing_frames() -> None:
    classifier = FakeClassifier()
    stream = observation_stream(FakeCamera([1, None, 2, None, None, 3]), classifier, retry_delay_s=0.0)

    pairs = list(itertools.islice(stream, 3))

    assert [frame for frame, _ in pairs] == [1, 2, 3]
    assert [obs.label for _, obs in pairs] == ["f1", "f2", "f3"]


def test_stream_raises_when_camera_is_gone() -> None:
    stream = observation_stream(FakeCamera([1]), FakeClassifier(), max_missed=3, retry_delay_s=0.0)

    assert next(stream)[0] == 1
    with pytest.raises(ClassifierUnavailable):
        next(stream)


def test_classifier_without_model_is_unavailable(tmp_path) -> None:
    vocabulary = Vocabulary.from_deployment(DEPLOYMENTS["mxn_2024"])
    classifier = BanknoteClassifier(vocabulary, model_path=str(tmp_path / "missing.tflite"))

    assert not classifier.available
    assert classifier.reason
    with pytest.raises(ClassifierUnavailable):
        classifier.classify(object())
