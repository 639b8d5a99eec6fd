"""Frame-to-observation stream feeding the recognition session."""

from __future__ import annotations

import logging
import time
from typing import Any, Iterator, Protocol, Tuple

from bitt.banknote.classifier import BanknoteClassifier
from bitt.common import ClassifierUnavailable, Observation


class FrameSource(Protocol):
    def read(self) -> Any: ...


def observation_stream(
    camera: FrameSource,
    classifier: BanknoteClassifier,
    max_missed: int = 30,
    retry_delay_s: float = 0.03,
) -> Iterator[Tuple[Any, Observation]]:
    """
    Lazily classify camera frames, yielding ``(frame, observation)`` pairs.

    Infinite and not restartable. A frame the camera fails to deliver is
    retried; after ``max_missed`` misses in a row the camera is considered
    gone and ``ClassifierUnavailable`` is raised. Classifier failures
    propagate unchanged.
    """
    logger = logging.getLogger(__name__)
    missed = 0
    while True:
        frame = camera.read()
        if frame is None:
            missed += 1
            if missed == 1:
                logger.warning("No frame received from camera.")
            if missed >= max_missed:
                raise ClassifierUnavailable(f"camera delivered no frame {missed} times in a row")
            time.sleep(retry_delay_s)
            continue
        missed = 0
        yield frame, classifier.classify(frame)
