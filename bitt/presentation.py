"""On-screen result overlay."""

from __future__ import annotations

import logging
import threading
from typing import Any, Tuple

from bitt.config import IDLE_RESULT


def format_confidence(confidence_pct: float) -> str:
    return f"{confidence_pct:.2f}%"


class ScreenPresenter:
    """Presentation sink: keeps the latest result and draws it onto preview frames."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._lock = threading.Lock()
        self._result: Tuple[str, float] = (IDLE_RESULT, 0.0)

    @property
    def result(self) -> Tuple[str, float]:
        with self._lock:
            return self._result

    def on_result(self, label: str, confidence_pct: float) -> None:
        with self._lock:
            self._result = (label, confidence_pct)
        self._logger.info("Result: %s %s", label, format_confidence(confidence_pct))

    def draw(self, frame: Any, status: str = "") -> None:
        import cv2

        label, confidence_pct = self.result
        cv2.putText(frame, label, (10, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.2, (0, 255, 0), 3)
        cv2.putText(
            frame,
            format_confidence(confidence_pct),
            (10, 75),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.7,
            (0, 255, 255),
            2,
        )
        if status:
            cv2.putText(frame, status, (10, 100), cv2.FONT_HERSHEY_SIMPLEX, 0.6, (255, 0, 0), 2)
