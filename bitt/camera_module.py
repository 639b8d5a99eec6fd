"""Camera capture with a preference-driven torch."""

from __future__ import annotations

import logging
import sys
import time
from typing import Any, Callable, Iterable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np

Frame = "np.ndarray" if TYPE_CHECKING else Any


class CameraStream:
    """
    OpenCV capture used as the frame source of the recognition loop.

    ``flash_enabled`` is read whenever the capture is (re)configured. OpenCV
    has no portable torch control, so the torch is driven through
    ``torch_prop`` (a ``cv2.CAP_PROP_*`` id the device maps to its LED) when
    one is given; otherwise the requested state is only logged.
    """

    def __init__(
        self,
        camera_index: int = 0,
        flash_enabled: Callable[[], bool] | None = None,
        torch_prop: int | None = None,
        backend: int | None = None,
        fallback_indices: Iterable[int] = (1, 2, 3),
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._cv2 = None
        self._cap = None
        self._flash_enabled = flash_enabled
        self._torch_prop = torch_prop
        self._torch: Optional[bool] = None
        self._backend = backend
        self._fps = 0.0
        self._last_ts = time.monotonic()

        try:
            import cv2
        except ImportError as exc:
            self._logger.error("OpenCV not available: %s", exc)
            return

        self._cv2 = cv2
        if self._backend is None and sys.platform == "darwin":
            self._backend = cv2.CAP_AVFOUNDATION
        for idx in [camera_index] + [i for i in fallback_indices if i != camera_index]:
            cap = cv2.VideoCapture(idx, self._backend) if self._backend is not None else cv2.VideoCapture(idx)
            if cap.isOpened():
                self._cap = cap
                self._logger.info("Camera opened at index %s", idx)
                break
            cap.release()
        if self._cap is None:
            self._logger.error("No camera found. Try a different index or check permissions.")
            return
        self.configure()

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def torch(self) -> Optional[bool]:
        return self._torch

    def configure(self) -> None:
        """Re-apply capture parameters, including the torch preference."""
        wanted = self._flash_enabled() if self._flash_enabled is not None else False
        if wanted == self._torch:
            return
        self._torch = wanted
        if self._cap is None or self._torch_prop is None:
            self._logger.info("Torch %s (no torch control on this camera)", "on" if wanted else "off")
            return
        if not self._cap.set(self._torch_prop, 1.0 if wanted else 0.0):
            self._logger.warning("Camera rejected torch %s", "on" if wanted else "off")
        else:
            self._logger.info("Torch %s", "on" if wanted else "off")

    def read(self) -> Optional[Frame]:
        if self._cap is None or not self._cap.isOpened():
            return None
        ok, frame = self._cap.read()
        if not ok or frame is None:
            return None
        now = time.monotonic()
        dt = now - self._last_ts
        if dt > 0:
            self._fps = 1.0 / dt if self._fps == 0.0 else self._fps * 0.9 + (1.0 / dt) * 0.1
        self._last_ts = now
        return frame

    def release(self) -> None:
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
