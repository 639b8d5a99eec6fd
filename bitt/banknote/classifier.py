"""TFLite banknote classifier producing per-frame observations."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from bitt.banknote.vocabulary import Vocabulary
from bitt.common import ClassifierUnavailable, Observation
from bitt.config import MODEL_PATH


class BanknoteClassifier:
    """Image classifier over the deployment vocabulary; unavailable until a model loads."""

    def __init__(
        self,
        vocabulary: Vocabulary,
        model_path: str = MODEL_PATH,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._logger = logging.getLogger(__name__)
        self._vocabulary = vocabulary
        self._model_path = Path(model_path)
        self._clock = clock
        self._interpreter = None
        self._input_details = None
        self._output_details = None
        self._reason: Optional[str] = None

        tflite = self._load_tflite_runtime()
        if tflite is None:
            self._reason = "tflite runtime missing"
            return
        if not self._model_path.exists():
            self._reason = f"model missing: {self._model_path}"
            return
        try:
            self._interpreter = tflite.Interpreter(model_path=str(self._model_path))
            self._interpreter.allocate_tensors()
            self._input_details = self._interpreter.get_input_details()
            self._output_details = self._interpreter.get_output_details()
            output_shape = self._output_details[0].get("shape")
            if output_shape is not None and len(output_shape) > 0 and int(output_shape[-1]) != len(vocabulary):
                self._logger.warning(
                    "Label count (%s) does not match model output (%s).",
                    len(vocabulary),
                    output_shape[-1],
                )
        except (RuntimeError, ValueError, OSError) as exc:
            self._reason = f"tflite init failed: {exc}"
            self._interpreter = None

    @property
    def available(self) -> bool:
        return self._interpreter is not None

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def classify(self, frame) -> Observation:
        """Top-1 label and confidence for one frame, stamped with the monotonic clock."""
        if self._interpreter is None or self._input_details is None or self._output_details is None:
            raise ClassifierUnavailable(self._reason or "tflite unavailable")

        timestamp = self._clock()
        try:
            input_data = self._preprocess(frame)
            self._interpreter.set_tensor(self._input_details[0]["index"], input_data)
            self._interpreter.invoke()
            output = self._interpreter.get_tensor(self._output_details[0]["index"])
        except (RuntimeError, ValueError) as exc:
            raise ClassifierUnavailable(f"tflite inference failed: {exc}") from exc

        scores = self._dequantize(output[0])
        label_idx = int(np.argmax(scores))
        conf = float(np.clip(scores[label_idx], 0.0, 1.0))
        return Observation(label=self._vocabulary.label_at(label_idx), confidence=conf, timestamp=timestamp)

    def _dequantize(self, scores: np.ndarray) -> np.ndarray:
        out_scale, out_zero = self._output_details[0].get("quantization", (0.0, 0))
        if out_scale > 0:
            return (scores.astype(np.float32) - out_zero) * out_scale
        return scores.astype(np.float32)

    def _load_tflite_runtime(self):
        try:
            import tflite_runtime.interpreter as tflite

            return tflite
        except ImportError:
            try:
                import tensorflow.lite as tflite

                return tflite
            except ImportError:
                return None

    def _preprocess(self, frame) -> np.ndarray:
        input_info = self._input_details[0]
        shape = input_info["shape"]
        dtype = input_info["dtype"]
        height, width = int(shape[1]), int(shape[2])

        import cv2

        resized = cv2.resize(frame, (width, height))
        rgb = cv2.cvtColor(resized, cv2.COLOR_BGR2RGB)
        data = np.expand_dims(rgb, axis=0).astype(np.float32)

        if dtype in (np.float32, np.float16):
            data = data / 255.0
        else:
            scale, zero = input_info.get("quantization", (0.0, 0))
            if scale > 0:
                data = data / scale + zero
        return data.astype(dtype)
