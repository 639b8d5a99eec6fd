"""Recognized-class vocabulary and spoken/display names."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Sequence

from bitt.config import IDLE_RESULT, Deployment


def normalize_label(line: str) -> str:
    """Strip the numeric index prefix of a model label line ("0 20ar" -> "20ar")."""
    parts = line.split(maxsplit=1)
    if len(parts) == 2 and parts[0].isdigit():
        return parts[1].strip()
    return line.strip()


class Vocabulary:
    """Ordered class labels (model output order) with a display lookup."""

    def __init__(self, labels: Sequence[str], display: Mapping[str, str]) -> None:
        self._labels: List[str] = [normalize_label(label) for label in labels]
        self._display = dict(display)

    @classmethod
    def from_deployment(cls, deployment: Deployment, labels_path: str | Path | None = None) -> "Vocabulary":
        labels: Sequence[str] = deployment.classes
        if labels_path is not None and Path(labels_path).exists():
            raw = [line.strip() for line in Path(labels_path).read_text(encoding="utf-8").splitlines()]
            labels = [line for line in raw if line]
            missing = set(deployment.classes).difference(normalize_label(line) for line in labels)
            if missing:
                logging.getLogger(__name__).warning(
                    "Labels file %s is missing classes: %s", labels_path, ", ".join(sorted(missing))
                )
        return cls(labels, deployment.display)

    @property
    def labels(self) -> List[str]:
        return list(self._labels)

    def __len__(self) -> int:
        return len(self._labels)

    def label_at(self, index: int) -> str:
        if 0 <= index < len(self._labels):
            return self._labels[index]
        return str(index)

    def display(self, label: str) -> str:
        return self._display.get(normalize_label(label), IDLE_RESULT)
