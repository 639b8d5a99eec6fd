"""Shared dataclasses and errors for observations and recognitions."""

from __future__ import annotations

from dataclasses import dataclass


class BittError(Exception):
    """Base class for recognition errors."""


class InvalidObservation(BittError, ValueError):
    """Observation with out-of-range confidence or a timestamp going backwards."""


class ClassifierUnavailable(BittError, RuntimeError):
    """The banknote classifier could not produce an observation."""


@dataclass(frozen=True)
class Observation:
    label: str
    confidence: float
    timestamp: float


@dataclass(frozen=True)
class RecognizedEvent:
    label: str
    confidence: float
    settled_at: float


@dataclass(frozen=True)
class Preferences:
    sounds_enabled: bool = True
    flash_enabled: bool = True
