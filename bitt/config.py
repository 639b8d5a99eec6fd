"""Application configuration constants and deployment profiles."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Dict, Mapping, Optional

from bitt.logic.state_machine import LabelPolicy

CONF_THRESHOLD: float = 0.99
DWELL_S: float = 2.0
RESET_INTERVAL_S: float = 30.0
LABEL_POLICY: LabelPolicy = LabelPolicy.RESTART
IDLE_RESULT: str = "0"
SESSION_QUEUE_MAXSIZE: int = 30

WINDOW_NAME: str = "Bitt"
DEBUG_DRAW: bool = True
IMAGE_SIZE: int = 224
MODEL_PATH: str = "assets/model_unquant.tflite"
LABELS_PATH: str = "assets/labels.txt"
PREFERENCES_PATH: str = os.path.join(os.path.expanduser("~"), ".bitt", "preferences.json")

CUE_SAMPLE_RATE: int = 22050
SCANNING_CUE_HZ: float = 660.0
SCANNING_CUE_BEEP_S: float = 0.12
SCANNING_CUE_PERIOD_S: float = 1.5
RECOGNIZED_CUE_HZ: tuple[float, ...] = (880.0, 1320.0)
RECOGNIZED_CUE_NOTE_S: float = 0.15
CUE_VOLUME: float = 0.4

SPEECH_LANGUAGE: str = "es"
SPEECH_RATE: Optional[int] = None
INSTRUCTIONS_TEXT: str = (
    "Para usar la aplicación, coloca el billete frente a la cámara. "
    "Para continuar, presiona en cualquier lugar de la pantalla."
)

ENV_PREFIX = "BITT_"


@dataclass(frozen=True)
class EngineConfig:
    threshold: float = CONF_THRESHOLD
    dwell_s: float = DWELL_S
    reset_interval_s: float = RESET_INTERVAL_S
    label_policy: LabelPolicy = LABEL_POLICY

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError(f"threshold must be within [0, 1], got {self.threshold}")
        if self.dwell_s < 0:
            raise ValueError(f"dwell_s must not be negative, got {self.dwell_s}")
        if self.reset_interval_s <= 0:
            raise ValueError(f"reset_interval_s must be positive, got {self.reset_interval_s}")


@dataclass(frozen=True)
class Deployment:
    name: str
    classes: tuple[str, ...]
    display: Mapping[str, str]
    engine: EngineConfig


_MXN_FULL_DISPLAY: Dict[str, str] = {
    f"{value}{side}": f"{value} pesos"
    for value in ("20", "50", "100", "200", "500")
    for side in ("aa", "ar", "ba", "br")
}
_MXN_FULL_DISPLAY.update({"1000ba": "1000 pesos", "1000br": "1000 pesos"})

DEPLOYMENTS: Dict[str, Deployment] = {
    "mxn_2024": Deployment(
        name="mxn_2024",
        classes=("20ar", "20aa", "20br", "20ba", "50br", "500ba", "500br", "50ba"),
        display={
            "20aa": "20 pesos",
            "20ar": "20 pesos",
            "20ba": "20 pesos",
            "20br": "20 pesos",
            "50ba": "50 pesos",
            "50br": "50 pesos",
            "500ba": "500 pesos",
            "500br": "500 pesos",
        },
        engine=EngineConfig(),
    ),
    "mxn_full": Deployment(
        name="mxn_full",
        classes=tuple(_MXN_FULL_DISPLAY),
        display=_MXN_FULL_DISPLAY,
        engine=EngineConfig(),
    ),
}
DEFAULT_DEPLOYMENT: str = "mxn_2024"


def load_deployment(environ: Mapping[str, str] | None = None) -> Deployment:
    """Resolve the deployment profile and apply BITT_* engine overrides."""

    env = os.environ if environ is None else environ
    name = env.get(f"{ENV_PREFIX}PROFILE", DEFAULT_DEPLOYMENT)
    try:
        deployment = DEPLOYMENTS[name]
    except KeyError:
        known = ", ".join(sorted(DEPLOYMENTS))
        raise ValueError(f"Unknown deployment profile {name!r} (known: {known})") from None
    return replace(deployment, engine=load_engine_config(deployment.engine, env))


def load_engine_config(
    base: EngineConfig | None = None, environ: Mapping[str, str] | None = None
) -> EngineConfig:
    env = os.environ if environ is None else environ
    config = base or EngineConfig()
    overrides: Dict[str, object] = {}
    for field_name, env_name in (
        ("threshold", "CONF_THRESHOLD"),
        ("dwell_s", "DWELL_S"),
        ("reset_interval_s", "RESET_INTERVAL_S"),
    ):
        raw = env.get(f"{ENV_PREFIX}{env_name}")
        if raw is not None:
            try:
                overrides[field_name] = float(raw)
            except ValueError:
                raise ValueError(f"{ENV_PREFIX}{env_name} must be a number, got {raw!r}") from None
    raw_policy = env.get(f"{ENV_PREFIX}LABEL_POLICY")
    if raw_policy is not None:
        try:
            overrides["label_policy"] = LabelPolicy(raw_policy.strip().lower())
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}LABEL_POLICY must be one of "
                             f"{', '.join(p.value for p in LabelPolicy)}, got {raw_policy!r}") from None
    if not overrides:
        return config
    return replace(config, **overrides)


def log_level(environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return env.get(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper()
