"""Main integration entry point."""

from __future__ import annotations

import logging

import cv2

from bitt.audio_module import CuePlayer
from bitt.banknote.banknote_module import observation_stream
from bitt.banknote.classifier import BanknoteClassifier
from bitt.banknote.vocabulary import Vocabulary
from bitt.camera_module import CameraStream
from bitt.commands import key_to_command
from bitt.common import ClassifierUnavailable
from bitt.config import DEBUG_DRAW, LABELS_PATH, MODEL_PATH, PREFERENCES_PATH, WINDOW_NAME, load_deployment, log_level
from bitt.logic.feedback import FeedbackCoordinator
from bitt.preferences import JsonPreferenceStore, PreferenceGate
from bitt.presentation import ScreenPresenter
from bitt.session import RecognitionSession
from bitt.speech_module import SpeechEngine


def _status_line(session: RecognitionSession, preferences: PreferenceGate, fps: float) -> str:
    prefs = preferences.get()
    state = "paused" if session.paused else session.phase.value
    return (
        f"FPS: {fps:.1f} | {state} | sounds: {'on' if prefs.sounds_enabled else 'off'}"
        f" | flash: {'on' if prefs.flash_enabled else 'off'}"
    )


def main() -> None:
    logging.basicConfig(level=log_level(), format="[%(levelname)s] %(message)s")
    deployment = load_deployment()
    logging.info(
        "Deployment %s: threshold=%.2f dwell=%.1fs reset=%.1fs policy=%s",
        deployment.name,
        deployment.engine.threshold,
        deployment.engine.dwell_s,
        deployment.engine.reset_interval_s,
        deployment.engine.label_policy.value,
    )

    vocabulary = Vocabulary.from_deployment(deployment, LABELS_PATH)
    classifier = BanknoteClassifier(vocabulary, model_path=MODEL_PATH)
    if not classifier.available:
        logging.error("Banknote classifier unavailable: %s", classifier.reason)
        return

    preferences = PreferenceGate(JsonPreferenceStore(PREFERENCES_PATH))
    camera = CameraStream(flash_enabled=lambda: preferences.get().flash_enabled)
    speech = SpeechEngine()
    audio = CuePlayer()
    presenter = ScreenPresenter()
    coordinator = FeedbackCoordinator(audio, speech, preferences, display=vocabulary.display)
    session = RecognitionSession(
        coordinator,
        config=deployment.engine,
        presentation=presenter,
        display=vocabulary.display,
    )

    if DEBUG_DRAW:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)

    session.start()
    try:
        for frame, obs in observation_stream(camera, classifier):
            session.submit(obs)
            if DEBUG_DRAW:
                presenter.draw(frame, _status_line(session, preferences, camera.fps))
                cv2.imshow(WINDOW_NAME, frame)

            command = key_to_command(cv2.waitKey(1) & 0xFF)
            if command == "quit":
                break
            if command == "toggle_sounds":
                preferences.toggle("sounds_enabled")
            elif command == "toggle_flash":
                preferences.toggle("flash_enabled")
                camera.configure()
            elif command == "help":
                session.show_instructions()
            elif command == "continue" and session.paused:
                session.resume()
            elif command == "repeat":
                speech.repeat_last()
    except ClassifierUnavailable as exc:
        logging.error("Recognition stopped: %s", exc)
    finally:
        session.stop()
        preferences.flush(timeout=1.0)
        audio.close()
        speech.shutdown()
        camera.release()
        if DEBUG_DRAW:
            cv2.destroyAllWindows()


if __name__ == "__main__":
    main()
