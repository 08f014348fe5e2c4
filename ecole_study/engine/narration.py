# ecole_study/engine/narration.py
"""
Narration state machine and the controller that owns the speech session.

The narrator capability passed to the controller must provide:
    available: bool
    speak(text, config, on_end, on_error)
    pause(), resume(), cancel()
Only one capability instance exists per process, so cancelling before every
start keeps at most one utterance audible even across controllers.
"""
from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, replace
from typing import Optional

from ecole_study.domain.enums import NarrationEvent, NarrationStatus
from ecole_study.domain.models import NarrationState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NarrationConfig:
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    language: str = "fr-FR"

    @staticmethod
    def from_env() -> "NarrationConfig":
        return NarrationConfig(
            rate=float(os.environ.get("ECOLE_TTS_RATE", "1.0")),
            pitch=float(os.environ.get("ECOLE_TTS_PITCH", "1.0")),
            volume=float(os.environ.get("ECOLE_TTS_VOLUME", "1.0")),
            language=os.environ.get("ECOLE_TTS_LANGUAGE", "fr-FR").strip() or "fr-FR",
        )


def next_state(state: NarrationState, event: NarrationEvent, text: Optional[str] = None) -> NarrationState:
    """Pure transition function; events that do not apply leave the state as is."""
    if event == NarrationEvent.SPEAK:
        return NarrationState(status=NarrationStatus.SPEAKING, active_text=text)

    if event == NarrationEvent.PAUSE:
        if state.status == NarrationStatus.SPEAKING:
            return replace(state, status=NarrationStatus.PAUSED)
        return state

    if event == NarrationEvent.RESUME:
        if state.status == NarrationStatus.PAUSED:
            return replace(state, status=NarrationStatus.SPEAKING)
        return state

    # stop, end, error
    return NarrationState()


class NarrationController:
    def __init__(self, narrator, config: Optional[NarrationConfig] = None):
        self._narrator = narrator
        self.config = config or NarrationConfig()
        self.state = NarrationState()
        self._utterance = 0
        self._disabled = False
        # callbacks may arrive from the narrator's worker thread
        self._lock = threading.RLock()

    @property
    def status(self) -> NarrationStatus:
        return self.state.status

    @property
    def active_text(self) -> Optional[str]:
        return self.state.active_text

    @property
    def available(self) -> bool:
        if self._disabled or self._narrator is None:
            return False
        return bool(getattr(self._narrator, "available", False))

    def speak(self, text: str):
        """Cancels whatever is playing, then reads `text`. Empty text only stops."""
        if not text:
            self.stop()
            return
        with self._lock:
            if not self.available:
                return
            try:
                self._narrator.cancel()
                self._utterance += 1
                token = self._utterance
                self.state = next_state(self.state, NarrationEvent.SPEAK, text)
                self._narrator.speak(
                    text,
                    self.config,
                    on_end=lambda: self._finish(token, NarrationEvent.END),
                    on_error=lambda err=None: self._finish(token, NarrationEvent.ERROR, err),
                )
            except Exception as e:
                self._degrade(e)

    def pause(self):
        with self._lock:
            if self.state.status != NarrationStatus.SPEAKING:
                return
            try:
                self._narrator.pause()
            except Exception as e:
                self._degrade(e)
                return
            self.state = next_state(self.state, NarrationEvent.PAUSE)

    def resume(self):
        with self._lock:
            if self.state.status != NarrationStatus.PAUSED:
                return
            try:
                self._narrator.resume()
            except Exception as e:
                self._degrade(e)
                return
            self.state = next_state(self.state, NarrationEvent.RESUME)

    def stop(self):
        with self._lock:
            # bump first so the cancelled utterance's callbacks are ignored
            self._utterance += 1
            if self.available:
                try:
                    self._narrator.cancel()
                except Exception as e:
                    self._degrade(e)
            self.state = next_state(self.state, NarrationEvent.STOP)

    def toggle(self, text: str):
        """Play/pause button: start, pause or resume depending on the status."""
        with self._lock:
            if self.state.status == NarrationStatus.SPEAKING:
                self.pause()
            elif self.state.status == NarrationStatus.PAUSED and self.state.active_text == text:
                self.resume()
            else:
                self.speak(text)

    def close(self):
        self.stop()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
        return False

    def _finish(self, token: int, event: NarrationEvent, err=None):
        with self._lock:
            if token != self._utterance:
                return
            if event == NarrationEvent.ERROR and err:
                logger.info(f"[AUDIO] Lecture interrompue: {err}")
            self.state = next_state(self.state, event)

    def _degrade(self, err: Exception):
        logger.warning(f"[AUDIO] Narrateur désactivé: {err}")
        self._disabled = True
        self._utterance += 1
        self.state = NarrationState()
