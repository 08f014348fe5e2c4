# ecole_study/voice_narrator.py
"""
Speech capability backed by Google Cloud TTS, played through the pygame mixer.
Long texts are split into chunks to stay under the 5000 bytes request limit.
"""

import logging
import os
import re
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

# Import Google Cloud TTS
try:
    from google.cloud import texttospeech
except ImportError:
    logger.warning("[AUDIO] google-cloud-texttospeech non installé.")
    texttospeech = None

# Import Pygame
try:
    import pygame
except ImportError:
    logger.warning("[AUDIO] pygame non installé.")
    pygame = None

BASE_DIR = Path(__file__).resolve().parent.parent
CREDENTIALS_FILE = "google_credentials.json"

# Voice per language tag; other languages fall back to Google's default voice
VOICE_MAP = {
    "fr-FR": "fr-FR-Neural2-A",
    "en-US": "en-US-Neural2-C",
    "en-GB": "en-GB-Neural2-A",
    "it-IT": "it-IT-Neural2-A",
}


def _configure_credentials(base_dir: Path = BASE_DIR):
    if os.environ.get("GOOGLE_APPLICATION_CREDENTIALS"):
        return
    path = base_dir / CREDENTIALS_FILE
    if path.exists():
        os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = str(path)
        logger.info(f"[AUDIO] Identifiants trouvés: {path}")


def sanitize_text_for_tts(text: str) -> str:
    """Strips markdown and HTML so they are not read aloud."""
    if not text: return ""
    s = str(text).strip()
    s = s.replace("*", "").replace("_", "").replace("#", "")
    s = re.sub(r"<[^>]+>", " ", s)
    s = re.sub(r"\[(.*?)\]\(.*?\)", r"\1", s)
    return re.sub(r"\s+", " ", s).strip()


def split_text(text: str, max_chars: int = 4000) -> List[str]:
    """Splits text into pieces shorter than max_chars without cutting words."""
    if len(text) <= max_chars:
        return [text]

    chunks = []
    while len(text) > max_chars:
        # last full stop within the limit, then last space
        split_idx = text.rfind('.', 0, max_chars)
        if split_idx == -1:
            split_idx = text.rfind(' ', 0, max_chars)
        if split_idx == -1:
            split_idx = max_chars - 1

        chunks.append(text[:split_idx + 1].strip())
        text = text[split_idx + 1:].strip()

    if text:
        chunks.append(text)
    return chunks


def google_pitch(pitch: float) -> float:
    """Maps a 0..2 pitch (1 = normal) onto Google's -20..20 semitones."""
    return max(-20.0, min(20.0, (pitch - 1.0) * 20.0))


def google_rate(rate: float) -> float:
    return max(0.25, min(4.0, rate))


class GoogleTTSNarrator:
    def __init__(self):
        self.available = False
        self._client = None
        self._mixer_lock = threading.Lock()
        self._paused = threading.Event()
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._init()

    def _init(self):
        if not texttospeech or not pygame:
            return
        _configure_credentials()
        try:
            pygame.mixer.init()
            self._client = texttospeech.TextToSpeechClient()
            self.available = True
            logger.info("[AUDIO] Narrateur Google initialisé.")
        except Exception as e:
            logger.warning(f"[AUDIO] Narrateur indisponible: {e}")

    def speak(self, text: str, config, on_end: Callable[[], None], on_error: Callable[..., None]):
        if not self.available: return
        self.cancel()
        stop_event = threading.Event()
        self._stop_event = stop_event
        self._paused.clear()
        self._thread = threading.Thread(
            target=self._playback_worker,
            args=(text, config, stop_event, on_end, on_error),
            daemon=True,
        )
        self._thread.start()

    def pause(self):
        if not self.available: return
        with self._mixer_lock:
            pygame.mixer.music.pause()
        self._paused.set()

    def resume(self):
        if not self.available: return
        with self._mixer_lock:
            pygame.mixer.music.unpause()
        self._paused.clear()

    def cancel(self):
        if self._stop_event is not None:
            self._stop_event.set()
        self._paused.clear()
        if not self.available or not pygame.mixer.get_init(): return
        with self._mixer_lock:
            pygame.mixer.music.stop()
            pygame.mixer.music.unload()

    def shutdown(self):
        self.cancel()
        if self.available:
            pygame.mixer.quit()
            self.available = False

    def _synthesize(self, text: str, out_path: str, config):
        voice_args = {"language_code": config.language}
        if config.language in VOICE_MAP:
            voice_args["name"] = VOICE_MAP[config.language]
        response = self._client.synthesize_speech(
            input=texttospeech.SynthesisInput(text=text),
            voice=texttospeech.VoiceSelectionParams(**voice_args),
            audio_config=texttospeech.AudioConfig(
                audio_encoding=texttospeech.AudioEncoding.MP3,
                speaking_rate=google_rate(config.rate),
                pitch=google_pitch(config.pitch),
            ),
        )
        with open(out_path, "wb") as out:
            out.write(response.audio_content)

    def _playback_worker(self, text, config, stop_event, on_end, on_error):
        try:
            clean_text = sanitize_text_for_tts(text)
            for i, chunk in enumerate(split_text(clean_text) if clean_text else []):
                if stop_event.is_set(): break

                temp_path = os.path.join(tempfile.gettempdir(), f"ecole_voice_{uuid.uuid4().hex}_{i}.mp3")
                try:
                    self._synthesize(chunk, temp_path, config)
                    with self._mixer_lock:
                        if stop_event.is_set(): break
                        pygame.mixer.music.load(temp_path)
                        pygame.mixer.music.set_volume(max(0.0, min(1.0, config.volume)))
                        pygame.mixer.music.play()
                        if self._paused.is_set():
                            pygame.mixer.music.pause()

                    clock = pygame.time.Clock()
                    # a paused track reports not busy
                    while not stop_event.is_set() and (pygame.mixer.music.get_busy() or self._paused.is_set()):
                        clock.tick(10)

                    if not stop_event.is_set():
                        with self._mixer_lock:
                            pygame.mixer.music.unload()
                finally:
                    _remove_quietly(temp_path)
        except Exception as e:
            logger.warning(f"[AUDIO] Erreur de lecture: {e}")
            on_error(e)
            return

        if stop_event.is_set():
            on_error("interrupted")
        else:
            on_end()


def _remove_quietly(path: str):
    if not os.path.exists(path): return
    try:
        os.remove(path)
    except OSError as e:
        logger.debug(f"[AUDIO] Fichier temporaire conservé {path}: {e}")
