from __future__ import annotations
import logging
import platform
import queue
import subprocess
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class TTSEngine:
    """Speaks queued text on a background thread (macOS `say`, pyttsx3 elsewhere)."""

    def __init__(self, prefer_mac_say: bool = True, rate: int = 180):
        self.prefer_mac_say = prefer_mac_say and platform.system() == "Darwin"
        self.rate = rate
        self.q: "queue.Queue[str]" = queue.Queue()
        self._stop = threading.Event()
        self._pyttsx3 = None
        self._speaking = False
        self.worker = threading.Thread(target=self._run, daemon=True)
        self.worker.start()

    def _ensure_pyttsx3(self):
        if self._pyttsx3 is None:
            import pyttsx3  # lazy import
            self._pyttsx3 = pyttsx3.init()
            self._pyttsx3.setProperty("rate", self.rate)

    def _speak(self, text: str):
        if self.prefer_mac_say:
            subprocess.run(["say", text], check=False)
        else:
            self._ensure_pyttsx3()
            self._pyttsx3.say(text)
            self._pyttsx3.runAndWait()

    def _run(self):
        while not self._stop.is_set():
            try:
                text = self.q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                if text:
                    self._speaking = True
                    self._speak(text)
            except (OSError, RuntimeError, ImportError) as e:
                logger.warning("tts failed for %r: %s", text, e)
            finally:
                self._speaking = False
                self.q.task_done()

    def is_speaking(self) -> bool:
        return bool(self._speaking or not self.q.empty())

    def say(self, text: str):
        if not text:
            return
        # only the latest count matters; drop anything still waiting
        self._drain()
        self.q.put(text)

    def speak_count(self, count: int):
        self.say(str(count))

    def _drain(self):
        while True:
            try:
                self.q.get_nowait()
            except queue.Empty:
                return
            self.q.task_done()

    def shutdown(self, timeout: Optional[float] = 1.0):
        self._stop.set()
        self.worker.join(timeout=timeout)
