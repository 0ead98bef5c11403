from __future__ import annotations

import importlib.util
import logging
import os
import shutil
import subprocess
import sys
import time
from pathlib import Path

logger = logging.getLogger(__name__)

SPEECH_RATE_WPM = 158


class OfflineTtsAnnouncer:
    """Best-effort offline TTS via isolated subprocesses.

    Each ``announce()`` cancels whatever is still being spoken, so only the
    current trial's letter is ever heard. ``update()`` must be called from the
    host loop to launch and reap speech processes.
    """

    _max_utterance_s = 4.0

    def __init__(self) -> None:
        self._enabled = False
        self._backends: list[str] = []
        self._backend: str | None = None
        self._pending: str | None = None
        self._active_proc: subprocess.Popen[bytes] | None = None
        self._active_started_s = 0.0

        if os.environ.get("DUAL_NBACK_DISABLE_TTS", "0") == "1":
            return
        if os.environ.get("SDL_AUDIODRIVER", "").strip().lower() == "dummy":
            # Keep automated/headless runs silent and stable.
            return

        self._backends = self._resolve_backends()
        self._backend = self._backends[0] if self._backends else None
        self._enabled = self._backend is not None
        if self._enabled:
            logger.info("Speech backend: %s", self._backend)
        else:
            logger.info("No speech backend available; letters will not be spoken")

    @property
    def enabled(self) -> bool:
        return bool(self._enabled)

    @property
    def backend(self) -> str | None:
        return self._backend

    def announce(self, letter: str) -> None:
        if not self._enabled:
            return
        phrase = str(letter).strip()
        if phrase == "":
            return
        self._cancel_active()
        self._pending = phrase

    def update(self) -> None:
        if not self._enabled:
            return

        proc = self._active_proc
        if proc is not None:
            if proc.poll() is None:
                if (time.monotonic() - self._active_started_s) > self._max_utterance_s:
                    self._cancel_active()
            else:
                self._active_proc = None

        if self._active_proc is not None or self._pending is None:
            return

        while self._pending is not None and self._enabled:
            launched = self._launch_process(self._pending)
            if launched is not None:
                self._pending = None
                self._active_proc = launched
                self._active_started_s = time.monotonic()
                return
            self._drop_current_backend()

        if not self._enabled:
            self._pending = None

    def stop(self) -> None:
        self._pending = None
        self._cancel_active()

    def _cancel_active(self) -> None:
        proc = self._active_proc
        self._active_proc = None
        if proc is not None:
            self._terminate_process(proc)

    @staticmethod
    def _terminate_process(proc: subprocess.Popen[bytes]) -> None:
        try:
            proc.terminate()
        except OSError:
            return
        try:
            proc.wait(timeout=0.5)
        except subprocess.TimeoutExpired:
            try:
                proc.kill()
            except OSError:
                pass

    @staticmethod
    def _resolve_backends() -> list[str]:
        supported = ("pyttsx3-subprocess", "say", "powershell", "espeak")
        forced = os.environ.get("DUAL_NBACK_TTS_BACKEND", "").strip().lower()
        if forced in supported and OfflineTtsAnnouncer._backend_available(forced):
            return [forced]

        candidates: list[str] = []
        if sys.platform == "darwin":
            candidates.append("say")
        if os.name == "nt":
            candidates.append("powershell")
        candidates.extend(("pyttsx3-subprocess", "espeak"))

        resolved: list[str] = []
        for name in candidates:
            if name not in resolved and OfflineTtsAnnouncer._backend_available(name):
                resolved.append(name)
        return resolved

    @staticmethod
    def _backend_available(name: str) -> bool:
        if name == "say":
            return (shutil.which("say") is not None) or Path("/usr/bin/say").exists()
        if name == "powershell":
            return (shutil.which("powershell") is not None) or (shutil.which("pwsh") is not None)
        if name == "pyttsx3-subprocess":
            return importlib.util.find_spec("pyttsx3") is not None
        if name == "espeak":
            return shutil.which("espeak") is not None
        return False

    def _drop_current_backend(self) -> None:
        backend = self._backend
        if backend is None:
            self._enabled = False
            return
        logger.warning("Speech backend %s failed to launch; dropping it", backend)
        self._backends = [name for name in self._backends if name != backend]
        self._backend = self._backends[0] if self._backends else None
        self._enabled = self._backend is not None

    def _command(self, text: str) -> list[str] | None:
        backend = self._backend
        rate = str(SPEECH_RATE_WPM)
        if backend == "pyttsx3-subprocess":
            script = (
                "import sys\n"
                "txt=' '.join(sys.argv[1:]).strip()\n"
                "import pyttsx3\n"
                "e=pyttsx3.init()\n"
                f"e.setProperty('rate', {SPEECH_RATE_WPM})\n"
                "e.say(txt)\n"
                "e.runAndWait()\n"
            )
            return [sys.executable, "-c", script, text]
        if backend == "say":
            return [shutil.which("say") or "/usr/bin/say", "-r", rate, text]
        if backend == "powershell":
            ps_bin = shutil.which("powershell") or shutil.which("pwsh")
            if ps_bin is None:
                return None
            script = (
                "Add-Type -AssemblyName System.Speech; "
                "$s=New-Object System.Speech.Synthesis.SpeechSynthesizer; "
                "$s.Rate=-1; "
                "$s.Speak(($args -join ' '));"
            )
            return [ps_bin, "-NoProfile", "-NonInteractive", "-Command", script, text]
        if backend == "espeak":
            return ["espeak", "-s", rate, text]
        return None

    def _launch_process(self, text: str) -> subprocess.Popen[bytes] | None:
        cmd = self._command(text)
        if cmd is None:
            return None
        try:
            return subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError:
            return None
