from __future__ import annotations

from typing import Tuple

from .base import TranscriptionProvider


class MockTranscriptionProvider(TranscriptionProvider):
    def __init__(self, transcript: str = "") -> None:
        self._transcript = transcript
        self._counter = 0

    def name(self) -> str:
        return "mock"

    def availability(self) -> Tuple[bool, str]:
        return True, ""

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        self._counter += 1
        if self._transcript:
            return self._transcript
        return f"(mock) simulated transcript for note {self._counter} ({len(audio)} bytes, {mime_type})."
