from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple

from vocalnotes.internal_core.errors import CollaboratorUnavailable


def guess_audio_suffix_from_mime(mime_type: str | None) -> str:
    mt = str(mime_type or "").strip().lower()
    if "wav" in mt:
        return ".wav"
    if "mpeg" in mt or "mp3" in mt:
        return ".mp3"
    if "mp4" in mt or "m4a" in mt or "aac" in mt:
        return ".m4a"
    if "ogg" in mt:
        return ".ogg"
    if "flac" in mt:
        return ".flac"
    return ".webm"


class TranscriptionProvider(ABC):
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def availability(self) -> Tuple[bool, str]:
        """(configured, reason-if-not) without calling the service."""

    @abstractmethod
    def transcribe(self, audio: bytes, mime_type: str) -> str: ...

    def ensure_available(self) -> None:
        ok, reason = self.availability()
        if not ok:
            raise CollaboratorUnavailable("TRANSCRIBER_UNAVAILABLE", reason, self.name())
