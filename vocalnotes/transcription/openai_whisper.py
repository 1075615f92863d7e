from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from vocalnotes.internal_core.errors import CollaboratorFailure, CollaboratorUnavailable

from .base import TranscriptionProvider, guess_audio_suffix_from_mime

logger = logging.getLogger(__name__)


class OpenAITranscriptionProvider(TranscriptionProvider):
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "whisper-1",
        language: str = "",
        timeout_sec: Optional[float] = None,
    ) -> None:
        self._api_key = str(api_key or "").strip()
        self._model = model
        self._language = str(language or "").strip()
        self._timeout_sec = timeout_sec

    def name(self) -> str:
        return "openai"

    def availability(self) -> Tuple[bool, str]:
        if not self._api_key:
            return False, "missing OPENAI_API_KEY"
        return True, ""

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        self.ensure_available()
        try:
            from openai import OpenAI
        except ImportError as exc:
            raise CollaboratorUnavailable("OPENAI_IMPORT_FAILED", f"openai import failed: {exc}", self.name()) from exc

        client_kwargs: dict[str, Any] = {"api_key": self._api_key}
        if self._timeout_sec is not None:
            client_kwargs["timeout"] = float(self._timeout_sec)
        client = OpenAI(**client_kwargs)

        request: dict[str, Any] = {
            "model": self._model,
            "file": (f"audio{guess_audio_suffix_from_mime(mime_type)}", audio, mime_type or "application/octet-stream"),
            "response_format": "text",
        }
        if self._language:
            request["language"] = self._language

        logger.info("openai transcription start model=%s bytes=%s mime=%s", self._model, len(audio), mime_type)
        try:
            result = client.audio.transcriptions.create(**request)
        except Exception as exc:
            raise CollaboratorFailure("OPENAI_TRANSCRIBE_FAILED", str(exc), self.name()) from exc

        text = result if isinstance(result, str) else getattr(result, "text", "")
        text = " ".join(str(text or "").split()).strip()
        if not text:
            raise CollaboratorFailure("EMPTY_TRANSCRIPT", "OpenAI returned an empty transcript.", self.name())
        return text
