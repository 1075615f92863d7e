from __future__ import annotations

import logging
import time
from typing import Any, Optional, Tuple

from vocalnotes.internal_core.errors import CollaboratorFailure, CollaboratorUnavailable

from .base import ExtractionProvider
from .prompt import build_extraction_messages, parse_json_object

logger = logging.getLogger(__name__)


class OpenAIExtractionProvider(ExtractionProvider):
    def __init__(
        self,
        api_key: str,
        *,
        model: str = "gpt-4o-mini",
        max_tokens: int = 2048,
        timeout_sec: Optional[float] = None,
    ) -> None:
        self._api_key = str(api_key or "").strip()
        self._model = model
        self._max_tokens = int(max_tokens)
        self._timeout_sec = timeout_sec

    def name(self) -> str:
        return "openai"

    def availability(self) -> Tuple[bool, str]:
        if not self._api_key:
            return False, "missing OPENAI_API_KEY"
        return True, ""

    def extract(self, transcript: str, current_property: Optional[dict[str, Any]]) -> dict[str, Any]:
        self.ensure_available()
        try:
            from openai import OpenAI
        except ImportError as exc:
            raise CollaboratorUnavailable("OPENAI_IMPORT_FAILED", f"openai import failed: {exc}", self.name()) from exc

        client_kwargs: dict[str, Any] = {"api_key": self._api_key}
        if self._timeout_sec is not None:
            client_kwargs["timeout"] = float(self._timeout_sec)
        client = OpenAI(**client_kwargs)

        started = time.perf_counter()
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=build_extraction_messages(transcript, current_property),
                response_format={"type": "json_object"},
                temperature=0,
                max_tokens=self._max_tokens,
            )
        except Exception as exc:
            raise CollaboratorFailure("OPENAI_EXTRACT_FAILED", str(exc), self.name()) from exc

        content = ""
        if response.choices:
            content = str(response.choices[0].message.content or "")
        logger.info(
            "openai extraction done model=%s chars=%s ms=%.1f",
            self._model,
            len(content),
            (time.perf_counter() - started) * 1000.0,
        )

        payload = parse_json_object(content)
        if payload is None:
            raise CollaboratorFailure("INVALID_JSON", "OpenAI extraction did not return a JSON object.", self.name())
        return payload
