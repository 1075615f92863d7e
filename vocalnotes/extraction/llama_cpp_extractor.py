from __future__ import annotations

"""
Local GGUF extraction adapter (llama-cpp-python).

Design intent:
- Run listing extraction fully offline when no API credential is available.
- Load the model once per provider and reuse it across notes.
- Fail closed on malformed model output; the pipeline marks the note as error.
"""

import logging
import os
import threading
import time
from typing import Any, Optional, Tuple

from vocalnotes.internal_core.errors import CollaboratorFailure, CollaboratorUnavailable

from .base import ExtractionProvider
from .prompt import build_extraction_messages, parse_json_object

logger = logging.getLogger(__name__)


class LlamaCppExtractionProvider(ExtractionProvider):
    def __init__(
        self,
        model_path: str,
        *,
        n_ctx: int = 8192,
        n_gpu_layers: int = -1,
        chat_format: str = "",
        max_tokens: int = 2048,
    ) -> None:
        self._model_path = str(model_path or "").strip()
        self._n_ctx = int(n_ctx)
        self._n_gpu_layers = int(n_gpu_layers)
        self._chat_format = str(chat_format or "").strip()
        self._max_tokens = int(max_tokens)
        self._llm: Any = None
        # llama_cpp.Llama is not safe for concurrent calls.
        self._lock = threading.Lock()
        self.last_debug: dict[str, Any] = {}

    def name(self) -> str:
        return "llama_cpp"

    def availability(self) -> Tuple[bool, str]:
        if not self._model_path:
            return False, "missing VOCALNOTES_LLAMA_CPP_MODEL"
        if not os.path.exists(self._model_path):
            return False, f"model file not found: {self._model_path}"
        return True, ""

    def _load(self) -> Tuple[Any, str]:
        if self._llm is not None:
            return self._llm, "cached"
        try:
            from llama_cpp import Llama  # type: ignore
        except ImportError as exc:
            raise CollaboratorUnavailable("LLAMA_CPP_IMPORT_FAILED", f"llama_cpp import failed: {exc}", self.name()) from exc

        llm_kwargs: dict[str, Any] = {
            "model_path": self._model_path,
            "n_ctx": self._n_ctx,
            "n_gpu_layers": self._n_gpu_layers,
            "verbose": False,
        }
        compat_mode = "no_chat_format"
        if self._chat_format:
            llm_kwargs["chat_format"] = self._chat_format
            compat_mode = "constructor_arg"
        try:
            llm = Llama(**llm_kwargs)
        except TypeError as exc:
            if "chat_format" not in str(exc):
                raise CollaboratorFailure("LLAMA_CPP_LOAD_FAILED", str(exc), self.name()) from exc
            llm_kwargs.pop("chat_format", None)
            llm = Llama(**llm_kwargs)
            compat_mode = "constructor_omitted_unsupported"
        except (OSError, ValueError, RuntimeError) as exc:
            raise CollaboratorFailure("LLAMA_CPP_LOAD_FAILED", str(exc), self.name()) from exc
        self._llm = llm
        return llm, compat_mode

    def extract(self, transcript: str, current_property: Optional[dict[str, Any]]) -> dict[str, Any]:
        self.ensure_available()
        messages = build_extraction_messages(transcript, current_property)

        with self._lock:
            llm, chat_format_mode = self._load()
            started = time.perf_counter()
            response_format_mode = "explicit_arg"
            try:
                try:
                    result = llm.create_chat_completion(
                        messages=messages,
                        max_tokens=self._max_tokens,
                        temperature=0.0,
                        response_format={"type": "json_object"},
                    )
                except TypeError as exc:
                    if "response_format" not in str(exc):
                        raise
                    result = llm.create_chat_completion(
                        messages=messages,
                        max_tokens=self._max_tokens,
                        temperature=0.0,
                    )
                    response_format_mode = "omitted_unsupported"
            except Exception as exc:
                raise CollaboratorFailure("LLAMA_CPP_INFERENCE_FAILED", str(exc), self.name()) from exc
            inference_ms = (time.perf_counter() - started) * 1000.0

        try:
            content = str(result["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError) as exc:
            raise CollaboratorFailure("INVALID_RESPONSE", f"Unexpected llama_cpp response: {exc}", self.name()) from exc

        self.last_debug = {
            "model_path": self._model_path,
            "chat_format": self._chat_format,
            "chat_format_compat_mode": chat_format_mode,
            "response_format_compat_mode": response_format_mode,
            "inference_ms": round(inference_ms, 1),
            "output_chars": len(content),
        }
        logger.info("llama_cpp extraction done %s", self.last_debug)

        payload = parse_json_object(content)
        if payload is None:
            raise CollaboratorFailure("INVALID_JSON", "llama_cpp extraction did not return a JSON object.", self.name())
        return payload
