from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


def _project_root() -> Path:
    # vocalnotes/internal_core/config.py -> vocalnotes -> project
    return Path(__file__).resolve().parents[2]


def _resolve_existing_path_or_empty(candidates: list[Path]) -> str:
    for candidate in candidates:
        try:
            resolved = candidate.expanduser().resolve()
        except OSError:
            continue
        if resolved.exists():
            return str(resolved)
    return ""


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _getenv_opt_float(name: str) -> Optional[float]:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    return float(value)


def _getenv_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


@dataclass(frozen=True)
class ServiceConfig:
    OPENAI_API_KEY: str
    VOCALNOTES_TRANSCRIBE_PROVIDER: str
    VOCALNOTES_TRANSCRIBE_MODEL: str
    VOCALNOTES_TRANSCRIBE_LANGUAGE: str
    VOCALNOTES_WHISPER_CPP_BIN: str
    VOCALNOTES_WHISPER_CPP_MODEL: str
    VOCALNOTES_WHISPER_CPP_NO_GPU: bool
    VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC: Optional[float]
    VOCALNOTES_EXTRACT_PROVIDER: str
    VOCALNOTES_EXTRACT_MODEL: str
    VOCALNOTES_LLAMA_CPP_MODEL: str
    VOCALNOTES_LLAMA_CPP_N_CTX: int
    VOCALNOTES_LLAMA_CPP_N_GPU_LAYERS: int
    VOCALNOTES_LLAMA_CPP_CHAT_FORMAT: str
    VOCALNOTES_LLM_MAX_TOKENS: int
    VOCALNOTES_OPENAI_TIMEOUT_SEC: Optional[float]
    VOCALNOTES_SSE_KEEPALIVE_SEC: float
    VOCALNOTES_SSE_MAX_LIFETIME_SEC: float
    VOCALNOTES_SSE_MAX_PENDING: int
    VOCALNOTES_MAX_UPLOAD_BYTES: int
    VOCALNOTES_LOG_LEVEL: str

    @property
    def openai_configured(self) -> bool:
        return bool(self.OPENAI_API_KEY.strip())


def load_config() -> ServiceConfig:
    project_root = _project_root()
    model_prefixes = [project_root, project_root / "models", project_root.parent]

    default_whisper_bin = _resolve_existing_path_or_empty(
        [base / "whisper.cpp" / "build" / "bin" / "whisper-cli" for base in model_prefixes]
    )
    default_whisper_model = _resolve_existing_path_or_empty(
        [base / "whisper.cpp" / "models" / "ggml-small.bin" for base in model_prefixes]
        + [base / "ggml-small.bin" for base in model_prefixes]
    )

    return ServiceConfig(
        OPENAI_API_KEY=_getenv_str("OPENAI_API_KEY", ""),
        VOCALNOTES_TRANSCRIBE_PROVIDER=_getenv_str("VOCALNOTES_TRANSCRIBE_PROVIDER", "openai"),
        VOCALNOTES_TRANSCRIBE_MODEL=_getenv_str("VOCALNOTES_TRANSCRIBE_MODEL", "whisper-1"),
        VOCALNOTES_TRANSCRIBE_LANGUAGE=_getenv_str("VOCALNOTES_TRANSCRIBE_LANGUAGE", ""),
        VOCALNOTES_WHISPER_CPP_BIN=_getenv_str("VOCALNOTES_WHISPER_CPP_BIN", default_whisper_bin),
        VOCALNOTES_WHISPER_CPP_MODEL=_getenv_str("VOCALNOTES_WHISPER_CPP_MODEL", default_whisper_model),
        VOCALNOTES_WHISPER_CPP_NO_GPU=_getenv_bool("VOCALNOTES_WHISPER_CPP_NO_GPU", False),
        VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC=_getenv_opt_float("VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC"),
        VOCALNOTES_EXTRACT_PROVIDER=_getenv_str("VOCALNOTES_EXTRACT_PROVIDER", "openai"),
        VOCALNOTES_EXTRACT_MODEL=_getenv_str("VOCALNOTES_EXTRACT_MODEL", "gpt-4o-mini"),
        VOCALNOTES_LLAMA_CPP_MODEL=_getenv_str("VOCALNOTES_LLAMA_CPP_MODEL", ""),
        VOCALNOTES_LLAMA_CPP_N_CTX=_getenv_int("VOCALNOTES_LLAMA_CPP_N_CTX", 8192),
        VOCALNOTES_LLAMA_CPP_N_GPU_LAYERS=_getenv_int("VOCALNOTES_LLAMA_CPP_N_GPU_LAYERS", -1),
        VOCALNOTES_LLAMA_CPP_CHAT_FORMAT=_getenv_str("VOCALNOTES_LLAMA_CPP_CHAT_FORMAT", ""),
        VOCALNOTES_LLM_MAX_TOKENS=_getenv_int("VOCALNOTES_LLM_MAX_TOKENS", 2048),
        VOCALNOTES_OPENAI_TIMEOUT_SEC=_getenv_opt_float("VOCALNOTES_OPENAI_TIMEOUT_SEC"),
        VOCALNOTES_SSE_KEEPALIVE_SEC=_getenv_float("VOCALNOTES_SSE_KEEPALIVE_SEC", 30.0),
        VOCALNOTES_SSE_MAX_LIFETIME_SEC=_getenv_float("VOCALNOTES_SSE_MAX_LIFETIME_SEC", 30 * 60.0),
        VOCALNOTES_SSE_MAX_PENDING=_getenv_int("VOCALNOTES_SSE_MAX_PENDING", 100),
        VOCALNOTES_MAX_UPLOAD_BYTES=_getenv_int("VOCALNOTES_MAX_UPLOAD_BYTES", 25 * 1024 * 1024),
        VOCALNOTES_LOG_LEVEL=_getenv_str("VOCALNOTES_LOG_LEVEL", "INFO"),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a single stdout handler on the root logger."""
    log_level = getattr(logging, str(level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    logging.getLogger("vocalnotes").setLevel(log_level)
    # Client libraries log every request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)
