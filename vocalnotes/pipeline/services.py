from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from vocalnotes.extraction import (
    ExtractionProvider,
    LlamaCppExtractionProvider,
    MockExtractionProvider,
    OpenAIExtractionProvider,
)
from vocalnotes.internal_core.config import ServiceConfig, load_config
from vocalnotes.internal_core.fanout import FanoutHub
from vocalnotes.internal_core.record_store import InMemoryRecordStore
from vocalnotes.transcription import (
    MockTranscriptionProvider,
    OpenAITranscriptionProvider,
    TranscriptionProvider,
    WhisperCppTranscriptionProvider,
)

from .orchestrator import NotePipeline

logger = logging.getLogger(__name__)


def build_transcriber(config: ServiceConfig) -> TranscriptionProvider:
    provider = config.VOCALNOTES_TRANSCRIBE_PROVIDER.strip().lower()
    if provider == "openai":
        return OpenAITranscriptionProvider(
            config.OPENAI_API_KEY,
            model=config.VOCALNOTES_TRANSCRIBE_MODEL,
            language=config.VOCALNOTES_TRANSCRIBE_LANGUAGE,
            timeout_sec=config.VOCALNOTES_OPENAI_TIMEOUT_SEC,
        )
    if provider == "whisper_cpp":
        return WhisperCppTranscriptionProvider(
            config.VOCALNOTES_WHISPER_CPP_BIN,
            config.VOCALNOTES_WHISPER_CPP_MODEL,
            language=config.VOCALNOTES_TRANSCRIBE_LANGUAGE,
            no_gpu=config.VOCALNOTES_WHISPER_CPP_NO_GPU,
            timeout_sec=config.VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC,
        )
    if provider == "mock":
        return MockTranscriptionProvider()
    raise ValueError(f"Unsupported VOCALNOTES_TRANSCRIBE_PROVIDER: '{provider}'")


def build_extractor(config: ServiceConfig) -> ExtractionProvider:
    provider = config.VOCALNOTES_EXTRACT_PROVIDER.strip().lower()
    if provider == "openai":
        return OpenAIExtractionProvider(
            config.OPENAI_API_KEY,
            model=config.VOCALNOTES_EXTRACT_MODEL,
            max_tokens=config.VOCALNOTES_LLM_MAX_TOKENS,
            timeout_sec=config.VOCALNOTES_OPENAI_TIMEOUT_SEC,
        )
    if provider == "llama_cpp":
        return LlamaCppExtractionProvider(
            config.VOCALNOTES_LLAMA_CPP_MODEL,
            n_ctx=config.VOCALNOTES_LLAMA_CPP_N_CTX,
            n_gpu_layers=config.VOCALNOTES_LLAMA_CPP_N_GPU_LAYERS,
            chat_format=config.VOCALNOTES_LLAMA_CPP_CHAT_FORMAT,
            max_tokens=config.VOCALNOTES_LLM_MAX_TOKENS,
        )
    if provider == "mock":
        return MockExtractionProvider()
    raise ValueError(f"Unsupported VOCALNOTES_EXTRACT_PROVIDER: '{provider}'")


@dataclass
class VocalNotesServices:
    """Everything one running instance owns; no module-level state."""

    config: ServiceConfig
    store: InMemoryRecordStore
    hub: FanoutHub
    pipeline: NotePipeline


def build_services(
    config: Optional[ServiceConfig] = None,
    *,
    transcriber: Optional[TranscriptionProvider] = None,
    extractor: Optional[ExtractionProvider] = None,
) -> VocalNotesServices:
    cfg = config or load_config()
    store = InMemoryRecordStore()
    hub = FanoutHub()
    transcriber = transcriber or build_transcriber(cfg)
    extractor = extractor or build_extractor(cfg)
    pipeline = NotePipeline(
        store,
        hub,
        transcriber,
        extractor,
        max_upload_bytes=cfg.VOCALNOTES_MAX_UPLOAD_BYTES,
    )
    logger.info(
        "services ready transcriber=%s available=%s extractor=%s available=%s",
        transcriber.name(),
        transcriber.availability()[0],
        extractor.name(),
        extractor.availability()[0],
    )
    return VocalNotesServices(config=cfg, store=store, hub=hub, pipeline=pipeline)
