"""
Transcription collaborator boundary for vocalnotes.

Design intent:
- Hide provider specifics (OpenAI Whisper API, local whisper.cpp, mock) behind one call.
- Fail before calling when a provider has no credential or binary configured.
- Return plain transcript text; the pipeline owns note state.
"""

from .base import TranscriptionProvider, guess_audio_suffix_from_mime
from .mock import MockTranscriptionProvider
from .openai_whisper import OpenAITranscriptionProvider
from .whisper_cpp import WhisperCppTranscriptionProvider, whisper_cpp_available

__all__ = [
    "TranscriptionProvider",
    "guess_audio_suffix_from_mime",
    "MockTranscriptionProvider",
    "OpenAITranscriptionProvider",
    "WhisperCppTranscriptionProvider",
    "whisper_cpp_available",
]
