import sys
from types import SimpleNamespace

import pytest

from vocalnotes.internal_core.config import load_config
from vocalnotes.internal_core.errors import CollaboratorFailure, CollaboratorUnavailable
from vocalnotes.pipeline import build_transcriber
from vocalnotes.transcription import (
    MockTranscriptionProvider,
    OpenAITranscriptionProvider,
    WhisperCppTranscriptionProvider,
    guess_audio_suffix_from_mime,
)


def test_guess_audio_suffix_from_mime() -> None:
    assert guess_audio_suffix_from_mime("audio/wav") == ".wav"
    assert guess_audio_suffix_from_mime("audio/mpeg") == ".mp3"
    assert guess_audio_suffix_from_mime("audio/mp4") == ".m4a"
    assert guess_audio_suffix_from_mime("audio/webm;codecs=opus") == ".webm"
    assert guess_audio_suffix_from_mime(None) == ".webm"


def test_mock_transcriber_returns_fixed_transcript() -> None:
    assert MockTranscriptionProvider("hello").transcribe(b"x", "audio/webm") == "hello"


def test_openai_transcriber_unavailable_without_key() -> None:
    provider = OpenAITranscriptionProvider("")

    assert provider.availability() == (False, "missing OPENAI_API_KEY")
    with pytest.raises(CollaboratorUnavailable) as exc_info:
        provider.transcribe(b"x", "audio/webm")
    assert exc_info.value.code == "TRANSCRIBER_UNAVAILABLE"


def test_openai_transcriber_sends_named_file(monkeypatch) -> None:
    captured: dict = {}

    class FakeTranscriptions:
        def create(self, **kwargs):
            captured.update(kwargs)
            return "  Three bedrooms,\n south facing.  "

    class FakeOpenAI:
        def __init__(self, **kwargs) -> None:
            _ = kwargs
            self.audio = SimpleNamespace(transcriptions=FakeTranscriptions())

    monkeypatch.setitem(sys.modules, "openai", SimpleNamespace(OpenAI=FakeOpenAI))

    text = OpenAITranscriptionProvider("sk-test", language="fr").transcribe(b"RIFF", "audio/wav")

    assert text == "Three bedrooms, south facing."
    assert captured["model"] == "whisper-1"
    assert captured["file"] == ("audio.wav", b"RIFF", "audio/wav")
    assert captured["language"] == "fr"


def test_openai_transcriber_wraps_client_errors(monkeypatch) -> None:
    class FakeTranscriptions:
        def create(self, **kwargs):
            _ = kwargs
            raise RuntimeError("rate limited")

    class FakeOpenAI:
        def __init__(self, **kwargs) -> None:
            _ = kwargs
            self.audio = SimpleNamespace(transcriptions=FakeTranscriptions())

    monkeypatch.setitem(sys.modules, "openai", SimpleNamespace(OpenAI=FakeOpenAI))

    with pytest.raises(CollaboratorFailure) as exc_info:
        OpenAITranscriptionProvider("sk-test").transcribe(b"x", "audio/webm")

    assert exc_info.value.code == "OPENAI_TRANSCRIBE_FAILED"
    assert "rate limited" in str(exc_info.value)


def test_whisper_cpp_runs_cli_on_wav_without_ffmpeg(monkeypatch, tmp_path) -> None:
    bin_path = tmp_path / "whisper-cli"
    model_path = tmp_path / "ggml-small.bin"
    bin_path.write_text("", encoding="utf-8")
    model_path.write_text("", encoding="utf-8")
    captured: dict = {}

    def fake_run(cmd, **kwargs):
        captured["cmd"] = cmd
        captured["timeout"] = kwargs.get("timeout")
        return SimpleNamespace(returncode=0, stdout=" Kitchen is\n fully equipped. \n", stderr="")

    monkeypatch.setattr("vocalnotes.transcription.whisper_cpp.shutil.which", lambda name: None)
    monkeypatch.setattr("vocalnotes.transcription.whisper_cpp.subprocess.run", fake_run)

    provider = WhisperCppTranscriptionProvider(str(bin_path), str(model_path), no_gpu=True, timeout_sec=30)
    text = provider.transcribe(b"RIFF....WAVE", "audio/wav")

    assert text == "Kitchen is fully equipped."
    assert captured["cmd"][0] == str(bin_path)
    assert captured["cmd"][1] == "-ng"
    assert "--no-timestamps" in captured["cmd"]
    assert captured["timeout"] == 30


def test_whisper_cpp_needs_ffmpeg_for_webm(monkeypatch, tmp_path) -> None:
    bin_path = tmp_path / "whisper-cli"
    model_path = tmp_path / "ggml-small.bin"
    bin_path.write_text("", encoding="utf-8")
    model_path.write_text("", encoding="utf-8")
    monkeypatch.setattr("vocalnotes.transcription.whisper_cpp.shutil.which", lambda name: None)

    with pytest.raises(CollaboratorFailure) as exc_info:
        WhisperCppTranscriptionProvider(str(bin_path), str(model_path)).transcribe(b"webm", "audio/webm")

    assert exc_info.value.code == "FFMPEG_MISSING"


def test_whisper_cpp_unavailable_without_paths() -> None:
    ok, reason = WhisperCppTranscriptionProvider("", "").availability()

    assert ok is False
    assert "VOCALNOTES_WHISPER_CPP_BIN" in reason


def test_whisper_cpp_timeout_comes_from_environment(monkeypatch, tmp_path) -> None:
    bin_path = tmp_path / "whisper-cli"
    model_path = tmp_path / "ggml-small.bin"
    bin_path.write_text("", encoding="utf-8")
    model_path.write_text("", encoding="utf-8")
    captured: dict = {}

    def fake_run(cmd, **kwargs):
        captured["timeout"] = kwargs.get("timeout")
        return SimpleNamespace(returncode=0, stdout="Balcony faces south.\n", stderr="")

    monkeypatch.setenv("VOCALNOTES_TRANSCRIBE_PROVIDER", "whisper_cpp")
    monkeypatch.setenv("VOCALNOTES_WHISPER_CPP_BIN", str(bin_path))
    monkeypatch.setenv("VOCALNOTES_WHISPER_CPP_MODEL", str(model_path))
    monkeypatch.setenv("VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC", "45")
    monkeypatch.setattr("vocalnotes.transcription.whisper_cpp.shutil.which", lambda name: None)
    monkeypatch.setattr("vocalnotes.transcription.whisper_cpp.subprocess.run", fake_run)

    provider = build_transcriber(load_config())

    assert isinstance(provider, WhisperCppTranscriptionProvider)
    assert provider.transcribe(b"RIFF....WAVE", "audio/wav") == "Balcony faces south."
    assert captured["timeout"] == 45.0


def test_whisper_cpp_timeout_defaults_to_none(monkeypatch) -> None:
    monkeypatch.delenv("VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC", raising=False)

    assert load_config().VOCALNOTES_WHISPER_CPP_TIMEOUT_SEC is None
