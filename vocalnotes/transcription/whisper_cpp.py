from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Tuple

from vocalnotes.internal_core.errors import CollaboratorFailure

from .base import TranscriptionProvider, guess_audio_suffix_from_mime

logger = logging.getLogger(__name__)


def whisper_cpp_available(bin_path: str, model_path: str) -> Tuple[bool, str]:
    if not bin_path:
        return False, "missing VOCALNOTES_WHISPER_CPP_BIN"
    if not model_path:
        return False, "missing VOCALNOTES_WHISPER_CPP_MODEL"
    if not Path(bin_path).exists():
        return False, f"whisper-cli not found: {bin_path}"
    if not Path(model_path).exists():
        return False, f"model not found: {model_path}"
    return True, ""


def _with_dyld_paths(bin_path: str, env: Optional[dict[str, str]] = None) -> dict[str, str]:
    env_out = dict(os.environ) if env is None else dict(env)
    try:
        build_dir = Path(bin_path).resolve().parents[1]
    except (OSError, IndexError):
        return env_out

    candidates = [
        build_dir / "src",
        build_dir / "ggml" / "src",
        build_dir / "ggml" / "src" / "ggml-metal",
    ]
    new_paths = [str(p) for p in candidates if p.exists()]
    if not new_paths:
        return env_out

    existing = env_out.get("DYLD_LIBRARY_PATH", "")
    joined = os.pathsep.join(new_paths)
    env_out["DYLD_LIBRARY_PATH"] = joined if not existing else f"{joined}{os.pathsep}{existing}"
    return env_out


def _to_wav16k_mono(input_path: Path, output_path: Path) -> Path:
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        # whisper-cli decodes wav natively; other formats need ffmpeg.
        if input_path.suffix.lower() == ".wav":
            return input_path
        raise CollaboratorFailure(
            "FFMPEG_MISSING",
            f"ffmpeg is required to convert {input_path.suffix} audio for whisper.cpp",
            "whisper_cpp",
        )
    cmd = [ffmpeg, "-y", "-i", str(input_path), "-ac", "1", "-ar", "16000", str(output_path)]
    try:
        subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except subprocess.CalledProcessError as exc:
        stderr = exc.stderr.decode("utf-8", "ignore") if isinstance(exc.stderr, (bytes, bytearray)) else str(exc.stderr)
        raise CollaboratorFailure(
            "FFMPEG_FAILED",
            f"Audio conversion failed via ffmpeg: {stderr.strip()[:200] or 'unknown error'}",
            "whisper_cpp",
        ) from exc
    return output_path


class WhisperCppTranscriptionProvider(TranscriptionProvider):
    def __init__(
        self,
        bin_path: str,
        model_path: str,
        *,
        language: str = "",
        no_gpu: bool = False,
        timeout_sec: Optional[float] = None,
    ) -> None:
        self._bin_path = bin_path
        self._model_path = model_path
        self._language = str(language or "").strip() or "auto"
        self._no_gpu = bool(no_gpu)
        self._timeout_sec = timeout_sec

    def name(self) -> str:
        return "whisper_cpp"

    def availability(self) -> Tuple[bool, str]:
        return whisper_cpp_available(self._bin_path, self._model_path)

    def transcribe(self, audio: bytes, mime_type: str) -> str:
        self.ensure_available()
        with tempfile.TemporaryDirectory(prefix="vocalnotes_whisper_") as tmp_dir:
            raw_path = Path(tmp_dir) / f"note{guess_audio_suffix_from_mime(mime_type)}"
            raw_path.write_bytes(audio)
            wav_path = _to_wav16k_mono(raw_path, Path(tmp_dir) / "note_16k.wav")

            cmd = [
                self._bin_path,
                "-m",
                self._model_path,
                "-f",
                str(wav_path),
                "-l",
                self._language,
                "--no-timestamps",
                "--no-prints",
            ]
            if self._no_gpu:
                cmd.insert(1, "-ng")

            logger.info("whisper_cpp transcription start bytes=%s mime=%s", len(audio), mime_type)
            try:
                res = subprocess.run(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    timeout=self._timeout_sec,
                    env=_with_dyld_paths(self._bin_path),
                )
            except subprocess.TimeoutExpired as exc:
                raise CollaboratorFailure("WHISPER_TIMEOUT", "whisper.cpp timed out", self.name()) from exc
            except OSError as exc:
                raise CollaboratorFailure("WHISPER_EXEC_FAILED", str(exc), self.name()) from exc

        if res.returncode != 0:
            msg = (res.stderr or "").strip() or f"exit_code={res.returncode}"
            raise CollaboratorFailure("WHISPER_EXIT_NONZERO", msg[:200], self.name())

        text_out = " ".join((res.stdout or "").split()).strip()
        if not text_out:
            raise CollaboratorFailure("WHISPER_EMPTY_OUTPUT", "whisper.cpp returned empty output", self.name())
        return text_out
