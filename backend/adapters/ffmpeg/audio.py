"""FFmpegAudioAdapter — prepares uploads for the recognition engine.

WAV uploads are decoded in-process. Everything else is band-pass filtered,
down-mixed and resampled by an ffmpeg subprocess that streams raw PCM on stdout.
"""

import io
import logging
import os
import subprocess

import numpy as np
import soundfile

from domain.audio import AudioSource, DirectFile, StreamedTranscoded
from domain.errors import AudioPreparationError
from ports.audio import AudioSourcePort

logger = logging.getLogger(__name__)

TARGET_SAMPLE_RATE = 16000
BAND_PASS_FILTER = "highpass=f=200,lowpass=f=3000"


def transcode_command(input_path: str, ffmpeg_binary: str = "ffmpeg") -> list[str]:
    return [
        ffmpeg_binary,
        "-i", input_path,
        "-af", BAND_PASS_FILTER,
        "-f", "s16le",
        "-acodec", "pcm_s16le",
        "-ac", "1",
        "-ar", str(TARGET_SAMPLE_RATE),
        "pipe:1",
    ]


class FFmpegAudioAdapter(AudioSourcePort):
    def __init__(self, ffmpeg_binary: str = "ffmpeg"):
        self._ffmpeg = ffmpeg_binary

    def prepare(self, file_path: str) -> AudioSource:
        if os.path.splitext(file_path)[1].lower() == ".wav":
            logger.info("Using direct WAV input for transcription")
            return self._read_wav(file_path)
        logger.info("Transcoding and filtering audio with FFmpeg")
        return self._spawn_transcoder(file_path)

    def _read_wav(self, file_path: str) -> DirectFile:
        try:
            with open(file_path, "rb") as f:
                data = f.read()
            audio, sample_rate = soundfile.read(io.BytesIO(data), dtype="int16")
        except (OSError, RuntimeError) as e:
            logger.error(f"Could not read WAV file {file_path}: {e}")
            raise AudioPreparationError(f"Could not read audio file: {e}") from e

        if audio.ndim > 1:
            audio = audio.mean(axis=1).astype(np.int16)

        duration = len(audio) / sample_rate if sample_rate else 0.0
        logger.info(f"WAV loaded: {duration:.2f}s @ {sample_rate}Hz")
        return DirectFile(
            path=file_path,
            pcm=audio.tobytes(),
            sample_rate=sample_rate,
        )

    def _spawn_transcoder(self, file_path: str) -> StreamedTranscoded:
        cmd = transcode_command(file_path, self._ffmpeg)
        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            logger.error(f"Failed to start FFmpeg: {e}")
            raise AudioPreparationError(f"Failed to start FFmpeg: {e}") from e
        return StreamedTranscoded(file_path, process, sample_rate=TARGET_SAMPLE_RATE)
