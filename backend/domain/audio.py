"""Audio sources handed to the recognition engine.

An AudioSource is one of two variants, chosen once per session:

- DirectFile: a WAV upload decoded in full to 16-bit PCM. Finite.
- StreamedTranscoded: raw PCM produced live by an ffmpeg process. The engine
  adapter binds it to a push stream (AudioSink) and bytes are forwarded as
  they arrive; the sink is closed once, when the process finishes.
"""

import logging
import subprocess
import threading
from dataclasses import dataclass
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 32 * 1024


class AudioSink(Protocol):
    def write(self, chunk: bytes) -> None: ...

    def close(self) -> None: ...


@dataclass
class DirectFile:
    path: str
    pcm: bytes
    sample_rate: int
    bits_per_sample: int = 16
    channels: int = 1

    kind = "direct"

    def release(self) -> None:
        self.pcm = b""


class StreamedTranscoded:
    """Wraps a running transcoder process whose stdout carries raw PCM."""

    kind = "streamed"

    def __init__(
        self,
        path: str,
        process: subprocess.Popen,
        sample_rate: int = 16000,
        bits_per_sample: int = 16,
        channels: int = 1,
    ):
        self.path = path
        self.sample_rate = sample_rate
        self.bits_per_sample = bits_per_sample
        self.channels = channels
        self._process = process
        self._sink: Optional[AudioSink] = None
        self._sink_closed = False
        self._released = False
        self._lock = threading.Lock()
        self._threads: list[threading.Thread] = []

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    def start(self, sink: AudioSink) -> None:
        """Begin forwarding transcoder output into sink. Call once."""
        with self._lock:
            if self._sink is not None:
                raise RuntimeError("StreamedTranscoded source already started")
            self._sink = sink
        self._threads = [
            threading.Thread(target=self._pump_stdout, name="ffmpeg-stdout", daemon=True),
            threading.Thread(target=self._log_stderr, name="ffmpeg-stderr", daemon=True),
        ]
        for t in self._threads:
            t.start()

    def _pump_stdout(self) -> None:
        stdout = self._process.stdout
        try:
            while True:
                chunk = stdout.read1(READ_CHUNK_BYTES)
                if not chunk:
                    break
                self._sink.write(chunk)
        except (OSError, ValueError) as e:
            logger.error(f"Transcoder output read failed: {e}")
        finally:
            code = self._process.wait()
            logger.info(f"FFmpeg exited with code {code}")
            self._close_sink()

    def _log_stderr(self) -> None:
        try:
            for line in self._process.stderr:
                text = line.decode("utf-8", errors="replace").rstrip()
                if text:
                    logger.debug(f"FFmpeg stderr: {text}")
        except (OSError, ValueError) as e:
            # stderr closed by release() while reading
            logger.debug(f"FFmpeg stderr closed: {e}")

    def _close_sink(self) -> None:
        with self._lock:
            if self._sink_closed or self._sink is None:
                return
            self._sink_closed = True
            sink = self._sink
        sink.close()

    def release(self, timeout: float = 5.0) -> None:
        """Stop the transcoder if still running and wait for the pumps. Idempotent."""
        with self._lock:
            if self._released:
                return
            self._released = True
        if self._process.poll() is None:
            self._process.terminate()
            try:
                self._process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                self._process.kill()
                self._process.wait()
        for t in self._threads:
            t.join(timeout=timeout)
        for stream in (self._process.stdout, self._process.stderr):
            if stream is not None:
                stream.close()


AudioSource = Union[DirectFile, StreamedTranscoded]
