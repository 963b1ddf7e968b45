"""TranscriptionSession — owns one streaming transcription session end-to-end.

IDLE -> STARTING -> LISTENING -> (RESOLVED | FAILED)

The engine delivers recognized / canceled / session-stopped events from its
own threads, possibly interleaved with each other and with run(). Every
handler takes the session lock, and the terminal future is settled only from
a non-terminal state, so exactly one outcome is ever produced. Events that
arrive after settlement are dropped.

TranscribeAudioUseCase is the request-level entry point used by the API.
"""

import logging
import threading
import uuid
from concurrent.futures import Future, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Optional

from domain.audio import AudioSource
from domain.errors import (
    EngineCanceledWithError,
    MalformedResult,
    SessionTimeoutError,
    UnexpectedProcessingError,
)
from domain.models import (
    CanceledEvent,
    LanguageMode,
    RecognizedEvent,
    Segment,
    SessionState,
    SessionStoppedEvent,
    TranscriptionResult,
    no_speech_segment,
    summary_message,
)
from domain.segments import build_segment
from domain.speakers import SpeakerMap
from ports.audio import AudioSourcePort
from ports.progress import ProgressPort
from ports.recognition import (
    AUTO_DETECT_LANGUAGES,
    RecognitionHandlers,
    RecognitionOptions,
    RecognitionPort,
    RecognitionSession,
)

logger = logging.getLogger(__name__)

AUTO_DETECT = "auto-detect"


class TranscriptionSession:
    def __init__(
        self,
        recognition: RecognitionPort,
        audio: AudioSourcePort,
        progress: ProgressPort,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex[:12]
        self.state = SessionState.IDLE
        self.source_kind: Optional[str] = None
        self.segments: list[Segment] = []
        self.speakers = SpeakerMap()
        self.has_speech_detected = False
        self._recognition = recognition
        self._audio = audio
        self._progress = progress
        self._audio_path = ""
        self._lock = threading.Lock()
        self._outcome: Future = Future()

    def run(
        self,
        audio_path: str,
        language_mode: LanguageMode,
        timeout: Optional[float] = None,
    ) -> TranscriptionResult:
        """Run the session to completion. Raises the failure if the session failed.

        Blocks on the engine start acknowledgment, then on the terminal
        outcome. timeout caps the wait for the outcome; None waits for the
        engine's own silence timeouts to end the session.
        """
        self._audio_path = audio_path
        source: Optional[AudioSource] = None
        engine_session: Optional[RecognitionSession] = None
        try:
            self._transition(SessionState.IDLE, SessionState.STARTING)
            source = self._audio.prepare(audio_path)
            self.source_kind = source.kind
            engine_session = self._recognition.create_session(
                RecognitionOptions(language_mode=language_mode),
                source,
                RecognitionHandlers(
                    recognized=self.on_recognized,
                    canceled=self.on_canceled,
                    session_stopped=self.on_session_stopped,
                ),
            )
            engine_session.start()
            self._transition(SessionState.STARTING, SessionState.LISTENING)

            try:
                return self._outcome.result(timeout=timeout)
            except FutureTimeout:
                self._fail(SessionTimeoutError(f"No result after {timeout}s"))
                # A stop event may have won the race; either way the outcome is set now.
                return self._outcome.result()
        except Exception as e:
            self._fail(e)
            raise
        finally:
            if engine_session is not None:
                self._stop_engine(engine_session)
            if source is not None:
                source.release()

    def on_recognized(self, event: RecognizedEvent) -> None:
        try:
            with self._lock:
                if self.state.is_terminal:
                    logger.debug(f"[{self.id}] Ignoring recognized event after {self.state.value}")
                    return
                label = self.speakers.label_for(event.speaker_id)
                try:
                    segment = build_segment(event, label)
                except MalformedResult as e:
                    logger.warning(f"[{self.id}] Dropping recognition result: {e}")
                    return
                self.segments.append(segment)
                self.has_speech_detected = True
            logger.info(f"[{self.id}] {segment.speaker}: {segment.text}")
        except Exception as e:
            logger.exception(f"[{self.id}] Recognized handler failed")
            self._fail(UnexpectedProcessingError(str(e)))

    def on_canceled(self, event: CanceledEvent) -> None:
        if not event.is_error:
            logger.info(f"[{self.id}] Transcription canceled without error")
            return
        logger.error(f"[{self.id}] Transcription error: {event.details}")
        self._fail(EngineCanceledWithError(event.details, event.code))

    def on_session_stopped(self, event: SessionStoppedEvent) -> None:
        logger.info(f"[{self.id}] Transcription session stopped")
        try:
            with self._lock:
                if self.state.is_terminal:
                    return
                if self.segments:
                    segments = list(self.segments)
                    speaker_count = self.speakers.speaker_count()
                else:
                    segments = [no_speech_segment()]
                    speaker_count = 0
                result = TranscriptionResult(
                    segments=segments,
                    speaker_count=speaker_count,
                    message=summary_message(self.has_speech_detected, speaker_count),
                    audio_file=self._audio_path,
                )
                self._settle_locked(SessionState.RESOLVED, result=result)
            self._progress.report(self.id, SessionState.RESOLVED.value, result.message)
        except Exception as e:
            logger.exception(f"[{self.id}] Session-stopped handler failed")
            self._fail(UnexpectedProcessingError(str(e)))

    def _fail(self, error: BaseException) -> bool:
        with self._lock:
            if self.state.is_terminal:
                return False
            self._settle_locked(SessionState.FAILED, error=error)
        self._progress.report(self.id, SessionState.FAILED.value, str(error))
        return True

    def _settle_locked(
        self,
        state: SessionState,
        result: Optional[TranscriptionResult] = None,
        error: Optional[BaseException] = None,
    ) -> None:
        self.state = state
        if error is not None:
            self._outcome.set_exception(error)
        else:
            self._outcome.set_result(result)

    def _transition(self, expected: SessionState, new: SessionState) -> None:
        with self._lock:
            if self.state != expected:
                # An early terminal event already settled the session.
                return
            self.state = new
        self._progress.report(self.id, new.value)

    def _stop_engine(self, engine_session: RecognitionSession) -> None:
        try:
            engine_session.stop()
        except Exception as e:
            logger.warning(f"[{self.id}] Failed to stop recognition session: {e}")


@dataclass
class TranscribeRequest:
    """All parameters for a transcription request."""
    audio_path: str
    language: Optional[str] = AUTO_DETECT


class TranscribeAudioUseCase:
    def __init__(
        self,
        recognition: RecognitionPort,
        audio: AudioSourcePort,
        progress: ProgressPort,
        auto_detect_languages: tuple[str, ...] = AUTO_DETECT_LANGUAGES,
        session_timeout: Optional[float] = None,
    ):
        self._recognition = recognition
        self._audio = audio
        self._progress = progress
        self._auto_detect_languages = auto_detect_languages
        self._session_timeout = session_timeout

    def language_mode(self, language: Optional[str]) -> LanguageMode:
        if not language or language == AUTO_DETECT:
            return LanguageMode(candidates=self._auto_detect_languages)
        return LanguageMode(language=language)

    def execute(self, req: TranscribeRequest) -> TranscriptionResult:
        session = TranscriptionSession(self._recognition, self._audio, self._progress)
        mode = self.language_mode(req.language)
        logger.info(
            f"[{session.id}] Processing file: {req.audio_path} "
            f"(language={req.language or AUTO_DETECT}, engine={self._recognition.engine_name()})"
        )
        result = session.run(req.audio_path, mode, timeout=self._session_timeout)
        logger.info(f"[{session.id}] {result.message}")
        return result
