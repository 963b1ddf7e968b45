"""Framework-agnostic domain models for Echo Diarize.

Segments and words carry engine-native timings (100 ns ticks). The Pydantic
DTOs in models.py are the API shape, with mappers at the boundary.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

UNKNOWN = "unknown"

NO_SPEECH_SPEAKER = "No speech detected"
NO_SPEECH_TEXT = "No speech was detected in the audio file."

MESSAGE_NO_SPEECH = "No speech detected in the audio file"
MESSAGE_NO_DIARIZATION = "Transcription completed (speaker detection not available)"


class SessionState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionState.RESOLVED, SessionState.FAILED)


@dataclass(frozen=True)
class LanguageMode:
    """Either a fixed recognition language or auto-detection over candidates."""
    language: Optional[str] = None
    candidates: tuple[str, ...] = ()

    @property
    def auto_detect(self) -> bool:
        return self.language is None


@dataclass(frozen=True)
class Word:
    text: str
    offset: int
    duration: int


@dataclass(frozen=True)
class Segment:
    """One attributed utterance. Optional fields are unset on the no-speech placeholder."""
    speaker: str
    text: str
    start_time: int
    end_time: int
    words: tuple[Word, ...] = ()
    language: Optional[str] = None
    language_confidence: Optional[Union[float, str]] = None
    confidence: Optional[float] = None


def no_speech_segment() -> Segment:
    return Segment(
        speaker=NO_SPEECH_SPEAKER,
        text=NO_SPEECH_TEXT,
        start_time=0,
        end_time=0,
    )


def summary_message(has_speech: bool, speaker_count: int) -> str:
    if not has_speech:
        return MESSAGE_NO_SPEECH
    if speaker_count > 0:
        return f"Detected {speaker_count} speakers"
    return MESSAGE_NO_DIARIZATION


@dataclass(frozen=True)
class RecognizedEvent:
    """A recognized-speech event as delivered by the engine.

    json is the engine's detailed result payload; offset/duration are the
    result's own timing in engine ticks.
    """
    json: str
    offset: int
    duration: int
    speaker_id: Optional[str] = None


@dataclass(frozen=True)
class CanceledEvent:
    is_error: bool
    details: str = ""
    code: Optional[str] = None


@dataclass(frozen=True)
class SessionStoppedEvent:
    session_id: Optional[str] = None


@dataclass
class TranscriptionResult:
    """Final payload of one session."""
    segments: list[Segment] = field(default_factory=list)
    speaker_count: int = 0
    message: str = MESSAGE_NO_SPEECH
    audio_file: str = ""
