from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class WordTiming(CamelModel):
    """A recognized word with engine-tick offset and duration"""
    text: str
    offset: int
    duration: int


class TranscriptSegment(CamelModel):
    """One speaker-attributed utterance in the transcription"""
    speaker: str
    text: str
    language: Optional[str] = None
    language_confidence: Optional[Union[float, str]] = None
    confidence: Optional[float] = None
    words: List[WordTiming] = []
    start_time: int
    end_time: int


class TranscriptionResponse(CamelModel):
    """Response format for /upload"""
    type: str = "result"
    transcription: List[TranscriptSegment]
    speaker_count: int
    message: str
    audio_file: str


class ErrorResponse(CamelModel):
    type: Optional[str] = None
    error: str
    details: Optional[str] = None
    stack: Optional[str] = None


class HealthResponse(BaseModel):
    status: str = "ok"
    message: str = "Server is running"
