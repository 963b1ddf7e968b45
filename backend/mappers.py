"""Domain -> DTO mappers.

Converts Segment / TranscriptionResult (domain) into the Pydantic response
models. Segment order is preserved as emitted by the engine.
"""

from domain.models import Segment, TranscriptionResult, Word
from models import TranscriptSegment, TranscriptionResponse, WordTiming


def word_to_dto(word: Word) -> WordTiming:
    return WordTiming(text=word.text, offset=word.offset, duration=word.duration)


def segment_to_dto(seg: Segment) -> TranscriptSegment:
    """Convert a domain Segment to a TranscriptSegment DTO."""
    return TranscriptSegment(
        speaker=seg.speaker,
        text=seg.text,
        language=seg.language,
        language_confidence=seg.language_confidence,
        confidence=seg.confidence,
        words=[word_to_dto(w) for w in seg.words],
        start_time=seg.start_time,
        end_time=seg.end_time,
    )


def result_to_response(result: TranscriptionResult) -> TranscriptionResponse:
    return TranscriptionResponse(
        transcription=[segment_to_dto(seg) for seg in result.segments],
        speaker_count=result.speaker_count,
        message=result.message,
        audio_file=result.audio_file,
    )
