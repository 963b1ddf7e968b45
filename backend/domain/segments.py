"""Segment builder: one recognized event -> one immutable Segment."""

import json
import logging

from domain.errors import MalformedResult
from domain.models import UNKNOWN, RecognizedEvent, Segment, Word

logger = logging.getLogger(__name__)


def _parse_payload(raw: str) -> dict:
    try:
        payload = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedResult(f"Unparseable recognition payload: {e}") from e
    if not isinstance(payload, dict):
        raise MalformedResult(f"Recognition payload is not an object: {type(payload).__name__}")
    return payload


def _best_candidate(payload: dict) -> dict:
    nbest = payload.get("NBest")
    if not isinstance(nbest, list) or not nbest or not isinstance(nbest[0], dict):
        raise MalformedResult("Recognition payload has no NBest candidate")
    return nbest[0]


def _words(candidate: dict) -> tuple[Word, ...]:
    words = []
    for item in candidate.get("Words") or []:
        words.append(Word(
            text=item.get("Word", ""),
            offset=item.get("Offset", 0),
            duration=item.get("Duration", 0),
        ))
    return tuple(words)


def build_segment(event: RecognizedEvent, speaker_label: str) -> Segment:
    """Build a Segment from the best NBest candidate of a detailed result.

    Raises MalformedResult when the payload is not JSON or has no candidate.
    Language and confidence fall back to "unknown" / 1.0 since auto-detection
    does not resolve a language for every utterance.
    """
    payload = _parse_payload(event.json)
    best = _best_candidate(payload)
    primary = payload.get("PrimaryLanguage") or {}

    segment = Segment(
        speaker=speaker_label,
        text=best.get("Display", ""),
        start_time=event.offset,
        end_time=event.offset + event.duration,
        words=_words(best),
        language=primary.get("Language") or UNKNOWN,
        language_confidence=primary.get("Confidence") or UNKNOWN,
        confidence=best.get("Confidence") or 1.0,
    )
    logger.debug(
        f"{segment.speaker} [{segment.language}, {segment.language_confidence}] "
        f"{segment.start_time}-{segment.end_time}: {segment.text}"
    )
    return segment
