import pytest

from domain.models import Segment, TranscriptionResult, Word, no_speech_segment, summary_message
from mappers import result_to_response


@pytest.mark.parametrize("has_speech, count, expected", [
    (False, 0, "No speech detected in the audio file"),
    (True, 0, "Transcription completed (speaker detection not available)"),
    (True, 2, "Detected 2 speakers"),
])
def test_summary_message_policy(has_speech, count, expected):
    assert summary_message(has_speech, count) == expected


def test_response_uses_camel_case_wire_shape():
    result = TranscriptionResult(
        segments=[Segment(
            speaker="Speaker 1",
            text="Hi.",
            start_time=100,
            end_time=600,
            words=(Word("hi", 100, 400),),
            language="en-US",
            language_confidence="unknown",
            confidence=0.9,
        )],
        speaker_count=1,
        message="Detected 1 speakers",
        audio_file="uploads/1.wav",
    )

    body = result_to_response(result).model_dump(by_alias=True, exclude_none=True)

    assert body["type"] == "result"
    assert body["speakerCount"] == 1
    assert body["audioFile"] == "uploads/1.wav"
    seg = body["transcription"][0]
    assert seg["startTime"] == 100 and seg["endTime"] == 600
    assert seg["languageConfidence"] == "unknown"
    assert seg["words"] == [{"text": "hi", "offset": 100, "duration": 400}]


def test_placeholder_omits_language_fields():
    body = result_to_response(TranscriptionResult(segments=[no_speech_segment()])).model_dump(
        by_alias=True, exclude_none=True
    )

    seg = body["transcription"][0]
    assert set(seg) == {"speaker", "text", "words", "startTime", "endTime"}
