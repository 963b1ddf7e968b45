import threading
import time

import pytest

from domain.errors import (
    AudioPreparationError,
    EngineCanceledWithError,
    EngineConfigurationError,
    SessionTimeoutError,
)
from domain.models import LanguageMode, RecognizedEvent, SessionState
from fakes import (
    FakeAudioAdapter,
    FakeRecognition,
    RecordingProgress,
    canceled,
    recognized,
    stopped,
)
from use_cases.transcribe import TranscribeAudioUseCase, TranscribeRequest, TranscriptionSession

AUTO = LanguageMode(candidates=("de-CH", "fr-FR", "en-US", "it-CH"))


def _session(recognition, audio=None, progress=None):
    return TranscriptionSession(recognition, audio or FakeAudioAdapter(), progress or RecordingProgress())


def test_segments_follow_emission_order_with_stable_speakers():
    events = [
        recognized("Hello there.", speaker="A", offset=0),
        recognized("Bonjour.", speaker="B", offset=20, language="fr-FR"),
        recognized("Again me.", speaker="A", offset=40),
        recognized("Ciao.", speaker="C", offset=60, language="it-CH"),
        stopped(),
    ]
    recognition = FakeRecognition(events)
    audio = FakeAudioAdapter()
    session = _session(recognition, audio)

    result = session.run("uploads/1.wav", AUTO)

    assert [s.text for s in result.segments] == ["Hello there.", "Bonjour.", "Again me.", "Ciao."]
    assert [s.speaker for s in result.segments] == ["Speaker 1", "Speaker 2", "Speaker 1", "Speaker 3"]
    assert result.speaker_count == 3
    assert result.message == "Detected 3 speakers"
    assert result.audio_file == "uploads/1.wav"
    assert session.state == SessionState.RESOLVED
    assert session.has_speech_detected
    assert recognition.sessions[0].stop_calls == 1
    assert audio.sources[0].releases == 1


def test_no_speech_yields_placeholder_segment():
    session = _session(FakeRecognition([stopped()]))

    result = session.run("uploads/2.mp3", AUTO)

    assert len(result.segments) == 1
    placeholder = result.segments[0]
    assert placeholder.speaker == "No speech detected"
    assert placeholder.text == "No speech was detected in the audio file."
    assert placeholder.words == ()
    assert (placeholder.start_time, placeholder.end_time) == (0, 0)
    assert result.speaker_count == 0
    assert result.message == "No speech detected in the audio file"


def test_malformed_payload_is_dropped_without_failing():
    bad = RecognizedEvent(json="{not json", offset=0, duration=1, speaker_id="A")
    events = [bad, recognized("Fine.", speaker="B"), stopped()]

    result = _session(FakeRecognition(events)).run("uploads/3.wav", AUTO)

    assert [s.text for s in result.segments] == ["Fine."]
    # the label is allocated before parsing, as the engine saw two speakers
    assert result.segments[0].speaker == "Speaker 2"
    assert result.speaker_count == 2


def test_only_malformed_payloads_fall_into_no_speech_branch():
    bad = RecognizedEvent(json='{"NBest": []}', offset=0, duration=1, speaker_id="A")

    result = _session(FakeRecognition([bad, bad, stopped()])).run("uploads/4.wav", AUTO)

    assert result.segments[0].speaker == "No speech detected"
    assert result.speaker_count == 0


def test_cancellation_with_error_fails_the_session():
    recognition = FakeRecognition([recognized("Hi."), canceled("Quota exceeded"), stopped()])
    audio = FakeAudioAdapter()
    progress = RecordingProgress()
    session = _session(recognition, audio, progress)

    with pytest.raises(EngineCanceledWithError, match="Quota exceeded"):
        session.run("uploads/5.wav", AUTO)

    assert session.state == SessionState.FAILED
    assert progress.states.count("failed") == 1
    assert "resolved" not in progress.states
    assert recognition.sessions[0].stop_calls == 1
    assert audio.sources[0].releases == 1


def test_events_after_resolution_are_ignored():
    recognition = FakeRecognition([recognized("One."), stopped(), recognized("Late."), canceled()])
    session = _session(recognition)

    result = session.run("uploads/6.wav", AUTO)

    assert [s.text for s in result.segments] == ["One."]
    assert session.state == SessionState.RESOLVED
    assert len(session.segments) == 1


def test_cancel_without_error_is_not_a_failure():
    from domain.models import CanceledEvent

    events = [recognized("Hi."), CanceledEvent(is_error=False), stopped()]

    result = _session(FakeRecognition(events)).run("uploads/7.wav", AUTO)

    assert result.message == "Detected 1 speakers"


def test_threaded_events_resolve_exactly_once():
    events = [recognized(f"utterance {i}", speaker=f"G{i % 3}", offset=i) for i in range(50)]
    events.append(stopped())
    recognition = FakeRecognition(events, threaded=True)
    progress = RecordingProgress()

    result = _session(recognition, progress=progress).run("uploads/8.wav", AUTO)

    assert [s.text for s in result.segments] == [f"utterance {i}" for i in range(50)]
    assert result.speaker_count == 3
    assert progress.states.count("resolved") == 1


def test_racing_terminal_events_produce_one_outcome():
    recognition = FakeRecognition([])
    progress = RecordingProgress()
    session = _session(recognition, progress=progress)
    outcome = {}

    def _run():
        try:
            outcome["result"] = session.run("uploads/9.wav", AUTO)
        except EngineCanceledWithError as e:
            outcome["error"] = e

    runner = threading.Thread(target=_run)
    runner.start()
    while not recognition.sessions or not recognition.sessions[0].started:
        time.sleep(0.001)

    handlers = recognition.sessions[0].handlers
    barrier = threading.Barrier(2)

    def _stop():
        barrier.wait()
        handlers.session_stopped(stopped())

    def _cancel():
        barrier.wait()
        handlers.canceled(canceled())

    racers = [threading.Thread(target=_stop), threading.Thread(target=_cancel)]
    for t in racers:
        t.start()
    for t in racers:
        t.join()
    runner.join(timeout=5)

    assert len(outcome) == 1
    assert progress.states.count("resolved") + progress.states.count("failed") == 1


def test_audio_preparation_error_surfaces_and_skips_engine():
    recognition = FakeRecognition([stopped()])
    audio = FakeAudioAdapter(error=AudioPreparationError("Failed to start FFmpeg"))
    session = _session(recognition, audio)

    with pytest.raises(AudioPreparationError):
        session.run("uploads/10.ogg", AUTO)

    assert session.state == SessionState.FAILED
    assert recognition.sessions == []


def test_engine_configuration_error_releases_audio():
    audio = FakeAudioAdapter()
    session = _session(FakeRecognition(create_error=EngineConfigurationError("bad region")), audio)

    with pytest.raises(EngineConfigurationError):
        session.run("uploads/11.wav", AUTO)

    assert audio.sources[0].releases == 1


def test_start_failure_still_stops_engine():
    recognition = FakeRecognition(start_error=RuntimeError("connection refused"))

    with pytest.raises(RuntimeError):
        _session(recognition).run("uploads/12.wav", AUTO)

    assert recognition.sessions[0].stop_calls == 1


def test_session_timeout_fails_when_engine_never_stops():
    recognition = FakeRecognition([recognized("Hi.")])
    session = _session(recognition)

    with pytest.raises(SessionTimeoutError):
        session.run("uploads/13.wav", AUTO, timeout=0.05)

    assert session.state == SessionState.FAILED
    assert recognition.sessions[0].stop_calls == 1


def test_state_transitions_are_reported():
    progress = RecordingProgress()
    recognition = FakeRecognition([recognized("Hi."), stopped()])

    _session(recognition, progress=progress).run("uploads/14.wav", AUTO)

    assert progress.states[0] == "starting"
    assert progress.states[-1] == "resolved"


class TestUseCase:
    def test_auto_detect_uses_fixed_candidates(self):
        recognition = FakeRecognition([stopped()])
        use_case = TranscribeAudioUseCase(recognition, FakeAudioAdapter(), RecordingProgress())

        use_case.execute(TranscribeRequest(audio_path="uploads/a.wav"))

        mode = recognition.options[0].language_mode
        assert mode.auto_detect
        assert mode.candidates == ("de-CH", "fr-FR", "en-US", "it-CH")

    def test_fixed_language_passes_through(self):
        recognition = FakeRecognition([stopped()])
        use_case = TranscribeAudioUseCase(recognition, FakeAudioAdapter(), RecordingProgress())

        use_case.execute(TranscribeRequest(audio_path="uploads/a.wav", language="fr-FR"))

        options = recognition.options[0]
        assert options.language_mode.language == "fr-FR"
        assert not options.language_mode.auto_detect
        assert options.initial_silence_timeout_ms == 5000
        assert options.end_silence_timeout_ms == 500
        assert options.segmentation_silence_timeout_ms == 1000
        assert options.segmentation_strategy == "Semantic"
        assert options.word_level_timestamps and options.detailed_results
