"""AzureConversationTranscriberAdapter — Azure Speech ConversationTranscriber sessions.

The transcriber diarizes natively (speaker_id on each result) and, with the
detailed output format, carries NBest candidates, word timings and the
auto-detected PrimaryLanguage in result.json. SDK callbacks fire on SDK
threads; they are translated into domain events and handed to the session's
handlers unchanged.
"""

import logging

import azure.cognitiveservices.speech as speechsdk

from domain.audio import AudioSource, DirectFile, StreamedTranscoded
from domain.errors import EngineConfigurationError
from domain.models import CanceledEvent, RecognizedEvent, SessionStoppedEvent
from ports.recognition import (
    RecognitionHandlers,
    RecognitionOptions,
    RecognitionPort,
    RecognitionSession,
)

logger = logging.getLogger(__name__)


def build_speech_config(key: str, region: str, options: RecognitionOptions) -> speechsdk.SpeechConfig:
    speech_config = speechsdk.SpeechConfig(subscription=key, region=region)
    mode = options.language_mode

    if mode.auto_detect:
        if options.continuous_language_id:
            speech_config.set_property(
                speechsdk.PropertyId.SpeechServiceConnection_LanguageIdMode, "Continuous"
            )
        speech_config.set_property(speechsdk.PropertyId.SpeechServiceConnection_EnableAudioLogging, "false")
        logger.info(f"Using auto-detection for languages: {','.join(mode.candidates)}")
    else:
        speech_config.speech_recognition_language = mode.language
        logger.info(f"Using specific language: {mode.language}")

    if options.word_level_timestamps:
        speech_config.request_word_level_timestamps()

    properties = {
        speechsdk.PropertyId.SpeechServiceConnection_InitialSilenceTimeoutMs: str(options.initial_silence_timeout_ms),
        speechsdk.PropertyId.SpeechServiceConnection_EndSilenceTimeoutMs: str(options.end_silence_timeout_ms),
        speechsdk.PropertyId.Speech_SegmentationSilenceTimeoutMs: str(options.segmentation_silence_timeout_ms),
        speechsdk.PropertyId.Speech_SegmentationStrategy: options.segmentation_strategy,
        speechsdk.PropertyId.SpeechServiceResponse_RequestDetailedResultTrueFalse: _flag(options.detailed_results),
        speechsdk.PropertyId.SpeechServiceResponse_RequestWordBoundary: _flag(options.word_boundaries),
        speechsdk.PropertyId.SpeechServiceResponse_RequestPunctuationBoundary: _flag(options.punctuation_boundaries),
    }
    for prop, value in properties.items():
        speech_config.set_property(prop, value)
    if options.detailed_results:
        speech_config.output_format = speechsdk.OutputFormat.Detailed

    return speech_config


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _push_stream(source: AudioSource) -> speechsdk.audio.PushAudioInputStream:
    stream_format = speechsdk.audio.AudioStreamFormat(
        samples_per_second=source.sample_rate,
        bits_per_sample=source.bits_per_sample,
        channels=source.channels,
    )
    return speechsdk.audio.PushAudioInputStream(stream_format=stream_format)


class AzureTranscriptionSession(RecognitionSession):
    def __init__(
        self,
        transcriber: speechsdk.transcription.ConversationTranscriber,
        source: AudioSource,
        stream: speechsdk.audio.PushAudioInputStream,
    ):
        self._transcriber = transcriber
        self._source = source
        self._stream = stream
        self._started = False
        self._stopped = False

    def start(self) -> None:
        logger.info("Starting transcription...")
        self._transcriber.start_transcribing_async().get()
        self._started = True
        if isinstance(self._source, StreamedTranscoded):
            self._source.start(self._stream)
        logger.info("Transcription started, waiting for completion...")

    def stop(self) -> None:
        if self._stopped:
            return
        self._stopped = True
        try:
            if self._started:
                self._transcriber.stop_transcribing_async().get()
        finally:
            self._transcriber.transcribed.disconnect_all()
            self._transcriber.canceled.disconnect_all()
            self._transcriber.session_stopped.disconnect_all()


class AzureConversationTranscriberAdapter(RecognitionPort):
    def __init__(self, key: str, region: str):
        if not key or not region:
            raise EngineConfigurationError("AZURE_SPEECH_KEY and AZURE_SPEECH_REGION must be set")
        self._key = key
        self._region = region

    def create_session(
        self,
        options: RecognitionOptions,
        source: AudioSource,
        handlers: RecognitionHandlers,
    ) -> RecognitionSession:
        try:
            speech_config = build_speech_config(self._key, self._region, options)
            auto_detect = None
            if options.language_mode.auto_detect:
                auto_detect = speechsdk.languageconfig.AutoDetectSourceLanguageConfig(
                    languages=list(options.language_mode.candidates)
                )
            stream = _push_stream(source)
            audio_config = speechsdk.audio.AudioConfig(stream=stream)
            transcriber = speechsdk.transcription.ConversationTranscriber(
                speech_config=speech_config,
                audio_config=audio_config,
                auto_detect_source_language_config=auto_detect,
            )
        except (ValueError, RuntimeError) as e:
            logger.error(f"Speech config rejected: {e}")
            raise EngineConfigurationError(f"Invalid speech configuration: {e}") from e

        transcriber.transcribed.connect(lambda evt: self._on_transcribed(evt, handlers))
        transcriber.canceled.connect(lambda evt: self._on_canceled(evt, handlers))
        transcriber.session_stopped.connect(lambda evt: handlers.session_stopped(
            SessionStoppedEvent(session_id=evt.session_id)
        ))

        if isinstance(source, DirectFile):
            stream.write(source.pcm)
            stream.close()

        return AzureTranscriptionSession(transcriber, source, stream)

    @staticmethod
    def _on_transcribed(evt, handlers: RecognitionHandlers) -> None:
        result = evt.result
        if result.reason != speechsdk.ResultReason.RecognizedSpeech:
            logger.debug(f"Ignoring transcription result with reason {result.reason}")
            return
        handlers.recognized(RecognizedEvent(
            json=result.json,
            offset=result.offset,
            duration=result.duration,
            speaker_id=result.speaker_id,
        ))

    @staticmethod
    def _on_canceled(evt, handlers: RecognitionHandlers) -> None:
        details = evt.cancellation_details
        is_error = details.reason == speechsdk.CancellationReason.Error
        handlers.canceled(CanceledEvent(
            is_error=is_error,
            details=(details.error_details or "") if is_error else "",
            code=str(details.code) if is_error else None,
        ))

    def engine_name(self) -> str:
        return "azure-conversation-transcriber"
