"""RecognitionPort — abstract interface for streaming, diarizing speech engines."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

from domain.audio import AudioSource
from domain.models import CanceledEvent, LanguageMode, RecognizedEvent, SessionStoppedEvent

AUTO_DETECT_LANGUAGES = ("de-CH", "fr-FR", "en-US", "it-CH")


@dataclass(frozen=True)
class RecognitionOptions:
    """Engine options for one session. Only the language mode varies per request."""
    language_mode: LanguageMode
    continuous_language_id: bool = True
    word_level_timestamps: bool = True
    initial_silence_timeout_ms: int = 5000
    end_silence_timeout_ms: int = 500
    segmentation_silence_timeout_ms: int = 1000
    segmentation_strategy: str = "Semantic"
    detailed_results: bool = True
    word_boundaries: bool = True
    punctuation_boundaries: bool = True


@dataclass
class RecognitionHandlers:
    recognized: Callable[[RecognizedEvent], None]
    canceled: Callable[[CanceledEvent], None]
    session_stopped: Callable[[SessionStoppedEvent], None]


class RecognitionSession(ABC):
    @abstractmethod
    def start(self) -> None:
        """Start recognition. Blocks until the engine acknowledges the start."""

    @abstractmethod
    def stop(self) -> None:
        """Stop recognition and release engine resources. Safe to call more than once."""


class RecognitionPort(ABC):
    @abstractmethod
    def create_session(
        self,
        options: RecognitionOptions,
        source: AudioSource,
        handlers: RecognitionHandlers,
    ) -> RecognitionSession:
        """Create an engine session bound to source with handlers registered.

        Raises EngineConfigurationError if the engine rejects the configuration.
        """

    @abstractmethod
    def engine_name(self) -> str:
        """Return the human-readable engine name for logs."""
