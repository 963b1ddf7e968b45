"""AudioSourcePort — abstract interface for turning an upload into an engine input."""

from abc import ABC, abstractmethod

from domain.audio import AudioSource


class AudioSourcePort(ABC):
    @abstractmethod
    def prepare(self, file_path: str) -> AudioSource:
        """Return a DirectFile for native WAV input, else a StreamedTranscoded source.

        Raises AudioPreparationError when the file cannot be read or the
        transcoder cannot be launched.
        """
