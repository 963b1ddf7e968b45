"""SpeakerMap — stable sequential labels for opaque engine speaker ids."""

import threading

SPEAKER_PREFIX = "Speaker "
UNKNOWN_SPEAKER_ID = "Unknown"


class SpeakerMap:
    """Maps engine speaker ids to "Speaker 1", "Speaker 2", ... in first-seen order.

    Owned by a single session. Engine callbacks may arrive on SDK threads, so
    every access goes through the lock.
    """

    def __init__(self):
        self._labels: dict[str, str] = {}
        self._lock = threading.Lock()

    def label_for(self, speaker_id: str | None) -> str:
        key = speaker_id or UNKNOWN_SPEAKER_ID
        with self._lock:
            label = self._labels.get(key)
            if label is None:
                label = f"{SPEAKER_PREFIX}{len(self._labels) + 1}"
                self._labels[key] = label
            return label

    def speaker_count(self) -> int:
        with self._lock:
            return len(self._labels)

    def labels(self) -> dict[str, str]:
        with self._lock:
            return dict(self._labels)
