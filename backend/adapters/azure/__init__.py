"""Azure Speech adapter: ConversationTranscriber with diarization and language ID."""

from .recognition import AzureConversationTranscriberAdapter

__all__ = ["AzureConversationTranscriberAdapter"]
