"""Git-backed coverage history."""

from coverpkg.git.credentials import SystemCredentialCallback
from coverpkg.git.notes import NotesStore

__all__ = ["NotesStore", "SystemCredentialCallback"]
