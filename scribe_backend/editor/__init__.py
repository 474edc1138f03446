from .autosave import AutosaveController
from .client import NotesApiClient, NotesApiError

__all__ = ["AutosaveController", "NotesApiClient", "NotesApiError"]
