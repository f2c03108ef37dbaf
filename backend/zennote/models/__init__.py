from zennote.models.folder import FolderRow
from zennote.models.note import NoteRow

__all__ = ["FolderRow", "NoteRow"]
