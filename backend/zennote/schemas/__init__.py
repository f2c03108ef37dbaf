from zennote.schemas.folder import Folder, FolderCreate, FolderResponse, FolderTree, FolderTreeResponse, FolderUpdate, NoteRef
from zennote.schemas.note import ActiveNote, Note, NoteCreate, NoteMove, NoteRename, NoteResponse, NoteUpdate, SaveStatus, SaveStatusResponse
from zennote.schemas.snapshot import Snapshot

__all__ = [
    "Folder",
    "FolderCreate",
    "FolderResponse",
    "FolderTree",
    "FolderTreeResponse",
    "FolderUpdate",
    "NoteRef",
    "ActiveNote",
    "Note",
    "NoteCreate",
    "NoteMove",
    "NoteRename",
    "NoteResponse",
    "NoteUpdate",
    "SaveStatus",
    "SaveStatusResponse",
    "Snapshot",
]
