from typing import Any, Literal

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from zennote.ids import new_note_id, now_ms

SaveStatus = Literal["saving", "saved", "error"]


class Note(BaseModel):
    """A titled document. `content` is an opaque markup string."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    title: str
    content: str = ""
    folder_id: str | None = None
    updated_at: int

    @classmethod
    def create(cls, title: str, folder_id: str | None = None, now: int | None = None) -> "Note":
        return cls(
            id=new_note_id(),
            title=title,
            content="",
            folder_id=folder_id,
            updated_at=now if now is not None else now_ms(),
        )

    def touched(self, now: int | None = None, **changes: Any) -> "Note":
        """New version with `changes` applied and a strictly later `updated_at`."""
        stamp = now if now is not None else now_ms()
        changes["updated_at"] = max(self.updated_at + 1, stamp)
        return self.model_copy(update=changes)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Note):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("note", self.id))


class NoteCreate(BaseModel):
    title: str = "Untitled Page"
    folder_id: str | None = None


class NoteUpdate(BaseModel):
    title: str | None = None
    content: str | None = None


class NoteRename(BaseModel):
    title: str


class NoteMove(BaseModel):
    # Raw drag payload; validated as a note id before use
    token: str
    target_folder_id: str | None = None


class ActiveNote(BaseModel):
    note_id: str | None = None


class NoteResponse(BaseModel):
    id: str
    title: str
    content: str
    folder_id: str | None
    updated_at: int
    status: SaveStatus = "saved"

    @classmethod
    def from_note(cls, note: Note, status: SaveStatus = "saved") -> "NoteResponse":
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            folder_id=note.folder_id,
            updated_at=note.updated_at,
            status=status,
        )


class SaveStatusResponse(BaseModel):
    note_id: str
    status: SaveStatus
