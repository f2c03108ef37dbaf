from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from zennote.ids import new_folder_id


class Folder(BaseModel):
    """A node of the folder hierarchy. Immutable; edits produce a new version."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    name: str
    parent_id: str | None = None
    is_open: bool = True

    @classmethod
    def create(cls, name: str, parent_id: str | None = None) -> "Folder":
        return cls(id=new_folder_id(), name=name, parent_id=parent_id, is_open=True)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Folder):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(("folder", self.id))


class FolderCreate(BaseModel):
    name: str = "New Folder"
    parent_folder_id: str | None = None


class FolderUpdate(BaseModel):
    name: str | None = None
    # Only applied when sent; null or "" moves the folder to the root
    parent_folder_id: str | None = None
    is_open: bool | None = None


class FolderResponse(BaseModel):
    id: str
    name: str
    parent_folder_id: str | None
    is_open: bool

    @classmethod
    def from_folder(cls, folder: Folder) -> "FolderResponse":
        return cls(id=folder.id, name=folder.name, parent_folder_id=folder.parent_id, is_open=folder.is_open)


class NoteRef(BaseModel):
    id: str
    title: str
    updated_at: int


class FolderTree(BaseModel):
    id: str
    name: str
    parent_folder_id: str | None
    is_open: bool
    children: list["FolderTree"] = Field(default_factory=list)
    notes: list[NoteRef] = Field(default_factory=list)


class FolderTreeResponse(BaseModel):
    roots: list[FolderTree] = Field(default_factory=list)
    root_notes: list[NoteRef] = Field(default_factory=list)


FolderTree.model_rebuild()
