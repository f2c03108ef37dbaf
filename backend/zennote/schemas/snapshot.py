from typing import Any

from pydantic import BaseModel, Field

from zennote.schemas.folder import Folder
from zennote.schemas.note import Note


class Snapshot(BaseModel):
    """The whole persisted collection: `{folders: [...], notes: [...]}`."""

    folders: list[Folder] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any] | None) -> "Snapshot":
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise TypeError(f"Snapshot payload must be an object, not {type(data).__name__}")
        return cls.model_validate(
            {"folders": data.get("folders") or [], "notes": data.get("notes") or []}
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "folders": [f.model_dump(by_alias=True) for f in self.folders],
            "notes": [n.model_dump(by_alias=True) for n in self.notes],
        }
