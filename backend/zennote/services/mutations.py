"""Validated create/rename/move/delete operations with write-through persistence.

The engine keeps no entity state: every operation takes the caller's current
snapshot, checks references against a `HierarchyIndex`, saves the resulting
snapshot through the gateway and returns a `Mutation` describing what changed.
Nothing is returned (and nothing should be merged) when the save fails.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from zennote.errors import InvalidMove, PersistenceError, ReferenceNotFound
from zennote.ids import now_ms
from zennote.schemas import Folder, Note, Snapshot
from zennote.services.gateway import PersistenceGateway
from zennote.services.hierarchy import HierarchyIndex

logger = logging.getLogger(__name__)


@dataclass
class Mutation:
    snapshot: Snapshot
    created_folders: list[Folder] = field(default_factory=list)
    created_notes: list[Note] = field(default_factory=list)
    updated_folders: list[Folder] = field(default_factory=list)
    updated_notes: list[Note] = field(default_factory=list)
    removed_folder_ids: set[str] = field(default_factory=set)
    removed_note_ids: set[str] = field(default_factory=set)

    @property
    def is_empty(self) -> bool:
        return not (
            self.created_folders
            or self.created_notes
            or self.updated_folders
            or self.updated_notes
            or self.removed_folder_ids
            or self.removed_note_ids
        )


def _replace_folder(snapshot: Snapshot, folder: Folder) -> Snapshot:
    return Snapshot(
        folders=[folder if f.id == folder.id else f for f in snapshot.folders],
        notes=snapshot.notes,
    )


def _replace_note(snapshot: Snapshot, note: Note) -> Snapshot:
    return Snapshot(
        folders=snapshot.folders,
        notes=[note if n.id == note.id else n for n in snapshot.notes],
    )


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class MutationEngine:
    def __init__(self, gateway: PersistenceGateway, clock: Callable[[], int] = now_ms) -> None:
        self.gateway = gateway
        self._clock = clock

    async def _write(self, snapshot: Snapshot, op: str) -> None:
        try:
            await self.gateway.save(snapshot)
        except PersistenceError:
            logger.error("Write failed", extra={"op": op, "store_key": self.gateway.store_key})
            raise
        except Exception as e:
            logger.error("Write failed", exc_info=True, extra={"op": op, "store_key": self.gateway.store_key})
            raise PersistenceError(str(e)) from e

    @staticmethod
    def _require_folder(index: HierarchyIndex, folder_id: str) -> Folder:
        folder = index.folder(folder_id)
        if folder is None:
            raise ReferenceNotFound("folder", folder_id)
        return folder

    @staticmethod
    def _require_note(index: HierarchyIndex, note_id: str) -> Note:
        note = index.note(note_id)
        if note is None:
            raise ReferenceNotFound("note", note_id)
        return note

    async def _open_after(self, mutation: Mutation, folder: Folder | None, op: str) -> Mutation:
        """Second write that makes a new or moved item visible in a closed folder.

        The first write already committed, so a failure here only leaves the
        folder closed.
        """
        if folder is None or folder.is_open:
            return mutation
        opened = folder.model_copy(update={"is_open": True})
        snapshot = _replace_folder(mutation.snapshot, opened)
        try:
            await self._write(snapshot, f"{op}:open-parent")
        except PersistenceError:
            logger.warning("Could not open folder after %s", op, extra={"folder_id": folder.id})
            return mutation
        mutation.snapshot = snapshot
        mutation.updated_folders.append(opened)
        return mutation

    async def create_folder(self, snapshot: Snapshot, name: str, parent_id: str | None = None) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        parent = self._require_folder(index, parent_id) if parent_id is not None else None
        folder = Folder.create(name, parent_id)
        new = Snapshot(folders=[*snapshot.folders, folder], notes=snapshot.notes)
        await self._write(new, "create_folder")
        logger.debug("Created folder", extra={"folder_id": folder.id, "parent_id": parent_id})
        return await self._open_after(Mutation(new, created_folders=[folder]), parent, "create_folder")

    async def create_note(self, snapshot: Snapshot, title: str, folder_id: str | None = None) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        parent = self._require_folder(index, folder_id) if folder_id is not None else None
        note = Note.create(title, folder_id, now=self._clock())
        new = Snapshot(folders=snapshot.folders, notes=[*snapshot.notes, note])
        await self._write(new, "create_note")
        logger.debug("Created note", extra={"note_id": note.id, "folder_id": folder_id})
        return await self._open_after(Mutation(new, created_notes=[note]), parent, "create_note")

    async def rename_folder(self, snapshot: Snapshot, folder_id: str, name: str) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        folder = self._require_folder(index, folder_id)
        if _is_blank(name) or name == folder.name:
            return Mutation(snapshot)
        renamed = folder.model_copy(update={"name": name})
        new = _replace_folder(snapshot, renamed)
        await self._write(new, "rename_folder")
        return Mutation(new, updated_folders=[renamed])

    async def rename_note(self, snapshot: Snapshot, note_id: str, title: str) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        note = self._require_note(index, note_id)
        if _is_blank(title) or title == note.title:
            return Mutation(snapshot)
        renamed = note.touched(self._clock(), title=title)
        new = _replace_note(snapshot, renamed)
        await self._write(new, "rename_note")
        return Mutation(new, updated_notes=[renamed])

    async def set_folder_open(self, snapshot: Snapshot, folder_id: str, is_open: bool) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        folder = self._require_folder(index, folder_id)
        if folder.is_open == is_open:
            return Mutation(snapshot)
        updated = folder.model_copy(update={"is_open": is_open})
        new = _replace_folder(snapshot, updated)
        await self._write(new, "set_folder_open")
        return Mutation(new, updated_folders=[updated])

    async def toggle_folder(self, snapshot: Snapshot, folder_id: str) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        folder = self._require_folder(index, folder_id)
        return await self.set_folder_open(snapshot, folder_id, not folder.is_open)

    async def move_note(self, snapshot: Snapshot, note_id: str, target_folder_id: str | None) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        note = self._require_note(index, note_id)
        target = self._require_folder(index, target_folder_id) if target_folder_id is not None else None
        if note.folder_id == target_folder_id:
            return await self._open_after(Mutation(snapshot), target, "move_note")
        moved = note.touched(self._clock(), folder_id=target_folder_id)
        new = _replace_note(snapshot, moved)
        await self._write(new, "move_note")
        return await self._open_after(Mutation(new, updated_notes=[moved]), target, "move_note")

    def _require_move_target(self, index: HierarchyIndex, folder_id: str, target_parent_id: str | None) -> Folder | None:
        if target_parent_id is None:
            return None
        target = self._require_folder(index, target_parent_id)
        if target.id == folder_id:
            raise InvalidMove("Folder cannot be its own parent")
        if target.id in index.descendant_folder_ids(folder_id):
            raise InvalidMove("Cannot move folder into its own subfolder")
        return target

    async def move_folder(self, snapshot: Snapshot, folder_id: str, target_parent_id: str | None) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        folder = self._require_folder(index, folder_id)
        target = self._require_move_target(index, folder_id, target_parent_id)
        if folder.parent_id == target_parent_id:
            return Mutation(snapshot)
        moved = folder.model_copy(update={"parent_id": target_parent_id})
        new = _replace_folder(snapshot, moved)
        await self._write(new, "move_folder")
        return await self._open_after(Mutation(new, updated_folders=[moved]), target, "move_folder")

    async def update_folder(self, snapshot: Snapshot, folder_id: str, **changes: Any) -> Mutation:
        """Rename, move and open/close a folder in one write.

        `changes` may hold `name`, `parent_id` and `is_open`; a key that is
        absent is left alone, while `parent_id=None` moves to the root. Every
        check runs before anything is saved, so a rejected move also drops
        the rename.
        """
        unknown = set(changes) - {"name", "parent_id", "is_open"}
        if unknown:
            raise TypeError(f"Unknown folder fields: {sorted(unknown)}")
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        folder = self._require_folder(index, folder_id)

        updates: dict[str, Any] = {}
        name = changes.get("name")
        if not _is_blank(name) and name != folder.name:
            updates["name"] = name
        target = None
        if "parent_id" in changes:
            target_parent_id = changes["parent_id"] or None
            target = self._require_move_target(index, folder_id, target_parent_id)
            if folder.parent_id != target_parent_id:
                updates["parent_id"] = target_parent_id
        is_open = changes.get("is_open")
        if is_open is not None and is_open != folder.is_open:
            updates["is_open"] = is_open
        if not updates:
            return Mutation(snapshot)

        updated = folder.model_copy(update=updates)
        new = _replace_folder(snapshot, updated)
        await self._write(new, "update_folder")
        mutation = Mutation(new, updated_folders=[updated])
        if "parent_id" not in updates:
            return mutation
        return await self._open_after(mutation, target, "update_folder")

    async def update_note(
        self,
        snapshot: Snapshot,
        note_id: str,
        title: str | None = None,
        content: str | None = None,
    ) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        note = self._require_note(index, note_id)
        changes: dict[str, str] = {}
        # A blank title from the editor keeps the old one
        if not _is_blank(title):
            changes["title"] = title
        if content is not None:
            changes["content"] = content
        if not changes:
            return Mutation(snapshot)
        updated = note.touched(self._clock(), **changes)
        new = _replace_note(snapshot, updated)
        await self._write(new, "update_note")
        return Mutation(new, updated_notes=[updated])

    async def delete_note(self, snapshot: Snapshot, note_id: str) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        self._require_note(index, note_id)
        new = Snapshot(folders=snapshot.folders, notes=[n for n in snapshot.notes if n.id != note_id])
        await self._write(new, "delete_note")
        return Mutation(new, removed_note_ids={note_id})

    async def delete_folder(self, snapshot: Snapshot, folder_id: str) -> Mutation:
        index = HierarchyIndex(snapshot.folders, snapshot.notes)
        self._require_folder(index, folder_id)
        folder_ids, note_ids = index.cascade(folder_id)
        new = Snapshot(
            folders=[f for f in snapshot.folders if f.id not in folder_ids],
            notes=[n for n in snapshot.notes if n.id not in note_ids],
        )
        await self._write(new, "delete_folder")
        logger.info(
            "Deleted folder",
            extra={"folder_id": folder_id, "folders": len(folder_ids), "notes": len(note_ids)},
        )
        return Mutation(new, removed_folder_ids=folder_ids, removed_note_ids=note_ids)
