"""Caller-visible note store.

`NoteStore` owns the in-memory copy of the collection. Structural operations
(create, rename, move, delete) go through the `MutationEngine` one at a time
and their results are merged back by id; a failed write merges nothing.
Typing goes through `edit_note`, which keeps an optimistic draft per note and
writes it once the note has been quiet for `autosave_delay` seconds, when the
user switches to another note, or on an explicit flush.
"""

import asyncio
import logging

from zennote.config import settings
from zennote.errors import PersistenceError, ReferenceNotFound
from zennote.ids import parse_note_id
from zennote.schemas import Folder, Note, SaveStatus, Snapshot
from zennote.services.autosave import Debouncer
from zennote.services.gateway import PersistenceGateway
from zennote.services.hierarchy import HierarchyIndex
from zennote.services.mutations import Mutation, MutationEngine

logger = logging.getLogger(__name__)


class NoteStore:
    def __init__(
        self,
        gateway: PersistenceGateway,
        engine: MutationEngine | None = None,
        autosave_delay: float | None = None,
    ) -> None:
        self.gateway = gateway
        self.engine = engine or MutationEngine(gateway)
        self._snapshot = Snapshot()
        self._lock = asyncio.Lock()
        self._drafts: dict[str, dict[str, str]] = {}
        self._status: dict[str, SaveStatus] = {}
        self.active_note_id: str | None = None
        delay = settings.autosave_delay if autosave_delay is None else autosave_delay
        self._autosave = Debouncer(delay, self._save_draft)

    async def load(self) -> None:
        async with self._lock:
            self._snapshot = await self.gateway.load()
        logger.info(
            "Store loaded",
            extra={
                "store_key": self.gateway.store_key,
                "folders": len(self._snapshot.folders),
                "notes": len(self._snapshot.notes),
            },
        )

    async def aclose(self) -> None:
        await self._autosave.aclose()

    # --- views -----------------------------------------------------------

    @property
    def snapshot(self) -> Snapshot:
        """Last reconciled (persisted) state, without pending drafts."""
        return self._snapshot

    @property
    def folders(self) -> list[Folder]:
        return list(self._snapshot.folders)

    @property
    def notes(self) -> list[Note]:
        return [self._with_draft(n) for n in self._snapshot.notes]

    @property
    def index(self) -> HierarchyIndex:
        return HierarchyIndex(self.folders, self.notes)

    def _with_draft(self, note: Note) -> Note:
        draft = self._drafts.get(note.id)
        return note.model_copy(update=draft) if draft else note

    def get_note(self, note_id: str) -> Note:
        for n in self._snapshot.notes:
            if n.id == note_id:
                return self._with_draft(n)
        raise ReferenceNotFound("note", note_id)

    def get_folder(self, folder_id: str) -> Folder:
        for f in self._snapshot.folders:
            if f.id == folder_id:
                return f
        raise ReferenceNotFound("folder", folder_id)

    def status(self, note_id: str) -> SaveStatus:
        return self._status.get(note_id, "saved")

    # --- reconciliation ----------------------------------------------------

    def merge(self, mutation: Mutation) -> None:
        """Apply an engine result by id. Replaying a create does not duplicate it."""
        folders = list(self._snapshot.folders)
        known = {f.id for f in folders}
        for f in mutation.created_folders:
            if f.id in known:
                logger.debug("Dropped duplicate folder create", extra={"folder_id": f.id})
                continue
            folders.append(f)
            known.add(f.id)
        if mutation.updated_folders:
            updated = {f.id: f for f in mutation.updated_folders}
            folders = [updated.get(f.id, f) for f in folders]
        folders = [f for f in folders if f.id not in mutation.removed_folder_ids]

        notes = list(self._snapshot.notes)
        known = {n.id for n in notes}
        for n in mutation.created_notes:
            if n.id in known:
                logger.debug("Dropped duplicate note create", extra={"note_id": n.id})
                continue
            notes.append(n)
            known.add(n.id)
        if mutation.updated_notes:
            updated_notes = {n.id: n for n in mutation.updated_notes}
            notes = [updated_notes.get(n.id, n) for n in notes]
        notes = [n for n in notes if n.id not in mutation.removed_note_ids]

        self._snapshot = Snapshot(folders=folders, notes=notes)

    async def _apply(self, op, *args, **kwargs) -> Mutation:
        async with self._lock:
            mutation = await op(self._snapshot, *args, **kwargs)
            self.merge(mutation)
        return mutation

    # --- folders -----------------------------------------------------------

    async def create_folder(self, name: str = "New Folder", parent_id: str | None = None) -> Folder:
        mutation = await self._apply(self.engine.create_folder, name, parent_id)
        return mutation.created_folders[0]

    async def rename_folder(self, folder_id: str, name: str) -> Folder:
        await self._apply(self.engine.rename_folder, folder_id, name)
        return self.get_folder(folder_id)

    async def toggle_folder(self, folder_id: str) -> Folder:
        await self._apply(self.engine.toggle_folder, folder_id)
        return self.get_folder(folder_id)

    async def set_folder_open(self, folder_id: str, is_open: bool) -> Folder:
        await self._apply(self.engine.set_folder_open, folder_id, is_open)
        return self.get_folder(folder_id)

    async def move_folder(self, folder_id: str, target_parent_id: str | None) -> Folder:
        await self._apply(self.engine.move_folder, folder_id, target_parent_id)
        return self.get_folder(folder_id)

    async def update_folder(self, folder_id: str, **changes) -> Folder:
        """Apply `name`, `parent_id` and `is_open` together, or none of them."""
        await self._apply(self.engine.update_folder, folder_id, **changes)
        return self.get_folder(folder_id)

    async def delete_folder(self, folder_id: str) -> Mutation:
        mutation = await self._apply(self.engine.delete_folder, folder_id)
        self._forget_notes(mutation.removed_note_ids)
        return mutation

    # --- notes -------------------------------------------------------------

    async def create_note(self, title: str = "Untitled Page", folder_id: str | None = None) -> Note:
        mutation = await self._apply(self.engine.create_note, title, folder_id)
        return mutation.created_notes[0]

    async def rename_note(self, note_id: str, title: str) -> Note:
        await self._apply(self.engine.rename_note, note_id, title)
        return self.get_note(note_id)

    async def move_note(self, note_id: str, target_folder_id: str | None) -> Note:
        await self._apply(self.engine.move_note, note_id, target_folder_id)
        return self.get_note(note_id)

    async def move_note_by_token(self, token: object, target_folder_id: str | None) -> Note:
        """Drop-target entry point: `token` is the raw transferred identifier."""
        return await self.move_note(parse_note_id(token), target_folder_id)

    async def update_note(self, note_id: str, title: str | None = None, content: str | None = None) -> Note:
        await self._apply(self.engine.update_note, note_id, title, content)
        return self.get_note(note_id)

    async def delete_note(self, note_id: str) -> Mutation:
        mutation = await self._apply(self.engine.delete_note, note_id)
        self._forget_notes(mutation.removed_note_ids)
        return mutation

    def _forget_notes(self, note_ids: set[str]) -> None:
        for note_id in note_ids:
            self._autosave.forget(note_id)
            self._drafts.pop(note_id, None)
            self._status.pop(note_id, None)
        if self.active_note_id in note_ids:
            self.active_note_id = None

    # --- editing / autosave ----------------------------------------------

    async def select_note(self, note_id: str | None) -> Note | None:
        """Make `note_id` the active note, flushing the previous note's pending edit."""
        note = self.get_note(note_id) if note_id is not None else None
        previous = self.active_note_id
        if previous is not None and previous != note_id:
            await self.flush(previous)
        self.active_note_id = note_id
        return note

    def edit_note(self, note_id: str, title: str | None = None, content: str | None = None) -> Note:
        """Record a keystroke-level edit and (re)start the note's autosave timer."""
        self.get_note(note_id)
        draft = self._drafts.setdefault(note_id, {})
        if title is not None:
            draft["title"] = title
        if content is not None:
            draft["content"] = content
        self._status[note_id] = "saving"
        self._autosave.schedule(note_id)
        return self.get_note(note_id)

    def append_content(self, note_id: str, text: str) -> Note:
        current = self.get_note(note_id)
        return self.edit_note(note_id, content=current.content + text)

    def has_pending_edit(self, note_id: str) -> bool:
        return note_id in self._drafts

    async def flush(self, note_id: str) -> None:
        await self._autosave.flush(note_id)

    async def flush_all(self) -> None:
        await self._autosave.flush_all()

    async def _save_draft(self, note_id: str) -> None:
        draft = self._drafts.get(note_id)
        if draft is None:
            return
        sent = dict(draft)
        try:
            await self.update_note(note_id, sent.get("title"), sent.get("content"))
        except PersistenceError:
            # The draft stays visible and is written again on the next edit or flush
            self._status[note_id] = "error"
            raise
        except ReferenceNotFound:
            self._drafts.pop(note_id, None)
            self._status.pop(note_id, None)
            raise
        # Edits typed while the write was in flight keep the draft alive
        if self._drafts.get(note_id) == sent:
            del self._drafts[note_id]
            self._status[note_id] = "saved"
        logger.debug("Autosaved note", extra={"note_id": note_id})
