"""Read-only parent/child index over the flat folder and note lists."""

from collections import defaultdict
from collections.abc import Iterable

from zennote.schemas import Folder, FolderTree, FolderTreeResponse, Note, NoteRef


class HierarchyIndex:
    """Transient view of one snapshot.

    Folders whose parent does not resolve are treated as roots and notes
    whose folder does not resolve as unfiled, so a dangling reference in
    imported data never hides an entity.
    """

    def __init__(self, folders: Iterable[Folder], notes: Iterable[Note]) -> None:
        self._folders: dict[str, Folder] = {f.id: f for f in folders}
        self._notes: dict[str, Note] = {n.id: n for n in notes}

        self._child_folders: dict[str | None, list[Folder]] = defaultdict(list)
        for f in self._folders.values():
            self._child_folders[self._resolve_parent(f)].append(f)

        self._child_notes: dict[str | None, list[Note]] = defaultdict(list)
        for n in self._notes.values():
            key = n.folder_id if n.folder_id in self._folders else None
            self._child_notes[key].append(n)

    def _resolve_parent(self, folder: Folder) -> str | None:
        if folder.parent_id is None or folder.parent_id not in self._folders:
            return None
        return folder.parent_id

    def folder(self, folder_id: str) -> Folder | None:
        return self._folders.get(folder_id)

    def note(self, note_id: str) -> Note | None:
        return self._notes.get(note_id)

    def child_folders(self, parent_id: str | None) -> list[Folder]:
        return list(self._child_folders.get(parent_id, []))

    def child_notes(self, folder_id: str | None) -> list[Note]:
        return list(self._child_notes.get(folder_id, []))

    def descendant_folder_ids(self, root_id: str) -> set[str]:
        """All folders below `root_id`. Stops at already-visited folders, so a cycle terminates."""
        result: set[str] = set()
        frontier = [root_id]
        while frontier:
            next_ids = [
                child.id
                for parent_id in frontier
                for child in self._child_folders.get(parent_id, [])
            ]
            frontier = [i for i in next_ids if i not in result and i != root_id]
            result.update(frontier)
        return result

    def is_ancestor(self, ancestor_id: str, folder_id: str) -> bool:
        seen: set[str] = set()
        current = self._folders.get(folder_id)
        while current is not None and current.id not in seen:
            seen.add(current.id)
            parent_id = self._resolve_parent(current)
            if parent_id is None:
                return False
            if parent_id == ancestor_id:
                return True
            current = self._folders.get(parent_id)
        return False

    def cascade(self, folder_id: str) -> tuple[set[str], set[str]]:
        """Folder ids and note ids removed together with `folder_id`."""
        folder_ids = self.descendant_folder_ids(folder_id) | {folder_id}
        note_ids = {n.id for n in self._notes.values() if n.folder_id in folder_ids}
        return folder_ids, note_ids

    def search(self, term: str) -> list[Note]:
        needle = term.strip().lower()
        if not needle:
            return []
        return [
            n
            for n in self._notes.values()
            if needle in n.title.lower() or needle in n.content.lower()
        ]

    def tree(self) -> FolderTreeResponse:
        """Nested folders with their notes, plus unfiled notes."""

        def build(folder: Folder, path: set[str]) -> FolderTree:
            path = path | {folder.id}
            return FolderTree(
                id=folder.id,
                name=folder.name,
                parent_folder_id=self._resolve_parent(folder),
                is_open=folder.is_open,
                children=[build(c, path) for c in self._child_folders.get(folder.id, []) if c.id not in path],
                notes=[_note_ref(n) for n in self._child_notes.get(folder.id, [])],
            )

        roots = [build(f, set()) for f in self._child_folders.get(None, [])]
        root_notes = [_note_ref(n) for n in self._child_notes.get(None, [])]
        return FolderTreeResponse(roots=roots, root_notes=root_notes)


def _note_ref(note: Note) -> NoteRef:
    return NoteRef(id=note.id, title=note.title, updated_at=note.updated_at)
