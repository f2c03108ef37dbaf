import pytest

from zennote.errors import InvalidMove, PersistenceError, ReferenceNotFound
from zennote.schemas import Snapshot
from zennote.services.gateway import MemoryGateway
from zennote.services.mutations import MutationEngine
from tests.factories import folder, note, snapshot


class FailOnNthSave(MemoryGateway):
    def __init__(self, n: int) -> None:
        super().__init__("test_store")
        self.n = n
        self.calls = 0

    async def save(self, snapshot: Snapshot) -> None:
        self.calls += 1
        if self.calls == self.n:
            raise PersistenceError("disk full")
        await super().save(snapshot)


class TestCreate:
    async def test_create_root_folder(self, engine, gateway):
        mutation = await engine.create_folder(Snapshot(), "Work", None)
        created = mutation.created_folders[0]
        assert created.name == "Work"
        assert created.is_open
        assert (await gateway.load()).folders[0].id == created.id

    async def test_create_folder_with_missing_parent(self, engine, gateway):
        with pytest.raises(ReferenceNotFound) as exc_info:
            await engine.create_folder(Snapshot(), "X", "missing-id")
        assert exc_info.value.entity_id == "missing-id"
        assert gateway.save_count == 0

    async def test_create_in_closed_folder_opens_it(self, engine, gateway):
        base = snapshot(folder("f-a", is_open=False))
        mutation = await engine.create_folder(base, "Child", "f-a")

        assert gateway.save_count == 2
        assert [f.id for f in mutation.updated_folders] == ["f-a"]
        stored = await gateway.load()
        assert stored.folders[0].is_open is True
        assert stored.folders[1].parent_id == "f-a"

    async def test_create_in_open_folder_is_one_write(self, engine, gateway):
        await engine.create_note(snapshot(folder("f-a")), "Draft", "f-a")
        assert gateway.save_count == 1

    async def test_create_note_with_missing_folder(self, engine, gateway):
        with pytest.raises(ReferenceNotFound):
            await engine.create_note(Snapshot(), "Draft", "f-nope")
        assert gateway.save_count == 0

    async def test_failed_open_keeps_created_entity(self):
        gateway = FailOnNthSave(2)
        engine = MutationEngine(gateway)
        mutation = await engine.create_note(snapshot(folder("f-a", is_open=False)), "Draft", "f-a")

        assert len(mutation.created_notes) == 1
        assert mutation.updated_folders == []
        stored = await gateway.load()
        assert len(stored.notes) == 1
        assert stored.folders[0].is_open is False

    async def test_failed_create_write(self):
        engine = MutationEngine(FailOnNthSave(1))
        with pytest.raises(PersistenceError):
            await engine.create_folder(Snapshot(), "Work")


class TestRenameAndToggle:
    @pytest.mark.parametrize("name", ["", "   ", "\t\n"])
    async def test_blank_folder_rename_is_noop(self, engine, gateway, name):
        base = snapshot(folder("f-a", name="Work"))
        mutation = await engine.rename_folder(base, "f-a", name)
        assert mutation.is_empty
        assert mutation.snapshot.folders[0].name == "Work"
        assert gateway.save_count == 0

    async def test_blank_note_rename_is_noop(self, engine, gateway):
        mutation = await engine.rename_note(snapshot(note("n-1", title="Draft")), "n-1", "  ")
        assert mutation.is_empty
        assert gateway.save_count == 0

    async def test_rename_note_bumps_updated_at(self, gateway):
        engine = MutationEngine(gateway, clock=lambda: 500)
        mutation = await engine.rename_note(snapshot(note("n-1", title="Draft")), "n-1", "Final")
        renamed = mutation.updated_notes[0]
        assert renamed.title == "Final"
        assert renamed.updated_at == 500

    async def test_rename_missing(self, engine):
        with pytest.raises(ReferenceNotFound):
            await engine.rename_folder(Snapshot(), "f-nope", "Work")

    async def test_toggle(self, engine):
        mutation = await engine.toggle_folder(snapshot(folder("f-a")), "f-a")
        assert mutation.updated_folders[0].is_open is False
        mutation = await engine.toggle_folder(mutation.snapshot, "f-a")
        assert mutation.updated_folders[0].is_open is True


class TestMove:
    async def test_move_note_to_closed_folder_opens_it(self, engine, gateway):
        base = snapshot(folder("f-a", is_open=False), note("n-1"))
        mutation = await engine.move_note(base, "n-1", "f-a")
        assert mutation.updated_notes[0].folder_id == "f-a"
        assert mutation.updated_folders[0].is_open is True
        assert gateway.save_count == 2

    async def test_move_note_to_root(self, engine):
        mutation = await engine.move_note(snapshot(folder("f-a"), note("n-1", "f-a")), "n-1", None)
        assert mutation.snapshot.notes[0].folder_id is None

    async def test_move_note_to_missing_folder(self, engine, gateway):
        with pytest.raises(ReferenceNotFound):
            await engine.move_note(snapshot(note("n-1")), "n-1", "f-nope")
        assert gateway.save_count == 0

    async def test_move_folder_into_descendant(self, engine):
        base = snapshot(folder("f-a"), folder("f-b", parent_id="f-a"), folder("f-c", parent_id="f-b"))
        with pytest.raises(InvalidMove):
            await engine.move_folder(base, "f-a", "f-c")
        with pytest.raises(InvalidMove):
            await engine.move_folder(base, "f-a", "f-a")

    async def test_move_folder(self, engine):
        base = snapshot(folder("f-a"), folder("f-b"))
        mutation = await engine.move_folder(base, "f-b", "f-a")
        assert mutation.updated_folders[0].parent_id == "f-a"


class TestUpdateFolder:
    async def test_rename_and_move_in_one_write(self, engine, gateway):
        base = snapshot(folder("f-a", name="A"), folder("f-b", name="B"))
        mutation = await engine.update_folder(base, "f-b", name="Plans", parent_id="f-a", is_open=False)

        updated = mutation.updated_folders[0]
        assert (updated.name, updated.parent_id, updated.is_open) == ("Plans", "f-a", False)
        assert gateway.save_count == 1

    async def test_rejected_move_drops_the_rename(self, engine, gateway):
        base = snapshot(folder("f-a", name="A"), folder("f-b", parent_id="f-a"))
        with pytest.raises(InvalidMove):
            await engine.update_folder(base, "f-a", name="Renamed", parent_id="f-b")
        assert gateway.save_count == 0

    async def test_missing_target_drops_the_rename(self, engine, gateway):
        with pytest.raises(ReferenceNotFound) as exc:
            await engine.update_folder(snapshot(folder("f-a")), "f-a", name="Renamed", parent_id="f-nope")
        assert exc.value.entity_id == "f-nope"
        assert gateway.save_count == 0

    async def test_absent_parent_key_keeps_parent(self, engine):
        base = snapshot(folder("f-a"), folder("f-b", parent_id="f-a"))
        mutation = await engine.update_folder(base, "f-b", name="Kept")
        assert mutation.updated_folders[0].parent_id == "f-a"

        mutation = await engine.update_folder(base, "f-b", parent_id=None)
        assert mutation.updated_folders[0].parent_id is None

    async def test_move_into_closed_folder_opens_it(self, engine, gateway):
        base = snapshot(folder("f-a", is_open=False), folder("f-b"))
        mutation = await engine.update_folder(base, "f-b", parent_id="f-a")
        assert [f.id for f in mutation.updated_folders] == ["f-b", "f-a"]
        assert mutation.updated_folders[1].is_open is True
        assert gateway.save_count == 2

    async def test_nothing_to_change_writes_nothing(self, engine, gateway):
        mutation = await engine.update_folder(snapshot(folder("f-a", name="A")), "f-a", name="  ", is_open=True)
        assert mutation.is_empty
        assert gateway.save_count == 0

    async def test_unknown_field(self, engine):
        with pytest.raises(TypeError):
            await engine.update_folder(snapshot(folder("f-a")), "f-a", colour="red")


class TestUpdate:
    async def test_updated_at_strictly_increases_with_a_stalled_clock(self, gateway):
        engine = MutationEngine(gateway, clock=lambda: 100)
        current = snapshot(note("n-1"))
        stamps = []
        for i in range(3):
            mutation = await engine.update_note(current, "n-1", content=f"v{i}")
            current = mutation.snapshot
            stamps.append(current.notes[0].updated_at)
        assert stamps == [100, 101, 102]

    async def test_blank_title_keeps_old_title(self, engine):
        mutation = await engine.update_note(snapshot(note("n-1", title="Draft")), "n-1", title="", content="x")
        assert mutation.snapshot.notes[0].title == "Draft"
        assert mutation.snapshot.notes[0].content == "x"


class TestDelete:
    async def test_delete_note_has_no_cascade(self, engine):
        base = snapshot(folder("f-a"), note("n-1", "f-a"), note("n-2", "f-a"))
        mutation = await engine.delete_note(base, "n-1")
        assert [n.id for n in mutation.snapshot.notes] == ["n-2"]
        assert len(mutation.snapshot.folders) == 1

    async def test_delete_folder_removes_exactly_the_cascade(self, engine, gateway):
        base = snapshot(
            folder("f-a"),
            folder("f-b", parent_id="f-a"),
            folder("f-c", parent_id="f-b"),
            folder("f-keep"),
            note("n-1", "f-c"),
            note("n-2", "f-a"),
            note("n-3", "f-keep"),
            note("n-4"),
        )
        mutation = await engine.delete_folder(base, "f-a")

        assert mutation.removed_folder_ids == {"f-a", "f-b", "f-c"}
        assert mutation.removed_note_ids == {"n-1", "n-2"}
        stored = await gateway.load()
        assert [f.id for f in stored.folders] == ["f-keep"]
        assert [n.id for n in stored.notes] == ["n-3", "n-4"]
        assert gateway.save_count == 1

    async def test_failed_cascade_writes_nothing(self, engine, gateway):
        base = snapshot(folder("f-a"), folder("f-b", parent_id="f-a"), note("n-1", "f-b"))
        await gateway.save(base)
        gateway.fail_saves = True

        with pytest.raises(PersistenceError):
            await engine.delete_folder(base, "f-a")

        gateway.fail_saves = False
        stored = await gateway.load()
        assert len(stored.folders) == 2
        assert len(stored.notes) == 1

    async def test_delete_missing(self, engine):
        with pytest.raises(ReferenceNotFound):
            await engine.delete_folder(Snapshot(), "f-nope")
        with pytest.raises(ReferenceNotFound):
            await engine.delete_note(Snapshot(), "n-nope")
