from zennote.services.hierarchy import HierarchyIndex
from tests.factories import folder, note


def make_index(*items):
    folders = [i for i in items if i.id.startswith("f")]
    notes = [i for i in items if i.id.startswith("n")]
    return HierarchyIndex(folders, notes)


class TestChildren:
    def test_child_folders_keep_insertion_order(self):
        index = make_index(
            folder("f-b"),
            folder("f-a"),
            folder("f-c", parent_id="f-b"),
            folder("f-d", parent_id="f-b"),
        )
        assert [f.id for f in index.child_folders(None)] == ["f-b", "f-a"]
        assert [f.id for f in index.child_folders("f-b")] == ["f-c", "f-d"]
        assert index.child_folders("f-c") == []

    def test_orphaned_folder_is_a_root(self):
        index = make_index(folder("f-a"), folder("f-lost", parent_id="f-deleted"))
        assert [f.id for f in index.child_folders(None)] == ["f-a", "f-lost"]

    def test_child_notes(self):
        index = make_index(
            folder("f-a"),
            note("n-1", "f-a"),
            note("n-2"),
            note("n-3", "f-gone"),
        )
        assert [n.id for n in index.child_notes("f-a")] == ["n-1"]
        assert [n.id for n in index.child_notes(None)] == ["n-2", "n-3"]


class TestDescendants:
    def test_transitive_closure(self):
        index = make_index(
            folder("f-a"),
            folder("f-b", parent_id="f-a"),
            folder("f-c", parent_id="f-b"),
            folder("f-d", parent_id="f-a"),
            folder("f-other"),
        )
        assert index.descendant_folder_ids("f-a") == {"f-b", "f-c", "f-d"}
        assert index.descendant_folder_ids("f-c") == set()

    def test_fabricated_cycle_terminates(self):
        index = make_index(
            folder("f-a", parent_id="f-c"),
            folder("f-b", parent_id="f-a"),
            folder("f-c", parent_id="f-b"),
        )
        assert index.descendant_folder_ids("f-a") == {"f-b", "f-c"}
        assert "f-b" not in index.descendant_folder_ids("f-b")

    def test_self_parent_terminates(self):
        index = make_index(folder("f-a", parent_id="f-a"))
        assert index.descendant_folder_ids("f-a") == set()

    def test_is_ancestor(self):
        index = make_index(
            folder("f-a"),
            folder("f-b", parent_id="f-a"),
            folder("f-c", parent_id="f-b"),
        )
        assert index.is_ancestor("f-a", "f-c")
        assert not index.is_ancestor("f-c", "f-a")
        assert not index.is_ancestor("f-a", "f-a")

    def test_is_ancestor_in_cycle_terminates(self):
        index = make_index(folder("f-a", parent_id="f-b"), folder("f-b", parent_id="f-a"))
        assert index.is_ancestor("f-b", "f-a")
        assert not index.is_ancestor("f-x", "f-a")

    def test_cascade_collects_folders_and_their_notes(self):
        index = make_index(
            folder("f-a"),
            folder("f-b", parent_id="f-a"),
            folder("f-keep"),
            note("n-1", "f-b"),
            note("n-2", "f-a"),
            note("n-3", "f-keep"),
            note("n-4"),
        )
        folder_ids, note_ids = index.cascade("f-a")
        assert folder_ids == {"f-a", "f-b"}
        assert note_ids == {"n-1", "n-2"}


class TestViews:
    def test_search_matches_title_or_content(self):
        index = make_index(
            note("n-1", title="Shopping List"),
            note("n-2", title="Ideas", content="<p>buy a new LIST</p>"),
            note("n-3", title="Other"),
        )
        assert [n.id for n in index.search("list")] == ["n-1", "n-2"]
        assert index.search("   ") == []

    def test_tree(self):
        index = make_index(
            folder("f-a", name="Work"),
            folder("f-b", name="Plans", parent_id="f-a", is_open=False),
            note("n-1", "f-b", title="Q3"),
            note("n-2", title="Loose"),
        )
        tree = index.tree()
        assert [r.name for r in tree.roots] == ["Work"]
        plans = tree.roots[0].children[0]
        assert plans.name == "Plans"
        assert plans.is_open is False
        assert [n.title for n in plans.notes] == ["Q3"]
        assert [n.title for n in tree.root_notes] == ["Loose"]
