"""Unit tests for upload/reclaimer.py — EmptyFolderReclaimer."""

from tests.unit.fakes import InMemoryDocumentStore
from workspace_sync.remote.models import FolderNode
from workspace_sync.upload.reclaimer import EmptyFolderReclaimer
from workspace_sync.workspace.cache import FolderTreeCache

SCOPE_ID = 1

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_reclaimer(
    store: InMemoryDocumentStore,
) -> tuple[EmptyFolderReclaimer, FolderTreeCache]:
    cache = FolderTreeCache(store.folders.values())
    return EmptyFolderReclaimer(store, cache, SCOPE_ID), cache


# ---------------------------------------------------------------------------
# reclaim tests
# ---------------------------------------------------------------------------


class TestReclaim:
    async def test_deletes_empty_and_keeps_populated(self) -> None:
        store = InMemoryDocumentStore()
        project = store.add_folder("ProjectX")
        notes = store.add_folder("Notes", project.id)
        branch = store.add_folder("empty-branch", project.id)
        store.add_file("todo.txt", notes.id)
        reclaimer, cache = _make_reclaimer(store)

        result = await reclaimer.reclaim([project.id, notes.id, branch.id])

        assert result.deleted_folder_ids == [branch.id]
        assert result.failed_folder_ids == []
        assert branch.id not in cache
        assert project.id in store.folders
        assert notes.id in store.folders

    async def test_deletes_deepest_first(self) -> None:
        store = InMemoryDocumentStore()
        a = store.add_folder("a")
        b = store.add_folder("b", a.id)
        c = store.add_folder("c", b.id)
        reclaimer, _ = _make_reclaimer(store)

        result = await reclaimer.reclaim([a.id, b.id, c.id])

        assert result.deleted_folder_ids == [c.id, b.id, a.id]
        assert store.delete_calls == [c.id, b.id, a.id]
        assert store.folders == {}

    async def test_walks_up_into_pre_existing_parent(self) -> None:
        store = InMemoryDocumentStore()
        existing = store.add_folder("Existing")
        created = store.add_folder("New", existing.id)
        reclaimer, _ = _make_reclaimer(store)

        result = await reclaimer.reclaim([created.id])

        assert result.deleted_folder_ids == [created.id, existing.id]

    async def test_stops_at_non_empty_parent(self) -> None:
        store = InMemoryDocumentStore()
        existing = store.add_folder("Existing")
        store.add_file("keep.txt", existing.id)
        created = store.add_folder("New", existing.id)
        reclaimer, _ = _make_reclaimer(store)

        result = await reclaimer.reclaim([created.id])

        assert result.deleted_folder_ids == [created.id]
        assert existing.id in store.folders

    async def test_parent_emptied_by_later_sibling_is_deleted(self) -> None:
        store = InMemoryDocumentStore()
        parent = store.add_folder("P")
        left = store.add_folder("A", parent.id)
        right = store.add_folder("B", parent.id)
        reclaimer, _ = _make_reclaimer(store)

        result = await reclaimer.reclaim([parent.id, left.id, right.id])

        assert result.deleted_folder_ids == [left.id, right.id, parent.id]

    async def test_failed_delete_does_not_block_others(self) -> None:
        store = InMemoryDocumentStore()
        stuck = store.add_folder("stuck")
        loose = store.add_folder("loose")
        store.failing_deletes.add(stuck.id)
        reclaimer, cache = _make_reclaimer(store)

        result = await reclaimer.reclaim([stuck.id, loose.id])

        assert result.failed_folder_ids == [stuck.id]
        assert result.deleted_folder_ids == [loose.id]
        assert stuck.id in cache

    async def test_second_pass_deletes_nothing(self) -> None:
        store = InMemoryDocumentStore()
        a = store.add_folder("a")
        b = store.add_folder("b", a.id)
        reclaimer, _ = _make_reclaimer(store)
        await reclaimer.reclaim([a.id, b.id])
        store.delete_calls.clear()

        result = await reclaimer.reclaim([a.id, b.id])

        assert result.deleted_folder_ids == []
        assert result.failed_folder_ids == []
        assert store.folders == {}

    async def test_failed_live_check_keeps_folder(self) -> None:
        store = InMemoryDocumentStore()
        empty = store.add_folder("empty")
        store.fail_listing = True
        reclaimer, cache = _make_reclaimer(store)

        result = await reclaimer.reclaim([empty.id])

        assert result.deleted_folder_ids == []
        assert store.delete_calls == []
        assert empty.id in cache

    async def test_no_candidates_skips_listing(self) -> None:
        store = InMemoryDocumentStore()
        reclaimer, _ = _make_reclaimer(store)

        result = await reclaimer.reclaim([])

        assert result.deleted_folder_ids == []
        assert store.list_folder_calls == []

    async def test_folder_filled_after_upload_is_kept(self) -> None:
        store = InMemoryDocumentStore()
        folder = store.add_folder("late")
        reclaimer, _ = _make_reclaimer(store)
        # A concurrent writer adds a file after the cache was built.
        store.add_file("late.txt", folder.id)

        result = await reclaimer.reclaim([folder.id])

        assert result.deleted_folder_ids == []
        assert folder.id in store.folders


# ---------------------------------------------------------------------------
# Filtered listing tests
# ---------------------------------------------------------------------------


class TestFilteredListings:
    async def test_nested_candidates_absent_from_root_listing_are_reclaimed(self) -> None:
        store = InMemoryDocumentStore()
        root = store.add_folder("Root")
        store.add_file("keep.txt", root.id)
        mid = store.add_folder("Mid", root.id)
        leaf = store.add_folder("Leaf", mid.id)
        reclaimer, _ = _make_reclaimer(store)

        assert [f.id for f in await store.list_folders(SCOPE_ID)] == [root.id]

        result = await reclaimer.reclaim([mid.id, leaf.id])

        assert result.deleted_folder_ids == [leaf.id, mid.id]
        assert root.id in store.folders

    async def test_walks_into_parent_known_only_from_cache(self) -> None:
        store = InMemoryDocumentStore()
        root = store.add_folder("Root")
        store.add_file("keep.txt", root.id)
        existing = store.add_folder("Existing", root.id)
        created = store.add_folder("New", existing.id)
        cache = FolderTreeCache([existing, created])
        reclaimer = EmptyFolderReclaimer(store, cache, SCOPE_ID)

        result = await reclaimer.reclaim([created.id])

        assert result.deleted_folder_ids == [created.id, existing.id]
        assert existing.id not in cache

    async def test_inaccessible_folder_is_treated_as_gone(self) -> None:
        store = InMemoryDocumentStore()
        folder = store.add_folder("Hidden")
        store.hidden_folders.add(folder.id)
        reclaimer, _ = _make_reclaimer(store)

        result = await reclaimer.reclaim([folder.id])

        assert result.deleted_folder_ids == []
        assert result.failed_folder_ids == []
        assert store.delete_calls == []

    async def test_vanished_folder_is_not_a_failure(self) -> None:
        store = InMemoryDocumentStore()
        cache = FolderTreeCache([FolderNode(id=5, name="Gone")])
        reclaimer = EmptyFolderReclaimer(store, cache, SCOPE_ID)

        result = await reclaimer.reclaim([5])

        assert store.delete_calls == [5]
        assert result.deleted_folder_ids == []
        assert result.failed_folder_ids == []
