"""Integration tests for the SQLite busy block store."""

import pytest

from whosfree.calendar.models import BusyBlockInput
from whosfree.storage.database import BusyBlockStore

pytestmark = pytest.mark.integration


def _input(weekday: int, start: str, end: str) -> BusyBlockInput:
    return BusyBlockInput(weekday=weekday, start_time=start, end_time=end)


class TestGroupMembership:
    async def test_membership(self, store: BusyBlockStore):
        await store.add_group_member("g1", "alice")
        assert await store.is_group_member("g1", "alice")
        assert not await store.is_group_member("g1", "bob")
        assert not await store.is_group_member("g2", "alice")

    async def test_adding_twice_is_harmless(self, store: BusyBlockStore):
        await store.add_group_member("g1", "alice")
        await store.add_group_member("g1", "alice")
        assert [m.user_id for m in await store.fetch_group_members("g1")] == ["alice"]

    async def test_members_joined_with_profiles_in_join_order(self, store: BusyBlockStore):
        await store.upsert_profile("bob", "Bob B")
        await store.add_group_member("g1", "carol")
        await store.add_group_member("g1", "bob")
        await store.add_group_member("g2", "dave")

        members = await store.fetch_group_members("g1")
        assert [(m.user_id, m.display_name) for m in members] == [
            ("carol", None),
            ("bob", "Bob B"),
        ]

    async def test_profile_upsert_replaces_name(self, store: BusyBlockStore):
        await store.upsert_profile("bob", "Bob")
        await store.upsert_profile("bob", "Robert")
        await store.add_group_member("g1", "bob")
        (member,) = await store.fetch_group_members("g1")
        assert member.display_name == "Robert"

    async def test_unknown_group_has_no_members(self, store: BusyBlockStore):
        assert await store.fetch_group_members("nope") == []


class TestBusyBlocks:
    async def test_replace_and_fetch(self, store: BusyBlockStore):
        written = await store.replace_busy_blocks(
            "alice", [_input(2, "10:00:00", "11:30:00"), _input(4, "10:00:00", "11:30:00")]
        )
        assert written == 2

        tuesday = await store.fetch_busy_blocks(2, ["alice"])
        assert [(b.user_id, b.weekday, b.start_time, b.end_time) for b in tuesday] == [
            ("alice", 2, "10:00:00", "11:30:00")
        ]
        assert await store.fetch_busy_blocks(3, ["alice"]) == []

    async def test_replace_discards_previous_blocks(self, store: BusyBlockStore):
        await store.replace_busy_blocks("alice", [_input(2, "10:00:00", "11:00:00")])
        await store.replace_busy_blocks("alice", [_input(2, "14:00:00", "15:00:00")])
        blocks = await store.fetch_busy_blocks(2, ["alice"])
        assert [(b.start_time, b.end_time) for b in blocks] == [("14:00:00", "15:00:00")]

    async def test_upload_with_no_blocks_still_counts_as_uploaded(self, store: BusyBlockStore):
        assert await store.replace_busy_blocks("alice", []) == 0
        assert await store.fetch_uploaded_user_ids(["alice", "bob"]) == {"alice"}

    async def test_fetch_filters_users(self, store: BusyBlockStore):
        await store.replace_busy_blocks("alice", [_input(1, "09:00:00", "10:00:00")])
        await store.replace_busy_blocks("bob", [_input(1, "11:00:00", "12:00:00")])
        blocks = await store.fetch_busy_blocks(1, ["bob"])
        assert {b.user_id for b in blocks} == {"bob"}

    async def test_empty_user_list_short_circuits(self, store: BusyBlockStore):
        assert await store.fetch_busy_blocks(1, []) == []
        assert await store.fetch_uploaded_user_ids([]) == set()

    async def test_delete_calendar(self, store: BusyBlockStore):
        await store.replace_busy_blocks("alice", [_input(1, "09:00:00", "10:00:00")])
        assert await store.delete_calendar("alice") is True
        assert await store.fetch_uploaded_user_ids(["alice"]) == set()
        assert await store.fetch_busy_blocks(1, ["alice"]) == []
        assert await store.delete_calendar("alice") is False


class TestLazyInitialization:
    async def test_first_use_creates_schema(self, tmp_path):
        lazy = BusyBlockStore(tmp_path / "nested" / "lazy.db")
        assert await lazy.fetch_group_members("g1") == []
        assert (tmp_path / "nested" / "lazy.db").exists()
