"""Tests for InMemoryTaggedCacheStore."""

import asyncio
import random
from datetime import timedelta

import pytest

from cachesql import CacheConfig, InMemoryTaggedCacheStore
from cachesql.core.entities.tags import EPOCH


class FakeClock:
    """Manually advanced clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def assert_index_consistent(store: InMemoryTaggedCacheStore) -> None:
    """Every entry is indexed under its tags and the index lists only live entries."""
    entries = store.entries_snapshot()
    index = store.index_snapshot()

    for key, tags in entries.items():
        for tag in tags:
            assert key in index.get(tag, ()), f"{key} missing from index of {tag}"

    for tag, keys in index.items():
        assert keys, f"empty index set left for {tag}"
        for key in keys:
            assert key in entries, f"index of {tag} lists dropped key {key}"
            assert tag in entries[key]


class TestInMemoryTaggedCacheStore:
    """Tests for InMemoryTaggedCacheStore."""

    @pytest.fixture
    def store(self) -> InMemoryTaggedCacheStore:
        """Create a store for testing."""
        return InMemoryTaggedCacheStore(maxsize=100, default_ttl=300.0)

    async def test_set_and_get(self, store: InMemoryTaggedCacheStore) -> None:
        """Test basic set and get operations."""
        assert await store.set("key1", ["table:users"], b"value1") is True

        assert await store.get("key1") == b"value1"
        assert await store.has("key1") is True
        assert store.keys_for_tag("table:users") == frozenset({"key1"})

    async def test_get_missing_key(self, store: InMemoryTaggedCacheStore) -> None:
        """Test getting a missing key returns None."""
        assert await store.get("nonexistent") is None
        assert await store.has("nonexistent") is False

    async def test_overwrite_replaces_tags(self, store: InMemoryTaggedCacheStore) -> None:
        """Test a second set re-registers the key under its new tags only."""
        await store.set("key1", ["table:users"], b"v1")
        await store.set("key1", ["table:orders"], b"v2")

        assert await store.get("key1") == b"v2"
        assert store.keys_for_tag("table:users") == frozenset()
        assert store.keys_for_tag("table:orders") == frozenset({"key1"})
        assert_index_consistent(store)

    async def test_invalidate(self, store: InMemoryTaggedCacheStore) -> None:
        """Test invalidating removes every entry carrying a tag."""
        await store.set("users", ["table:users"], b"1")
        await store.set("join", ["table:users", "table:orders"], b"2")
        await store.set("orders", ["table:orders"], b"3")

        removed = await store.invalidate(["table:users"])

        assert removed == 2
        assert await store.get("users") is None
        assert await store.get("join") is None
        assert await store.get("orders") == b"3"
        # The join is gone from the index of its other tag too
        assert store.keys_for_tag("table:orders") == frozenset({"orders"})
        assert_index_consistent(store)

    async def test_invalidate_several_tags(self, store: InMemoryTaggedCacheStore) -> None:
        """Test an entry under two invalidated tags is counted once."""
        await store.set("join", ["table:users", "table:orders"], b"2")

        assert await store.invalidate(["table:users", "table:orders"]) == 1

    async def test_invalidate_nothing(self, store: InMemoryTaggedCacheStore) -> None:
        """Test invalidating no tags or unknown tags is harmless."""
        await store.set("key1", ["table:users"], b"1")

        assert await store.invalidate([]) == 0
        assert await store.invalidate(["table:unknown"]) == 0
        assert await store.get("key1") == b"1"

    async def test_generations(self, store: InMemoryTaggedCacheStore) -> None:
        """Test invalidation advances the generation of each tag."""
        before = await store.generations(["table:users", "table:orders"])
        await store.invalidate(["table:users"])
        after = await store.generations(["table:users", "table:orders"])

        assert before == {"table:users": 0, "table:orders": 0, EPOCH: 0}
        assert after == {"table:users": 1, "table:orders": 0, EPOCH: 0}

    async def test_stale_set_is_rejected(self, store: InMemoryTaggedCacheStore) -> None:
        """Test a set whose snapshot predates an invalidation is refused."""
        snapshot = await store.generations(["table:users"])
        await store.invalidate(["table:users"])

        stored = await store.set("key1", ["table:users"], b"old", generations=snapshot)

        assert stored is False
        assert await store.get("key1") is None
        assert_index_consistent(store)

    async def test_set_after_unrelated_invalidation(self, store: InMemoryTaggedCacheStore) -> None:
        """Test invalidating another tag does not reject the set."""
        snapshot = await store.generations(["table:users"])
        await store.invalidate(["table:orders"])

        assert await store.set("key1", ["table:users"], b"v", generations=snapshot) is True

    async def test_flush(self, store: InMemoryTaggedCacheStore) -> None:
        """Test flushing clears entries and rejects in-flight sets."""
        await store.set("key1", ["table:users"], b"1")
        snapshot = await store.generations(["table:users"])

        await store.flush()

        assert len(store) == 0
        assert store.index_snapshot() == {}
        assert await store.set("key2", ["table:users"], b"2", generations=snapshot) is False
        assert (await store.generations([]))[EPOCH] == 1

    async def test_lru_eviction_updates_index(self) -> None:
        """Test the least recently used entry leaves the index when evicted."""
        store = InMemoryTaggedCacheStore(maxsize=3, default_ttl=300.0)

        await store.set("key1", ["t1"], b"1")
        await store.set("key2", ["t2"], b"2")
        await store.set("key3", ["t3"], b"3")

        # Access key1 to make it recently used
        await store.get("key1")

        # Add key4, should evict key2 (least recently used)
        await store.set("key4", ["t4"], b"4")

        assert await store.get("key1") == b"1"
        assert await store.get("key2") is None
        assert store.keys_for_tag("t2") == frozenset()
        assert len(store) == 3
        assert_index_consistent(store)

    async def test_ttl_expiry_updates_index(self) -> None:
        """Test expired entries vanish from reads and from the index."""
        clock = FakeClock()
        store = InMemoryTaggedCacheStore(maxsize=10, default_ttl=10.0, timer=clock)

        await store.set("key1", ["table:users"], b"1")
        clock.now = 5.0
        assert await store.get("key1") == b"1"

        clock.now = 11.0
        assert await store.get("key1") is None
        assert await store.has("key1") is False

        assert store.entries_snapshot() == {}
        assert store.index_snapshot() == {}

    async def test_views_drop_expired_entries(self) -> None:
        """Test size and index views never report expired keys."""
        clock = FakeClock()
        store = InMemoryTaggedCacheStore(maxsize=10, default_ttl=10.0, timer=clock)
        await store.set("key1", ["table:users"], b"1")

        clock.now = 11.0

        assert len(store) == 0
        assert store.keys_for_tag("table:users") == frozenset()
        assert store.index_snapshot() == {}

    async def test_from_config(self) -> None:
        """Test sizing and TTL come from the configuration."""
        store = InMemoryTaggedCacheStore.from_config(
            CacheConfig(max_size=42, default_ttl=timedelta(seconds=30))
        )
        assert store.maxsize == 42

    def test_len(self) -> None:
        """Test getting cache size."""
        store = InMemoryTaggedCacheStore(maxsize=100)
        assert len(store) == 0


class TestIndexConsistency:
    """Randomized checks of the entry map and tag index."""

    @pytest.mark.parametrize("seed", range(5))
    async def test_concurrent_random_operations(self, seed: int) -> None:
        """Test the index matches the entries after interleaved operations."""
        rng = random.Random(seed)
        clock = FakeClock()
        store = InMemoryTaggedCacheStore(maxsize=8, default_ttl=20.0, timer=clock)
        keys = [f"k{i}" for i in range(15)]
        tags = [f"table:t{i}" for i in range(5)]

        async def operation() -> None:
            await asyncio.sleep(0)
            choice = rng.random()
            if choice < 0.5:
                snapshot = await store.generations(rng.sample(tags, 2))
                await asyncio.sleep(0)
                await store.set(
                    rng.choice(keys),
                    list(snapshot)[:-1],
                    b"v",
                    generations=snapshot,
                )
            elif choice < 0.7:
                await store.invalidate(rng.sample(tags, rng.randint(0, 2)))
            elif choice < 0.85:
                await store.get(rng.choice(keys))
            elif choice < 0.95:
                clock.now += rng.uniform(0, 5)
            else:
                await store.flush()

        for _ in range(10):
            await asyncio.gather(*(operation() for _ in range(20)))
            assert_index_consistent(store)
            assert len(store) <= 8
