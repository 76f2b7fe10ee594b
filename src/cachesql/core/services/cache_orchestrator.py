"""Cache orchestrator - coordinates the cached read path and the invalidating write path."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from cachesql.core.entities.cache_config import CacheConfig
from cachesql.core.entities.measurement import MeasurementKind
from cachesql.core.entities.query_descriptor import QueryDescriptor
from cachesql.core.errors import InvalidationFailed, SerializationError, StoreUnavailable
from cachesql.core.interfaces.cache_policy import ICachePolicy
from cachesql.core.interfaces.key_deriver import IKeyDeriver
from cachesql.core.interfaces.measurement_sink import IMeasurementSink
from cachesql.core.interfaces.serializer import ISerializer
from cachesql.core.interfaces.tag_deriver import ITagDeriver
from cachesql.core.interfaces.tagged_store import ITaggedCacheStore
from cachesql.core.services.cache_policy import CachePolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheOrchestrator:
    """Domain service that orchestrates cache-aside reads and invalidating writes.

    This is the main entry point for cache operations. A data-access
    layer calls run_cached_select at its read execution boundary and
    run_invalidating_mutation at its write execution boundary, passing a
    descriptor and an async execution callable.

    The store is only touched for its own bookkeeping; no lock is held
    while the execution callable runs.
    """

    def __init__(
        self,
        store: ITaggedCacheStore,
        key_deriver: IKeyDeriver,
        tag_deriver: ITagDeriver,
        serializer: ISerializer,
        policy: ICachePolicy | None = None,
        config: CacheConfig | None = None,
        measurement_sink: IMeasurementSink | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: The tagged cache store.
            key_deriver: Derives cache keys from descriptors.
            tag_deriver: Derives invalidation tags from descriptors.
            serializer: Encodes results for the store.
            policy: Decides cacheability. Defaults to CachePolicy(config).
            config: Optional cache configuration. Uses defaults if not provided.
            measurement_sink: Optional receiver of hit/miss events.
        """
        self._store = store
        self._key_deriver = key_deriver
        self._tag_deriver = tag_deriver
        self._serializer = serializer
        self._config = config or CacheConfig()
        self._policy = policy or CachePolicy(self._config)
        self._measurement_sink = measurement_sink

        # Tags whose invalidation failed, with a flag counter
        self._pending: dict[str, int] = {}

        # Statistics
        self._hits = 0
        self._misses = 0
        self._bypassed = 0
        self._degraded = 0
        self._rejected = 0

    @property
    def config(self) -> CacheConfig:
        """Get the cache configuration."""
        return self._config

    @property
    def store(self) -> ITaggedCacheStore:
        """Get the tagged cache store."""
        return self._store

    @property
    def stats(self) -> dict[str, int]:
        """Get cache statistics.

        Returns:
            Dictionary with hits, misses, bypassed (not cached by
            decision or pending invalidation), degraded (store errors),
            rejected (stale writes) and total lookups.
        """
        return {
            "hits": self._hits,
            "misses": self._misses,
            "bypassed": self._bypassed,
            "degraded": self._degraded,
            "rejected": self._rejected,
            "total": self._hits + self._misses,
        }

    @property
    def pending_invalidations(self) -> frozenset[str]:
        """Tags awaiting a re-invalidation sweep."""
        return frozenset(self._pending)

    async def run_cached_select(
        self,
        descriptor: QueryDescriptor,
        execute: Callable[[], Awaitable[T]],
    ) -> T:
        """Run a read query through the cache.

        Returns a previously stored result for an identical raw text and
        parameter list, or the result of a fresh execution, which is
        then stored. Store failures degrade to direct execution.
        Failures and cancellations of execute propagate unchanged and
        nothing is stored.

        Args:
            descriptor: The query descriptor.
            execute: Runs the query and returns its rows.

        Returns:
            The query result.
        """
        decision = self._policy.decide(descriptor)
        if not decision:
            self._bypassed += 1
            logger.debug(f"Not caching ({decision.reason}): {descriptor.raw_text}")
            return await execute()

        try:
            key = str(self._key_deriver.key(descriptor))
        except TypeError as e:
            # Parameters without a stable encoding cannot share a key
            self._bypassed += 1
            logger.debug(f"Not caching (unhashable parameters): {e}")
            return await execute()

        tags = self._tag_deriver.tags(descriptor)

        if self._has_pending(tags):
            self._bypassed += 1
            logger.debug(f"Bypassing cache for {key}: tags awaiting invalidation")
            return await execute()

        self._start_measuring()

        try:
            # Snapshot before execution so a concurrent invalidation
            # makes the later write stale
            generations = await self._store.generations(tags)
            cached = await self._store.get(key)
        except StoreUnavailable as e:
            self._degraded += 1
            logger.warning(f"Cache store unavailable, executing directly: {e}")
            return await execute()

        if cached is not None:
            try:
                value = self._serializer.deserialize(cached)
            except SerializationError as e:
                logger.warning(f"Ignoring unreadable cache entry {key}: {e}")
            else:
                self._hits += 1
                self._end_measuring(MeasurementKind.HIT, key, tags, descriptor)
                return value

        self._misses += 1
        self._end_measuring(MeasurementKind.MISS, key, tags, descriptor)

        result = await execute()
        await self._store_result(key, tags, result, generations)
        return result

    async def run_invalidating_mutation(
        self,
        descriptor: QueryDescriptor,
        execute: Callable[[], Awaitable[T]],
    ) -> T:
        """Invalidate the tags a mutation touches, then run it.

        Invalidation is retried with exponential backoff. If it still
        fails, the tags are flagged for sweep_pending_invalidations, the
        mutation runs anyway, and InvalidationFailed is raised after it
        (unless disabled in the configuration). A failure of the
        mutation itself takes precedence and propagates unchanged.

        Args:
            descriptor: The mutation descriptor.
            execute: Runs the mutation and returns its result.

        Returns:
            The mutation result.

        Raises:
            InvalidationFailed: If the tags could not be invalidated.
        """
        tags = self._tag_deriver.tags(descriptor)
        if not tags:
            logger.warning(f"Mutation touches no known table: {descriptor.raw_text}")

        failure = await self._invalidate_or_flag(tags)

        result = await execute()

        if failure is None and self._config.invalidate_after_write:
            failure = await self._invalidate_or_flag(tags)

        if failure is not None and self._config.raise_on_invalidation_failure:
            raise InvalidationFailed(tags, result=result) from failure

        return result

    async def invalidate(self, tags: Iterable[str]) -> int:
        """Invalidate cached entries by tags.

        Args:
            tags: Tags to invalidate.

        Returns:
            Number of entries invalidated.

        Raises:
            StoreUnavailable: If invalidation keeps failing after retries.
        """
        tags = frozenset(tags)
        snapshot = {tag: self._pending[tag] for tag in tags if tag in self._pending}
        removed = await self._invalidate_with_retry(tags)
        self._clear_pending(snapshot)
        return removed

    async def sweep_pending_invalidations(self) -> int:
        """Retry the invalidations that failed on the write path.

        Meant to be called periodically by a background task.

        Returns:
            Number of tags cleared from the pending set.
        """
        if not self._pending:
            return 0

        snapshot = dict(self._pending)
        try:
            await self._invalidate_with_retry(frozenset(snapshot))
        except StoreUnavailable as e:
            logger.warning(f"Re-invalidation of {len(snapshot)} tags failed: {e}")
            return 0

        return self._clear_pending(snapshot)

    async def flush(self) -> None:
        """Clear all cached entries and reset statistics."""
        await self._store.flush()
        self._pending.clear()
        self._hits = 0
        self._misses = 0
        self._bypassed = 0
        self._degraded = 0
        self._rejected = 0

    async def _store_result(
        self,
        key: str,
        tags: frozenset[str],
        result: Any,
        generations: dict[str, int],
    ) -> None:
        """Serialize and store a fresh result, logging instead of failing."""
        if self._has_pending(tags):
            return

        try:
            payload = self._serializer.serialize(result)
        except SerializationError as e:
            logger.warning(f"Not caching result for {key}: {e}")
            return

        try:
            stored = await self._store.set(key, tags, payload, generations=generations)
        except StoreUnavailable as e:
            self._degraded += 1
            logger.warning(f"Cache store unavailable, result not cached: {e}")
            return

        if not stored:
            self._rejected += 1
            logger.debug(f"Discarded result for {key}: invalidated during execution")

    async def _invalidate_or_flag(
        self, tags: frozenset[str]
    ) -> StoreUnavailable | None:
        """Invalidate tags, flagging them as pending when it fails."""
        try:
            await self._invalidate_with_retry(tags)
        except StoreUnavailable as e:
            for tag in tags:
                self._pending[tag] = self._pending.get(tag, 0) + 1
            logger.error(
                f"Invalidation of {sorted(tags)} failed, flagged for re-invalidation: {e}"
            )
            return e
        return None

    async def _invalidate_with_retry(self, tags: frozenset[str]) -> int:
        if not tags:
            return 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._config.invalidation_attempts),
            wait=wait_exponential(
                multiplier=self._config.invalidation_backoff,
                max=self._config.invalidation_backoff_max,
            ),
            retry=retry_if_exception_type(StoreUnavailable),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

        removed = 0
        async for attempt in retrying:
            with attempt:
                removed = await self._store.invalidate(tags)
        return removed

    def _has_pending(self, tags: frozenset[str]) -> bool:
        return bool(self._pending) and any(tag in self._pending for tag in tags)

    def _clear_pending(self, snapshot: dict[str, int]) -> int:
        # A tag flagged again since the snapshot stays pending
        cleared = 0
        for tag, count in snapshot.items():
            if self._pending.get(tag) == count:
                del self._pending[tag]
                cleared += 1
        return cleared

    def _start_measuring(self) -> None:
        if self._measurement_sink is None:
            return
        try:
            self._measurement_sink.start_measuring()
        except Exception as e:
            logger.debug(f"Measurement sink failed to start: {e}")

    def _end_measuring(
        self,
        kind: MeasurementKind,
        key: str,
        tags: frozenset[str],
        descriptor: QueryDescriptor,
    ) -> None:
        if self._measurement_sink is None:
            return
        try:
            self._measurement_sink.end_measuring(
                kind,
                key,
                tags,
                descriptor.raw_text,
                descriptor.bound_parameters,
            )
        except Exception as e:
            logger.debug(f"Measurement sink failed to record {kind.value}: {e}")
