"""Redis tagged cache store implementation."""

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from cachesql.core.entities.tags import EPOCH
from cachesql.core.errors import StoreUnavailable

logger = logging.getLogger(__name__)

# Tag sets are sorted sets scored by the expiry time of each member's
# entry (+inf when entries never expire). Tag lists inside entry hashes
# are newline separated.

# KEYS[1] entry hash
# ARGV: key, prefix, value, created_at, ttl, tags, then tag/generation pairs
_SET_SCRIPT = r"""
local key = ARGV[1]
local prefix = ARGV[2]
local ttl = tonumber(ARGV[5])

for i = 7, #ARGV, 2 do
    local current = tonumber(redis.call('GET', prefix .. ':gen:' .. ARGV[i]) or '0')
    if current > tonumber(ARGV[i + 1]) then
        return 0
    end
end

local clock = redis.call('TIME')
local now = tonumber(clock[1]) + tonumber(clock[2]) / 1000000
local expires_at = '+inf'
if ttl > 0 then
    expires_at = string.format('%.6f', now + ttl)
end

local previous = redis.call('HGET', KEYS[1], 'tags')
if previous then
    for tag in string.gmatch(previous, '[^\n]+') do
        redis.call('ZREM', prefix .. ':tag:' .. tag, key)
    end
end

redis.call('HSET', KEYS[1], 'value', ARGV[3], 'tags', ARGV[6], 'created_at', ARGV[4])
if ttl > 0 then
    redis.call('EXPIRE', KEYS[1], ttl)
else
    redis.call('PERSIST', KEYS[1])
end

for tag in string.gmatch(ARGV[6], '[^\n]+') do
    local tag_key = prefix .. ':tag:' .. tag
    local remaining = redis.call('TTL', tag_key)

    -- Members whose entries already expired
    redis.call('ZREMRANGEBYSCORE', tag_key, '-inf', '(' .. string.format('%.6f', now))
    redis.call('ZADD', tag_key, expires_at, key)

    if ttl == 0 then
        redis.call('PERSIST', tag_key)
    elseif remaining == -2 or (remaining >= 0 and remaining < ttl) then
        redis.call('EXPIRE', tag_key, ttl)
    end
end
return 1
"""

# ARGV: prefix, tag...
_INVALIDATE_SCRIPT = r"""
local prefix = ARGV[1]
local removed = 0

for i = 2, #ARGV do
    local tag = ARGV[i]
    local tag_key = prefix .. ':tag:' .. tag
    redis.call('INCR', prefix .. ':gen:' .. tag)

    for _, key in ipairs(redis.call('ZRANGE', tag_key, 0, -1)) do
        local entry_key = prefix .. ':entry:' .. key
        local tags = redis.call('HGET', entry_key, 'tags')
        if tags then
            for other in string.gmatch(tags, '[^\n]+') do
                if other ~= tag then
                    redis.call('ZREM', prefix .. ':tag:' .. other, key)
                end
            end
            removed = removed + redis.call('DEL', entry_key)
        end
    end

    redis.call('DEL', tag_key)
end
return removed
"""


class RedisTaggedCacheStore:
    """Redis tagged cache store for distributed deployments.

    Layout under the key prefix:

    - ``{prefix}:entry:{key}`` hash with the value, its tags and
      creation time;
    - ``{prefix}:tag:{tag}`` sorted set of the keys carrying the tag,
      scored by the expiry time of their entries;
    - ``{prefix}:gen:{tag}`` generation counter of the tag.

    set and invalidate run as Lua scripts, so each is atomic across
    every process sharing the Redis server. Each write to a tag drops
    the members whose entries have expired, and a tag set expires with
    its longest-lived entry, so the index stays bounded by the live
    entries plus those expired since the tag was last written.

    The client must return bytes (``decode_responses=False``).
    """

    def __init__(
        self,
        client: Optional[redis.Redis] = None,
        redis_url: str = "redis://localhost:6379",
        key_prefix: str = "cachesql",
        default_ttl: Optional[int] = 300,
    ) -> None:
        """Initialize the Redis store.

        Args:
            client: Redis client to use. Created from redis_url if None.
            redis_url: Redis connection URL.
            key_prefix: Prefix for all keys owned by the store.
            default_ttl: TTL in seconds for every entry. None or 0
                disables expiry.
        """
        if client is None:
            client = redis.from_url(redis_url, decode_responses=False)  # type: ignore
        self._redis: redis.Redis = client
        self._key_prefix = key_prefix
        self._default_ttl = default_ttl or 0
        self._set_script = self._redis.register_script(_SET_SCRIPT)
        self._invalidate_script = self._redis.register_script(_INVALIDATE_SCRIPT)

    async def has(self, key: str) -> bool:
        """Check if key exists in the store.

        Args:
            key: The cache key to check.

        Returns:
            True if the key exists, False otherwise.
        """
        with self._translate_errors("has"):
            result = await self._redis.exists(self._entry_key(key))
        return result > 0

    async def get(self, key: str) -> Optional[bytes]:
        """Retrieve a stored value.

        Args:
            key: The cache key to retrieve.

        Returns:
            The stored bytes, or None if not found or expired.
        """
        with self._translate_errors("get"):
            return await self._redis.hget(self._entry_key(key), "value")

    async def set(
        self,
        key: str,
        tags: Iterable[str],
        value: bytes,
        generations: Optional[Mapping[str, int]] = None,
    ) -> bool:
        """Store a value and register it under every tag.

        Args:
            key: The cache key.
            tags: Invalidation tags of the entry.
            value: The serialized value.
            generations: Snapshot taken before the value was computed.

        Returns:
            True if stored, False if rejected as stale.
        """
        args: list[bytes | str | int] = [
            key,
            self._key_prefix,
            value,
            datetime.now(timezone.utc).isoformat(),
            self._default_ttl,
            "\n".join(sorted(set(tags))),
        ]
        for tag, generation in (generations or {}).items():
            args.extend([tag, generation])

        with self._translate_errors("set"):
            stored = await self._set_script(keys=[self._entry_key(key)], args=args)

        if not stored:
            logger.debug(f"Rejected stale write for {key}")
        return bool(stored)

    async def invalidate(self, tags: Iterable[str]) -> int:
        """Delete every entry carrying any of the tags.

        Args:
            tags: Tags to invalidate. May be empty.

        Returns:
            Number of entries deleted.
        """
        tags = sorted(set(tags))
        if not tags:
            return 0

        with self._translate_errors("invalidate"):
            removed = await self._invalidate_script(args=[self._key_prefix, *tags])

        logger.debug(f"Invalidated {removed} entries for {len(tags)} tags")
        return int(removed)

    async def generations(self, tags: Iterable[str]) -> dict[str, int]:
        """Snapshot the generation stamps of the tags and the store epoch.

        Args:
            tags: Tags to snapshot.

        Returns:
            Mapping from tag (and the ``*`` epoch) to generation.
        """
        names = [*dict.fromkeys(tags), EPOCH]

        with self._translate_errors("generations"):
            values = await self._redis.mget([self._gen_key(name) for name in names])

        return {name: int(value or 0) for name, value in zip(names, values)}

    async def keys_for_tag(self, tag: str) -> frozenset[str]:
        """Return the keys indexed under a tag whose entries are still live.

        Args:
            tag: The tag to look up.

        Returns:
            The keys carrying the tag.
        """
        with self._translate_errors("keys_for_tag"):
            seconds, microseconds = await self._redis.time()
            members = await self._redis.zrangebyscore(
                self._tag_key(tag), f"({seconds}.{microseconds:06d}", "+inf"
            )
        return frozenset(member.decode() for member in members)

    async def flush(self) -> None:
        """Delete every entry and advance the store epoch.

        Note: Uses SCAN and is not atomic. Concurrent writes started
        before the flush are still rejected through the epoch.
        """
        with self._translate_errors("flush"):
            await self._redis.incr(self._gen_key(EPOCH))
            for kind in ("entry", "tag"):
                await self._delete_by_pattern(f"{self._key_prefix}:{kind}:*")

    async def _delete_by_pattern(self, pattern: str) -> int:
        """Delete keys matching a pattern using SCAN.

        Uses SCAN instead of KEYS for production safety.

        Args:
            pattern: Redis glob pattern.

        Returns:
            Number of keys deleted.
        """
        count = 0
        cursor = 0

        while True:
            cursor, keys = await self._redis.scan(cursor, match=pattern, count=100)

            if keys:
                count += await self._redis.delete(*keys)

            if cursor == 0:
                break

        return count

    def _entry_key(self, key: str) -> str:
        return f"{self._key_prefix}:entry:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._key_prefix}:tag:{tag}"

    def _gen_key(self, tag: str) -> str:
        return f"{self._key_prefix}:gen:{tag}"

    @contextmanager
    def _translate_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except RedisError as e:
            raise StoreUnavailable(
                f"Redis {operation} failed: {e}", operation=operation
            ) from e

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._redis.aclose()

    async def __aenter__(self) -> "RedisTaggedCacheStore":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Async context manager exit."""
        await self.close()
