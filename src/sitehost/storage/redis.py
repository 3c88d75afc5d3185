"""Key-value storage backend (redis.asyncio).

Layout, all keys under a configurable prefix:

    site:{id}                 JSON record
    sites:all                 sorted set of ids scored by created_at
    sites:owner:{owner_id}    sorted set of ids scored by created_at
    sites:name:{name}         sorted set of ids scored by created_at
    user:{id}                 JSON record
    users:all                 sorted set of user ids scored by created_at
    users:username            hash username -> user id

Writes use WATCH on the keys they read plus one MULTI/EXEC pipeline, so the
record and its index entries change together. Equal scores come back from
ZREVRANGE in reverse lexical order of the member, i.e. the larger id first.
"""

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from uuid import UUID

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import RedisError, WatchError

from src.sitehost.core.exceptions import (
    SiteExistsError,
    SiteNotFoundError,
    StorageFailureError,
    UsernameTakenError,
    UserNotFoundError,
)
from src.sitehost.core.logging import get_logger
from src.sitehost.models import Site, User
from src.sitehost.models.base import utc_timestamp
from src.sitehost.storage.base import SiteStore, UserStore

logger = get_logger(__name__)

MAX_WATCH_RETRIES = 5


def _decode_site(payload: str) -> Site:
    # model_validate coerces the JSON strings back into UUID/datetime columns
    return Site.model_validate(json.loads(payload))


def _decode_user(payload: str) -> User:
    return User.model_validate(json.loads(payload))


@asynccontextmanager
async def _redis_errors(operation: str) -> AsyncGenerator[None]:
    try:
        yield
    except RedisError as e:
        logger.error("Redis operation failed", operation=operation, error=str(e))
        raise StorageFailureError(f"Redis error during {operation}: {e}") from e


class _Keys:
    def __init__(self, prefix: str):
        self.prefix = prefix

    def site(self, site_id: UUID | str) -> str:
        return f"{self.prefix}site:{site_id}"

    @property
    def all_sites(self) -> str:
        return f"{self.prefix}sites:all"

    def owner(self, owner_id: UUID | str) -> str:
        return f"{self.prefix}sites:owner:{owner_id}"

    def name(self, name: str) -> str:
        return f"{self.prefix}sites:name:{name}"

    def user(self, user_id: UUID | str) -> str:
        return f"{self.prefix}user:{user_id}"

    @property
    def all_users(self) -> str:
        return f"{self.prefix}users:all"

    @property
    def usernames(self) -> str:
        return f"{self.prefix}users:username"


class RedisSiteStore(SiteStore):
    def __init__(
        self,
        redis: Redis,
        files_root: Path,
        key_prefix: str = "",
        owns_client: bool = False,
    ):
        super().__init__(files_root)
        self._redis = redis
        self._keys = _Keys(key_prefix)
        self._owns_client = owns_client

    def _index_entries(self, site: Site) -> list[str]:
        return [self._keys.all_sites, self._keys.owner(site.owner_id), self._keys.name(site.name)]

    def _queue_index_add(self, pipe: Pipeline, site: Site) -> None:
        score = utc_timestamp(site.created_at)
        for key in self._index_entries(site):
            pipe.zadd(key, {str(site.id): score})

    def _queue_index_remove(self, pipe: Pipeline, site: Site) -> None:
        for key in self._index_entries(site):
            pipe.zrem(key, str(site.id))

    async def _load_many(self, ids: list[str]) -> list[Site]:
        if not ids:
            return []
        raw = await self._redis.mget([self._keys.site(i) for i in ids])
        sites = []
        for site_id, payload in zip(ids, raw, strict=True):
            if payload is None:
                # Index entry without a record; the write that removed it is mid-flight
                logger.debug("Skipping dangling index entry", site_id=site_id)
                continue
            sites.append(_decode_site(payload))
        return sites

    async def create(self, site: Site) -> None:
        key = self._keys.site(site.id)
        async with _redis_errors("create_site"), self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key)
                if await pipe.exists(key):
                    raise SiteExistsError(site.id)
                pipe.multi()
                pipe.set(key, site.model_dump_json())
                self._queue_index_add(pipe, site)
                await pipe.execute()
            except WatchError as e:
                # Someone wrote this id between WATCH and EXEC
                raise SiteExistsError(site.id) from e

    async def get(self, site_id: UUID) -> Site | None:
        async with _redis_errors("get_site"):
            payload = await self._redis.get(self._keys.site(site_id))
        return _decode_site(payload) if payload is not None else None

    async def get_latest_by_name(self, name: str) -> Site | None:
        key = self._keys.name(name)
        async with _redis_errors("get_latest_by_name"):
            top = await self._load_many(await self._redis.zrevrange(key, 0, 0))
            if top:
                return top[0]
            # Top entry dangling (or no entries); fall back to the next live one
            rest = await self._load_many(await self._redis.zrevrange(key, 1, -1))
        return rest[0] if rest else None

    async def get_all_by_name(self, name: str) -> list[Site]:
        async with _redis_errors("get_all_by_name"):
            return await self._load_many(await self._redis.zrevrange(self._keys.name(name), 0, -1))

    async def update(self, site: Site) -> None:
        key = self._keys.site(site.id)
        async with _redis_errors("update_site"):
            for _ in range(MAX_WATCH_RETRIES):
                async with self._redis.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(key)
                        payload = await pipe.get(key)
                        if payload is None:
                            raise SiteNotFoundError(site.id)
                        previous = _decode_site(payload)
                        pipe.multi()
                        self._queue_index_remove(pipe, previous)
                        pipe.set(key, site.model_dump_json())
                        self._queue_index_add(pipe, site)
                        await pipe.execute()
                        return
                    except WatchError:
                        logger.debug("Retrying site update after concurrent write", site_id=str(site.id))
            raise StorageFailureError(f"Site {site.id} kept changing during update")

    async def list_by_owner(self, owner_id: UUID) -> list[Site]:
        async with _redis_errors("list_by_owner"):
            return await self._load_many(await self._redis.zrevrange(self._keys.owner(owner_id), 0, -1))

    async def list_all(self) -> list[Site]:
        async with _redis_errors("list_all"):
            return await self._load_many(await self._redis.zrevrange(self._keys.all_sites, 0, -1))

    async def _delete_record(self, site_id: UUID) -> Site | None:
        key = self._keys.site(site_id)
        async with _redis_errors("delete_site"):
            for _ in range(MAX_WATCH_RETRIES):
                async with self._redis.pipeline(transaction=True) as pipe:
                    try:
                        await pipe.watch(key)
                        payload = await pipe.get(key)
                        if payload is None:
                            await pipe.unwatch()
                            return None
                        previous = _decode_site(payload)
                        pipe.multi()
                        pipe.delete(key)
                        self._queue_index_remove(pipe, previous)
                        await pipe.execute()
                        return previous
                    except WatchError:
                        logger.debug("Retrying site delete after concurrent write", site_id=str(site_id))
            raise StorageFailureError(f"Site {site_id} kept changing during delete")

    async def aclose(self) -> None:
        if self._owns_client:
            await self._redis.aclose()
            logger.info("Redis connection closed")


class RedisUserStore(UserStore):
    def __init__(self, redis: Redis, key_prefix: str = ""):
        self._redis = redis
        self._keys = _Keys(key_prefix)

    async def create(self, user: User) -> None:
        names = self._keys.usernames
        async with _redis_errors("create_user"), self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(names)
                if await pipe.hexists(names, user.username):
                    raise UsernameTakenError(user.username)
                pipe.multi()
                pipe.set(self._keys.user(user.id), user.model_dump_json())
                pipe.hset(names, user.username, str(user.id))
                pipe.zadd(self._keys.all_users, {str(user.id): utc_timestamp(user.created_at)})
                await pipe.execute()
            except WatchError as e:
                raise UsernameTakenError(user.username) from e

    async def get(self, user_id: UUID) -> User | None:
        async with _redis_errors("get_user"):
            payload = await self._redis.get(self._keys.user(user_id))
        return _decode_user(payload) if payload is not None else None

    async def get_by_username(self, username: str) -> User | None:
        async with _redis_errors("get_user_by_username"):
            user_id = await self._redis.hget(self._keys.usernames, username)
        if user_id is None:
            return None
        return await self.get(UUID(user_id))

    async def update(self, user: User) -> None:
        key = self._keys.user(user.id)
        names = self._keys.usernames
        async with _redis_errors("update_user"), self._redis.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(key, names)
                payload = await pipe.get(key)
                if payload is None:
                    raise UserNotFoundError()
                previous = _decode_user(payload)
                if previous.username != user.username:
                    holder = await pipe.hget(names, user.username)
                    if holder is not None and holder != str(user.id):
                        raise UsernameTakenError(user.username)
                pipe.multi()
                pipe.set(key, user.model_dump_json())
                if previous.username != user.username:
                    pipe.hdel(names, previous.username)
                    pipe.hset(names, user.username, str(user.id))
                await pipe.execute()
            except WatchError as e:
                raise UsernameTakenError(user.username) from e

    async def delete(self, user_id: UUID) -> None:
        key = self._keys.user(user_id)
        async with _redis_errors("delete_user"), self._redis.pipeline(transaction=True) as pipe:
            await pipe.watch(key)
            payload = await pipe.get(key)
            if payload is None:
                await pipe.unwatch()
                return
            previous = _decode_user(payload)
            pipe.multi()
            pipe.delete(key)
            pipe.hdel(self._keys.usernames, previous.username)
            pipe.zrem(self._keys.all_users, str(user_id))
            await pipe.execute()

    async def list_all(self) -> list[User]:
        async with _redis_errors("list_users"):
            ids = await self._redis.zrange(self._keys.all_users, 0, -1)
            if not ids:
                return []
            raw = await self._redis.mget([self._keys.user(i) for i in ids])
        return [_decode_user(p) for p in raw if p is not None]

    async def count(self) -> int:
        async with _redis_errors("count_users"):
            return await self._redis.zcard(self._keys.all_users)
