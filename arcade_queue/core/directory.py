"""
Platform Directory

The chat platform is the only source of truth for who owns or administers
a group, and its API is unreliable: lookups can be forbidden, time out or
return records with missing fields. This module fetches the raw records;
interpretation lives in core.permissions.

ARCHITECTURE: The gateway process that talks to the chat platform exposes
member and group metadata over HTTP. We query it with httpx and cache the
answers in Redis for a short TTL, since every privileged command triggers
several lookups for the same member.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol
import json

import httpx
import redis

from arcade_queue.config import Settings
from arcade_queue.core.exceptions import UpstreamUnavailableError
from arcade_queue.utils.logging import get_logger

logger = get_logger(__name__)


class DirectoryClient(Protocol):
    def get_member(self, platform_id: str, group_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    def get_container(self, platform_id: str, group_id: str) -> Optional[Dict[str, Any]]:
        ...


class HttpDirectoryClient:
    """Directory lookups against the gateway's HTTP API."""

    def __init__(self, base_url: str, timeout: float = 5.0, transport: Optional[httpx.BaseTransport] = None):
        self.client = httpx.Client(base_url=base_url.rstrip("/"), timeout=timeout, transport=transport)

    def _fetch(self, path: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.client.get(path)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            logger.warning(f"Directory lookup failed for {path}: {e}")
            raise UpstreamUnavailableError("Platform directory unavailable") from e
        except ValueError as e:
            logger.warning(f"Directory returned invalid JSON for {path}: {e}")
            raise UpstreamUnavailableError("Platform directory returned invalid data") from e
        return payload if isinstance(payload, dict) else None

    def get_member(self, platform_id: str, group_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch(f"/platforms/{platform_id}/groups/{group_id}/members/{user_id}")

    def get_container(self, platform_id: str, group_id: str) -> Optional[Dict[str, Any]]:
        return self._fetch(f"/platforms/{platform_id}/groups/{group_id}")

    def close(self) -> None:
        self.client.close()


class CachedDirectoryClient:
    """
    Read-through Redis cache in front of another directory client.

    TRADEOFF: Redis being down must not take privilege checks down with it,
    so every Redis error falls back to a direct lookup.
    """

    def __init__(self, inner: DirectoryClient, redis_client, ttl: int = 60):
        self.inner = inner
        self.redis_client = redis_client
        self.ttl = ttl

    def _cached(self, key: str, loader) -> Optional[Dict[str, Any]]:
        try:
            hit = self.redis_client.get(key)
            if hit is not None:
                return json.loads(hit)
        except redis.RedisError as e:
            logger.warning(f"Directory cache read failed: {e}")
            return loader()

        value = loader()
        try:
            self.redis_client.setex(key, self.ttl, json.dumps(value))
        except redis.RedisError as e:
            logger.warning(f"Directory cache write failed: {e}")
        return value

    def get_member(self, platform_id: str, group_id: str, user_id: str) -> Optional[Dict[str, Any]]:
        key = f"directory:member:{platform_id}:{group_id}:{user_id}"
        return self._cached(key, lambda: self.inner.get_member(platform_id, group_id, user_id))

    def get_container(self, platform_id: str, group_id: str) -> Optional[Dict[str, Any]]:
        key = f"directory:group:{platform_id}:{group_id}"
        return self._cached(key, lambda: self.inner.get_container(platform_id, group_id))


def build_directory(settings: Settings) -> Optional[DirectoryClient]:
    """
    Directory client for the configured gateway, or None.

    Without DIRECTORY_URL only the configured owner list can grant owner
    rights.
    """
    if not settings.DIRECTORY_URL:
        logger.info("No DIRECTORY_URL configured - platform role lookups disabled")
        return None

    client = HttpDirectoryClient(settings.DIRECTORY_URL, timeout=settings.DIRECTORY_TIMEOUT)

    try:
        redis_client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5
        )
        redis_client.ping()
        logger.info("Redis connection established for directory caching")
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.error(f"Redis connection failed, directory lookups uncached: {e}")
        return client

    return CachedDirectoryClient(client, redis_client, ttl=settings.DIRECTORY_CACHE_TTL)


@dataclass
class ActorContext:
    """
    Who is acting, and in which group.

    platform_id, group_id and user_id are the raw platform values; the
    tenant id and qualified user id are derived from them.
    """
    platform_id: str
    group_id: str
    user_id: str
    display_name: str = ""
    directory: Optional[DirectoryClient] = None

    @property
    def tenant_id(self) -> str:
        return f"{self.platform_id}:{self.group_id}"

    @property
    def qualified_id(self) -> str:
        return f"{self.platform_id}:{self.user_id}"

    @property
    def name(self) -> str:
        return self.display_name or self.user_id or "unknown"

    @property
    def has_directory(self) -> bool:
        return self.directory is not None and bool(self.group_id) and bool(self.user_id)

    def member_lookup(self) -> Optional[Dict[str, Any]]:
        if not self.has_directory:
            return None
        return self.directory.get_member(self.platform_id, self.group_id, self.user_id)

    def container_lookup(self) -> Optional[Dict[str, Any]]:
        if not self.has_directory:
            return None
        return self.directory.get_container(self.platform_id, self.group_id)
