"""
Storage Module - Black Box Interface

Purpose: Keep console sessions findable by id, locally and across processes
Interface: StorageModule.connect(), SessionStore.register(), find(), delete()
Hidden: Redis specifics, TTLs, record serialization, local map locking

Can be replaced with any key/value backend offering SETEX/GET/DEL semantics.
"""

import os
from typing import Optional

import redis.asyncio as redis

from .models import StoredGroup, StoredLocation, StoredSessionRecord
from .store import LOOKUP_POLICIES, SessionStore

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


class StorageModule:
    """Owns the Redis connection used by the distributed session tier."""

    def __init__(self, connection_url: Optional[str] = None, timeout: float = 5.0):
        """Initialize storage with connection URL."""
        self.url = connection_url or os.getenv("REDIS_URL", DEFAULT_REDIS_URL)
        self.timeout = timeout
        self._client = None

    async def connect(self) -> redis.Redis:
        """Get storage connection."""
        if not self._client:
            self._client = redis.from_url(
                self.url,
                decode_responses=True,
                socket_timeout=self.timeout,
                socket_connect_timeout=self.timeout,
            )
        return self._client

    async def disconnect(self):
        """Close storage connection."""
        if self._client:
            await self._client.aclose()
            self._client = None


__all__ = [
    "DEFAULT_REDIS_URL",
    "LOOKUP_POLICIES",
    "SessionStore",
    "StorageModule",
    "StoredGroup",
    "StoredLocation",
    "StoredSessionRecord",
]
