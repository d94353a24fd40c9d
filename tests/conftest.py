"""
Shared pytest fixtures for console tests.

This module provides common fixtures including:
- Redis mocks for session store tests
- Stores wired to those mocks
"""

import fnmatch
import os
import sys
from unittest.mock import AsyncMock

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from frameconsole.modules.storage import SessionStore


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================

@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async operations."""
    redis = AsyncMock()

    redis.setex = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.set = AsyncMock()
    redis.delete = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)
    redis.expire = AsyncMock()
    redis.ttl = AsyncMock(return_value=-2)

    redis.sadd = AsyncMock()
    redis.srem = AsyncMock()
    redis.smembers = AsyncMock(return_value=set())

    return redis


@pytest.fixture
def mock_redis_with_data():
    """
    Redis mock with in-memory data storage for more realistic tests.

    This allows testing code that reads back what it writes.
    """
    storage = {}
    ttls = {}

    redis = AsyncMock()

    async def mock_set(key, value, *args, **kwargs):
        storage[key] = value
        return True

    async def mock_setex(key, ttl, value):
        storage[key] = value
        ttls[key] = ttl
        return True

    async def mock_get(key):
        value = storage.get(key)
        return value if isinstance(value, str) else None

    async def mock_delete(*keys):
        count = 0
        for key in keys:
            if key in storage:
                del storage[key]
                ttls.pop(key, None)
                count += 1
        return count

    async def mock_exists(*keys):
        return sum(1 for k in keys if k in storage)

    async def mock_keys(pattern):
        return [k for k in storage.keys() if fnmatch.fnmatch(k, pattern)]

    async def mock_ttl(key):
        return ttls.get(key, -2)

    async def mock_sadd(key, *members):
        bucket = storage.setdefault(key, set())
        before = len(bucket)
        bucket.update(members)
        return len(bucket) - before

    async def mock_srem(key, *members):
        bucket = storage.get(key, set())
        removed = len(bucket & set(members))
        bucket.difference_update(members)
        return removed

    async def mock_smembers(key):
        return set(storage.get(key, set()))

    redis.set = mock_set
    redis.setex = mock_setex
    redis.get = mock_get
    redis.delete = mock_delete
    redis.exists = mock_exists
    redis.keys = mock_keys
    redis.ttl = mock_ttl
    redis.sadd = mock_sadd
    redis.srem = mock_srem
    redis.smembers = mock_smembers
    redis._storage = storage  # Expose for test assertions
    redis._ttls = ttls

    return redis


@pytest.fixture
def local_store():
    """Store with the distributed tier switched off."""
    return SessionStore(use_distributed_storage=False)


@pytest.fixture
def redis_store(mock_redis_with_data):
    """Store mirroring sessions into the in-memory Redis mock."""
    return SessionStore(mock_redis_with_data, use_distributed_storage=True)

