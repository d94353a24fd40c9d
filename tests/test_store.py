import asyncio
import json
import logging

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from frameconsole.modules.context import NamespaceContext
from frameconsole.modules.exceptions import ContextGroup, ExceptionChainMapper
from frameconsole.modules.session import Session, StaleSession
from frameconsole.modules.storage import SessionStore


class ValueAwareError(Exception):
    def __init__(self, value):
        super().__init__(f"value was {value}")
        self.value = value


def raise_nested(value):
    try:
        raise ValueAwareError(value)
    except ValueAwareError as inner:
        raise RuntimeError("Second Error") from inner


def nested_error():
    try:
        raise_nested(42)
    except RuntimeError as exc:
        return exc


def make_session():
    return Session([ContextGroup.for_context(NamespaceContext())])


def test_unknown_lookup_policy_is_rejected():
    with pytest.raises(ValueError):
        SessionStore(lookup_policy="sometimes")


class TestLocalTier:
    """Distributed storage disabled."""

    @pytest.mark.asyncio
    async def test_find_returns_same_object(self, local_store):
        session = make_session()
        await local_store.register(session)

        assert await local_store.find(session.id) is session

    @pytest.mark.asyncio
    async def test_find_unknown_returns_none(self, local_store):
        assert await local_store.find("nonexistent session") is None

    @pytest.mark.asyncio
    async def test_does_not_touch_redis(self, mock_redis):
        store = SessionStore(mock_redis, use_distributed_storage=False)
        session = make_session()

        await store.register(session)

        assert await store.find(session.id) is session
        mock_redis.setex.assert_not_called()
        mock_redis.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete(self, local_store):
        session = make_session()
        await local_store.register(session)

        await local_store.delete(session.id)

        assert await local_store.find(session.id) is None

    @pytest.mark.asyncio
    async def test_active_ids_and_cleanup(self, local_store):
        session = make_session()
        await local_store.register(session)

        assert await local_store.active_session_ids() == [session.id]
        assert await local_store.cleanup_expired() == 0


class TestDistributedTier:
    """Distributed storage enabled."""

    @pytest.mark.asyncio
    async def test_register_writes_record_with_ttl(self, mock_redis):
        store = SessionStore(mock_redis, ttl=3600)
        session = make_session()

        await store.register(session)

        mock_redis.setex.assert_called_once()
        key, ttl, payload = mock_redis.setex.call_args[0]
        assert key == f"console:session:{session.id}"
        assert ttl == 3600
        assert json.loads(payload)["id"] == session.id
        mock_redis.sadd.assert_called_once_with("console:sessions:active", session.id)
        assert store.find_local(session.id) is session

    @pytest.mark.asyncio
    async def test_find_reconstructs_stale_session(self, redis_store):
        session = make_session()
        await redis_store.register(session)

        found = await redis_store.find(session.id)

        assert found is not session
        assert found.id == session.id
        assert found.created_at == session.created_at
        assert not found.is_live
        with pytest.raises(StaleSession):
            found.evaluate("40 + 2")

    @pytest.mark.asyncio
    async def test_round_trip_preserves_group_metadata(self, redis_store):
        exc = nested_error()
        session = Session(ExceptionChainMapper().follow(exc))
        await redis_store.register(session)

        found = await redis_store.find_distributed(session.id)

        assert [g.key for g in found.groups] == [str(id(exc)), str(id(exc.__cause__))]
        assert [g.error.message for g in found.groups] == ["Second Error", "value was 42"]
        assert found.groups[1].error.attributes == {"value": 42}
        assert found.groups[0].locations == session.groups[0].locations
        assert all(g.contexts == () for g in found.groups)

    @pytest.mark.asyncio
    async def test_find_unknown_returns_none(self, redis_store):
        assert await redis_store.find("nonexistent session") is None

    @pytest.mark.asyncio
    async def test_malformed_payload_is_a_miss(self, redis_store, mock_redis_with_data):
        mock_redis_with_data._storage["console:session:broken"] = "invalid json"
        mock_redis_with_data._storage["console:session:partial"] = json.dumps({"id": "partial"})

        assert await redis_store.find("broken") is None
        assert await redis_store.find("partial") is None

    @pytest.mark.asyncio
    async def test_undecodable_payload_is_a_miss(self, mock_redis, caplog):
        mock_redis.get.side_effect = UnicodeDecodeError(
            "utf-8", b"\xff\xfe", 0, 1, "invalid start byte"
        )
        store = SessionStore(mock_redis)

        with caplog.at_level(logging.ERROR):
            assert await store.find("bad") is None

        assert "Discarding undecodable session record bad" in caplog.text

    @pytest.mark.asyncio
    async def test_raw_bytes_payload_is_a_miss(self, mock_redis):
        mock_redis.get.return_value = b"\xff\xfe"
        store = SessionStore(mock_redis)

        assert await store.find("bad") is None

    @pytest.mark.asyncio
    async def test_restored_session_uses_store_last_evaluation_variable(
        self, mock_redis_with_data
    ):
        store = SessionStore(mock_redis_with_data, last_evaluation_variable="it")
        session = make_session()
        await store.register(session)

        restored = await store.find(session.id)

        assert restored.last_evaluation_variable == "it"

    @pytest.mark.asyncio
    async def test_register_swallows_redis_errors(self, mock_redis, caplog):
        mock_redis.setex.side_effect = RedisConnectionError("Connection failed")
        store = SessionStore(mock_redis)
        session = make_session()

        with caplog.at_level(logging.ERROR):
            await store.register(session)

        assert store.find_local(session.id) is session
        assert "Failed to store session" in caplog.text

    @pytest.mark.asyncio
    async def test_register_gives_up_on_slow_backend(self, mock_redis):
        async def hang(*args):
            await asyncio.sleep(10)

        mock_redis.setex.side_effect = hang
        store = SessionStore(mock_redis, operation_timeout=0.01)
        session = make_session()

        await store.register(session)

        assert store.find_local(session.id) is session
        mock_redis.sadd.assert_not_called()

    @pytest.mark.asyncio
    async def test_find_swallows_redis_errors(self, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("Connection failed")
        store = SessionStore(mock_redis)

        assert await store.find("some_session_id") is None

    @pytest.mark.asyncio
    async def test_exclusive_policy_ignores_local_session(self, mock_redis):
        store = SessionStore(mock_redis)
        session = make_session()
        await store.register(session)

        assert await store.find(session.id) is None
        mock_redis.get.assert_called_once_with(f"console:session:{session.id}")

    @pytest.mark.asyncio
    async def test_fallback_policy_prefers_local_session(self, mock_redis_with_data):
        store = SessionStore(mock_redis_with_data, lookup_policy="fallback")
        session = make_session()
        await store.register(session)

        assert await store.find(session.id) is session

    @pytest.mark.asyncio
    async def test_fallback_policy_reads_redis_for_other_processes(self, mock_redis_with_data):
        writer = SessionStore(mock_redis_with_data)
        reader = SessionStore(mock_redis_with_data, lookup_policy="fallback")
        session = make_session()
        await writer.register(session)

        found = await reader.find(session.id)

        assert found.id == session.id
        assert not found.is_live

    @pytest.mark.asyncio
    async def test_enabled_without_client_finds_nothing(self, caplog):
        store = SessionStore(None, use_distributed_storage=True)
        session = make_session()
        await store.register(session)

        with caplog.at_level(logging.WARNING):
            assert await store.find(session.id) is None

        assert store.find_local(session.id) is session
        assert "no Redis client is attached" in caplog.text

    @pytest.mark.asyncio
    async def test_delete_removes_both_tiers(self, redis_store, mock_redis_with_data):
        session = make_session()
        await redis_store.register(session)

        await redis_store.delete(session.id)

        assert redis_store.find_local(session.id) is None
        assert await redis_store.find(session.id) is None
        assert session.id not in mock_redis_with_data._storage["console:sessions:active"]

    @pytest.mark.asyncio
    async def test_ttl_is_set(self, redis_store, mock_redis_with_data):
        session = make_session()
        await redis_store.register(session)

        ttl = await mock_redis_with_data.ttl(f"console:session:{session.id}")
        assert 0 < ttl <= 3600

    @pytest.mark.asyncio
    async def test_cleanup_expired_drops_stale_ids(self, redis_store, mock_redis_with_data):
        kept = make_session()
        expired = make_session()
        await redis_store.register(kept)
        await redis_store.register(expired)
        # Simulate Redis expiring the record
        del mock_redis_with_data._storage[f"console:session:{expired.id}"]

        assert await redis_store.cleanup_expired() == 1
        assert await redis_store.active_session_ids() == [kept.id]
