import asyncio
import logging
import threading
from typing import Any, Awaitable, Dict, List, Optional

from pydantic import ValidationError
from redis.exceptions import RedisError

from frameconsole.modules.context import SourceLocation
from frameconsole.modules.exceptions import ContextGroup
from frameconsole.modules.session import Session, StorageUnavailable

from .models import StoredGroup, StoredLocation, StoredSessionRecord

logger = logging.getLogger(__name__)

LOOKUP_POLICIES = ("exclusive", "fallback")


class SessionStore:
    def __init__(
        self,
        redis_client=None,
        use_distributed_storage: bool = True,
        ttl: int = 3600,
        key_prefix: str = "console:session",
        operation_timeout: float = 5.0,
        lookup_policy: str = "exclusive",
        last_evaluation_variable: str = "_",
    ):
        """
        Initialize session store.

        Args:
            redis_client: Async Redis client (distributed tier)
            use_distributed_storage: Mirror sessions into Redis and look them up there
            ttl: Distributed entry TTL in seconds (1 hour)
            key_prefix: Namespace for Redis keys
            operation_timeout: Seconds a single Redis call may take
            lookup_policy: "exclusive" reads only the enabled tier,
                "fallback" reads local first, then Redis
            last_evaluation_variable: Name sessions created against this
                store bind the last evaluated value to

        Raises:
            ValueError: If lookup_policy is unknown
        """
        if lookup_policy not in LOOKUP_POLICIES:
            raise ValueError(
                f"Unknown lookup policy {lookup_policy!r}, expected one of {LOOKUP_POLICIES}"
            )

        self.redis = redis_client
        self.use_distributed_storage = use_distributed_storage
        self.ttl = ttl
        self.key_prefix = key_prefix
        self.operation_timeout = operation_timeout
        self.lookup_policy = lookup_policy
        self.last_evaluation_variable = last_evaluation_variable

        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    @property
    def distributed(self) -> bool:
        return self.use_distributed_storage and self.redis is not None

    @property
    def active_key(self) -> str:
        return f"{self.key_prefix}s:active"

    def session_key(self, session_id: str) -> str:
        return f"{self.key_prefix}:{session_id}"

    async def register(self, session: Session) -> None:
        """
        Store a session.

        The local map always gets the session. The Redis mirror is best
        effort: its failures are logged and never reach the caller.
        """
        with self._lock:
            self._sessions[session.id] = session

        if not self.distributed:
            return

        try:
            payload = self.to_record(session).model_dump_json()
            await self._call(self.redis.setex(self.session_key(session.id), self.ttl, payload))
            await self._call(self.redis.sadd(self.active_key, session.id))
        except (StorageUnavailable, ValueError, TypeError) as e:
            logger.error(f"Failed to store session {session.id} in Redis: {e}")

    async def find(self, session_id: str) -> Optional[Session]:
        """
        Find a session by id.

        With the exclusive policy only one tier is read: Redis when
        distributed storage is enabled, the local map otherwise. A session
        read from Redis is a stale reconstruction, even when the live one
        sits in this process. If distributed storage is enabled but no
        client is attached, exclusive lookups find nothing at all.
        """
        if self.lookup_policy == "fallback":
            session = self.find_local(session_id)
            if session is not None or not self.distributed:
                return session
            return await self.find_distributed(session_id)

        if self.use_distributed_storage:
            return await self.find_distributed(session_id)
        return self.find_local(session_id)

    def find_local(self, session_id: str) -> Optional[Session]:
        with self._lock:
            return self._sessions.get(session_id)

    async def find_distributed(self, session_id: str) -> Optional[Session]:
        """
        Rebuild a session from its Redis record.

        Returns:
            A stale Session, or None on miss, bad payload or backend failure
        """
        if self.redis is None:
            logger.warning(
                f"Distributed storage is enabled but no Redis client is attached; "
                f"session {session_id} cannot be found"
            )
            return None

        try:
            data = await self._call(self.redis.get(self.session_key(session_id)))
        except StorageUnavailable as e:
            logger.error(f"Failed to retrieve session {session_id} from Redis: {e}")
            return None
        except UnicodeDecodeError as e:
            # The client decodes responses, so bad bytes surface here.
            logger.error(f"Discarding undecodable session record {session_id}: {e}")
            return None

        if not data:
            return None

        try:
            record = StoredSessionRecord.model_validate_json(data)
        except (ValidationError, UnicodeDecodeError) as e:
            logger.error(f"Discarding malformed session record {session_id}: {e}")
            return None

        return self.restore(record)

    async def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

        if not self.distributed:
            return

        try:
            await self._call(self.redis.delete(self.session_key(session_id)))
            await self._call(self.redis.srem(self.active_key, session_id))
        except StorageUnavailable as e:
            logger.error(f"Failed to delete session {session_id} from Redis: {e}")

    async def active_session_ids(self) -> List[str]:
        """Ids of sessions mirrored to Redis that may still be alive."""
        if not self.distributed:
            with self._lock:
                return list(self._sessions)

        try:
            members = await self._call(self.redis.smembers(self.active_key))
        except StorageUnavailable as e:
            logger.error(f"Failed to list active sessions: {e}")
            return []
        return sorted(members)

    async def cleanup_expired(self) -> int:
        """
        Drop ids of expired Redis entries from the active set.

        Redis expires the records themselves; this only tidies the index.

        Returns:
            Number of ids removed
        """
        if not self.distributed:
            return 0

        cleaned = 0
        try:
            session_ids = await self._call(self.redis.smembers(self.active_key))
            for session_id in session_ids:
                if not await self._call(self.redis.exists(self.session_key(session_id))):
                    await self._call(self.redis.srem(self.active_key, session_id))
                    cleaned += 1
        except StorageUnavailable as e:
            logger.error(f"Failed to clean up expired sessions: {e}")
        return cleaned

    @staticmethod
    def to_record(session: Session) -> StoredSessionRecord:
        return StoredSessionRecord(
            id=session.id,
            created_at=session.created_at,
            groups=[
                StoredGroup(
                    key=group.key,
                    error=group.error,
                    locations=[
                        StoredLocation(path=location.path, lineno=location.lineno)
                        for location in group.locations
                    ],
                )
                for group in session.groups
            ],
        )

    def restore(self, record: StoredSessionRecord) -> Session:
        groups = [
            ContextGroup(
                key=group.key,
                error=group.error,
                stored_locations=tuple(
                    SourceLocation(location.path, location.lineno) for location in group.locations
                ),
            )
            for group in record.groups
        ]
        return Session(
            groups,
            session_id=record.id,
            last_evaluation_variable=self.last_evaluation_variable,
            created_at=record.created_at,
        )

    async def _call(self, operation: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(operation, timeout=self.operation_timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as e:
            raise StorageUnavailable(f"{type(e).__name__}: {e}") from e
