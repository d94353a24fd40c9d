import logging
import secrets
import threading
from datetime import UTC, datetime
from types import FrameType
from typing import TYPE_CHECKING, Any, List, Mapping, Optional, Sequence

from frameconsole.modules.context import ContextInspector, ExecutionContext, FrameContext
from frameconsole.modules.evaluator import Evaluator
from frameconsole.modules.exceptions import ContextGroup, ExceptionChainMapper

from .errors import InvalidSwitch, StaleSession

if TYPE_CHECKING:
    from frameconsole.modules.storage import SessionStore

logger = logging.getLogger(__name__)

# Keys a request environment uses to hand over what the console should open on.
EXCEPTION_KEY = "__console_exception"
CONTEXT_KEY = "__console_context"


class Session:
    """
    A console session bound to one or more groups of execution contexts.

    Each group holds the frames of one error of a cause chain. The session
    evaluates input against a current context, which can be switched to any
    frame of any group.
    """

    def __init__(
        self,
        groups: Sequence[ContextGroup],
        session_id: Optional[str] = None,
        last_evaluation_variable: str = "_",
        created_at: Optional[datetime] = None,
    ):
        """
        Initialize session.

        Args:
            groups: Context groups, the first one holding the initial context
            session_id: Existing id when restoring (a fresh one otherwise)
            last_evaluation_variable: Name the last evaluated value is bound to
            created_at: Creation time when restoring
        """
        if not groups:
            raise ValueError("A session needs at least one context group")

        self.id = session_id or secrets.token_hex(16)
        self.groups: List[ContextGroup] = list(groups)
        self.last_evaluation_variable = last_evaluation_variable
        self.created_at = created_at or datetime.now(UTC)

        self._lock = threading.RLock()
        self.current_context: Optional[ExecutionContext] = next(
            (group.contexts[0] for group in self.groups if group.contexts), None
        )
        self.evaluator: Optional[Evaluator] = None
        if self.current_context is not None:
            self.evaluator = self._build_evaluator(self.current_context)

    @classmethod
    async def create(
        cls,
        groups: Sequence[ContextGroup],
        store: "SessionStore",
        last_evaluation_variable: Optional[str] = None,
    ) -> "Session":
        """
        Create a session and register it with the store.

        The last evaluated value is bound to the store's configured name
        unless last_evaluation_variable overrides it.

        Raises:
            ValueError: If the groups hold no context at all
        """
        if not any(group.contexts for group in groups):
            raise ValueError("A session needs at least one execution context")

        session = cls(
            groups,
            last_evaluation_variable=last_evaluation_variable or store.last_evaluation_variable,
        )
        await store.register(session)
        logger.debug(f"Created console session {session.id} with {len(session.groups)} group(s)")
        return session

    @classmethod
    async def create_from_source(
        cls,
        source: Any,
        store: "SessionStore",
        mapper: Optional[ExceptionChainMapper] = None,
        last_evaluation_variable: Optional[str] = None,
    ) -> Optional["Session"]:
        """
        Create a session from a raised error or a single context.

        Args:
            source: An exception, an ExecutionContext or a frame
            store: Store to register the session with
            mapper: Mapper used to expand errors into context groups

        Returns:
            The new session, or None if source is none of the above
        """
        if isinstance(source, BaseException):
            groups = (mapper or ExceptionChainMapper()).follow(source)
        elif isinstance(source, ExecutionContext):
            groups = [ContextGroup.for_context(source)]
        elif isinstance(source, FrameType):
            groups = [ContextGroup.for_context(FrameContext(source))]
        else:
            return None

        return await cls.create(groups, store, last_evaluation_variable=last_evaluation_variable)

    @classmethod
    async def create_from_storage(
        cls,
        storage: Mapping[str, Any],
        store: "SessionStore",
        mapper: Optional[ExceptionChainMapper] = None,
        last_evaluation_variable: Optional[str] = None,
    ) -> Optional["Session"]:
        """
        Create a session from what a request preserved.

        The error stored under EXCEPTION_KEY wins over the context stored
        under CONTEXT_KEY. Returns None when neither is present.
        """
        source = storage.get(EXCEPTION_KEY) or storage.get(CONTEXT_KEY)
        return await cls.create_from_source(
            source, store, mapper=mapper, last_evaluation_variable=last_evaluation_variable
        )

    @property
    def is_live(self) -> bool:
        """Whether the session has a context it can evaluate in."""
        return self.current_context is not None

    def evaluate(self, source: str) -> str:
        """Evaluate source on the current context."""
        with self._lock:
            self._ensure_live()
            return self.evaluator.evaluate(source)

    def switch_to(self, index: Any, group_key: Any) -> None:
        """
        Switch the current context to a frame of a group.

        Args:
            index: Position of the frame within the group
            group_key: Identity key of the group's error

        Raises:
            InvalidSwitch: If the group is unknown or index is out of range
        """
        with self._lock:
            self._ensure_live()
            try:
                contexts = ExceptionChainMapper.find_contexts(self.groups, group_key)
            except KeyError:
                raise InvalidSwitch(f"No context group with key {group_key!r}") from None

            try:
                position = int(index)
            except (TypeError, ValueError):
                raise InvalidSwitch(f"Frame index must be an integer, got {index!r}") from None

            if not 0 <= position < len(contexts):
                raise InvalidSwitch(
                    f"Frame index {position} out of range for group {group_key!r} "
                    f"({len(contexts)} frame(s))"
                )

            context = contexts[position]
            self.evaluator = self._build_evaluator(context)
            self.current_context = context

    def context_info(self, objpath: str = "") -> List[str]:
        """Return names visible from the current context, or along objpath."""
        with self._lock:
            self._ensure_live()
            return ContextInspector().extract(self.current_context, objpath)

    def _build_evaluator(self, context: ExecutionContext) -> Evaluator:
        return Evaluator(context, last_evaluation_variable=self.last_evaluation_variable)

    def _ensure_live(self) -> None:
        if not self.is_live:
            raise StaleSession(self.id)

    def __repr__(self) -> str:
        state = "live" if self.is_live else "stale"
        return f"<Session {self.id} {state} groups={len(self.groups)}>"
