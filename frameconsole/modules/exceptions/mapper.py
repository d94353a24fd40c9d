import json
import traceback
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from frameconsole.modules.context import ExecutionContext, FrameContext, SourceLocation
from frameconsole.modules.evaluator.evaluator import error_type_name, format_frame


class ErrorRecord(BaseModel):
    """Serializable metadata of a raised error."""

    type_name: str = Field(..., description="Qualified error class name")
    message: str = Field("", description="str() of the error")
    backtrace: List[str] = Field(default_factory=list, description="Frames, innermost first")
    attributes: Dict[str, Any] = Field(
        default_factory=dict, description="Auxiliary payload carried by the error"
    )

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ErrorRecord":
        backtrace = [
            format_frame(frame.f_code.co_filename, lineno, frame.f_code.co_name)
            for frame, lineno in traceback.walk_tb(exc.__traceback__)
        ]
        backtrace.reverse()
        return cls(
            type_name=error_type_name(exc),
            message=_describe(exc, str),
            backtrace=backtrace,
            attributes=_error_attributes(exc),
        )


def _describe(value: Any, render=repr) -> str:
    try:
        return render(value)
    except Exception:
        return f"<unrepresentable {type(value).__qualname__}>"


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError, RecursionError):
        return _describe(value)
    return value


def _error_attributes(exc: BaseException) -> Dict[str, Any]:
    attributes = {
        name: _jsonable(value)
        for name, value in vars(exc).items()
        if not name.startswith("_")
    }
    notes = getattr(exc, "__notes__", None)
    if notes:
        attributes["__notes__"] = [_describe(note, str) for note in notes]
    return attributes


@dataclass(frozen=True)
class ContextGroup:
    """Execution contexts belonging to one error of a cause chain."""

    key: str
    contexts: Tuple[ExecutionContext, ...] = ()
    error: Optional[ErrorRecord] = None
    stored_locations: Tuple[SourceLocation, ...] = field(default=(), compare=False)

    @classmethod
    def for_context(cls, context: ExecutionContext) -> "ContextGroup":
        """Wrap a bare context as a one-element group."""
        return cls(key=str(id(context)), contexts=(context,))

    @property
    def locations(self) -> Tuple[SourceLocation, ...]:
        if not self.contexts:
            return self.stored_locations
        return tuple(c.location for c in self.contexts if c.location is not None)


class ExceptionChainMapper:
    """Maps an error and everything that caused it to context groups."""

    def follow(self, exc: BaseException) -> List[ContextGroup]:
        """
        Build one context group per error in the chain.

        Args:
            exc: The raised error

        Returns:
            Groups ordered from exc to its earliest cause
        """
        return [self._group_for(error) for error in self._chain(exc)]

    @staticmethod
    def find_contexts(
        groups: Sequence[ContextGroup], key: Any
    ) -> Tuple[ExecutionContext, ...]:
        """
        Find the contexts of the group with the given identity key.

        Raises:
            KeyError: If no group matches
        """
        for group in groups:
            if group.key == str(key):
                return group.contexts
        raise KeyError(key)

    @staticmethod
    def _chain(exc: BaseException) -> Iterator[BaseException]:
        seen = set()
        current: Optional[BaseException] = exc
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            yield current
            if current.__cause__ is not None:
                current = current.__cause__
            elif not current.__suppress_context__:
                current = current.__context__
            else:
                current = None

    @staticmethod
    def _group_for(exc: BaseException) -> ContextGroup:
        contexts = [
            FrameContext(frame, lineno) for frame, lineno in traceback.walk_tb(exc.__traceback__)
        ]
        # The frame that raised is the one users want to land in.
        contexts.reverse()
        return ContextGroup(
            key=str(id(exc)),
            contexts=tuple(contexts),
            error=ErrorRecord.from_exception(exc),
        )
