from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import CodeType, FrameType
from typing import Any, Dict, Mapping, MutableMapping, Optional, Tuple

CONSOLE_FILENAME = "<console>"


@dataclass(frozen=True)
class SourceLocation:
    """File and line an execution context points at."""

    path: str
    lineno: int

    def __str__(self) -> str:
        return f"{self.path}:{self.lineno}"


def compile_source(source: str) -> Tuple[CodeType, bool]:
    """
    Compile console input.

    Input is treated as an expression first. When it is not a valid
    expression it is compiled as statements instead.

    Returns:
        Tuple of (code object, True if compiled as an expression)
    """
    try:
        return compile(source, CONSOLE_FILENAME, "eval"), True
    except SyntaxError:
        return compile(source, CONSOLE_FILENAME, "exec"), False


class ExecutionContext(ABC):
    """A frame of program state that console input runs against."""

    @property
    def location(self) -> Optional[SourceLocation]:
        """Where this context points at, if anywhere."""
        return None

    @abstractmethod
    def namespace(self) -> Tuple[Dict[str, Any], MutableMapping[str, Any]]:
        """Return the (globals, locals) pair used for evaluation."""

    def evaluate(self, source: str) -> Any:
        """
        Evaluate source in this context.

        Expressions return their value, statements return None. Any error
        raised by the evaluated code propagates to the caller.
        """
        code, is_expression = compile_source(source)
        global_ns, local_ns = self.namespace()
        if is_expression:
            return eval(code, global_ns, local_ns)
        exec(code, global_ns, local_ns)
        return None

    def assign(self, name: str, source: str) -> None:
        """
        Bind name to the value of source inside this context.

        Raises:
            SyntaxError: If source is a statement rather than an expression
        """
        code, is_expression = compile_source(source)
        if not is_expression:
            raise SyntaxError("only expressions have a value to bind")
        global_ns, local_ns = self.namespace()
        local_ns[name] = eval(code, global_ns, local_ns)

    def __repr__(self) -> str:
        location = self.location
        where = str(location) if location else "synthetic"
        return f"<{type(self).__name__} {where}>"


class FrameContext(ExecutionContext):
    """Execution context over a live Python frame."""

    def __init__(self, frame: FrameType, lineno: Optional[int] = None):
        """
        Initialize frame context.

        Args:
            frame: Frame to evaluate against
            lineno: Line the frame was at when captured (defaults to f_lineno)
        """
        self.frame = frame
        self._lineno = lineno if lineno is not None else frame.f_lineno
        # f_locals is read once so console bindings survive between calls.
        self._locals = frame.f_locals

    @property
    def location(self) -> SourceLocation:
        return SourceLocation(self.frame.f_code.co_filename, self._lineno)

    @property
    def name(self) -> str:
        return self.frame.f_code.co_name

    def namespace(self) -> Tuple[Dict[str, Any], MutableMapping[str, Any]]:
        return self.frame.f_globals, self._locals


class NamespaceContext(ExecutionContext):
    """Synthetic execution context over a plain namespace."""

    def __init__(self, namespace: Optional[Mapping[str, Any]] = None):
        self._namespace: Dict[str, Any] = {"__name__": "__console__"}
        if namespace:
            self._namespace.update(namespace)

    def namespace(self) -> Tuple[Dict[str, Any], MutableMapping[str, Any]]:
        return self._namespace, self._namespace
