import builtins
import inspect
import logging
import os
import traceback
from types import TracebackType
from typing import Callable, List, Optional, Set

from frameconsole.modules.context import ExecutionContext, NamespaceContext

logger = logging.getLogger(__name__)

PACKAGE_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Errors user input may raise that still belong to the host process.
FATAL_ERRORS = (MemoryError,)


class BacktraceCleaner:
    """Filters and silences backtrace lines before they are shown."""

    def __init__(self):
        self._filters: List[Callable[[str], str]] = []
        self._silencers: List[Callable[[str], bool]] = []

    def add_filter(self, fn: Callable[[str], str]) -> None:
        """Register a function that rewrites each line."""
        self._filters.append(fn)

    def add_silencer(self, predicate: Callable[[str], bool]) -> None:
        """Register a predicate; matching lines are dropped."""
        self._silencers.append(predicate)

    def clean(self, lines: List[str]) -> List[str]:
        cleaned = []
        for line in lines:
            for fn in self._filters:
                line = fn(line)
            if any(silence(line) for silence in self._silencers):
                continue
            cleaned.append(line)
        return cleaned


def format_frame(filename: str, lineno: int, name: str) -> str:
    return f'File "{filename}", line {lineno}, in {name}'


def default_cleaner() -> BacktraceCleaner:
    """Cleaner that hides frames from this package's own source files."""
    cleaner = BacktraceCleaner()
    cleaner.add_silencer(lambda line: line.startswith(f'File "{PACKAGE_ROOT}{os.sep}'))
    return cleaner


def error_type_name(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ == builtins.__name__:
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


class Evaluator:
    """
    Simple console evaluator.

    Wraps an execution context and evaluates input inside of it. Unlike a
    plain eval(), the result is always a string and errors are formatted
    instead of raised.
    """

    def __init__(
        self,
        context: Optional[ExecutionContext] = None,
        last_evaluation_variable: str = "_",
        cleaner: Optional[BacktraceCleaner] = None,
    ):
        """
        Initialize evaluator.

        Args:
            context: Context to evaluate in (a fresh top-level namespace if omitted)
            last_evaluation_variable: Name the last evaluated value is bound to
            cleaner: Backtrace cleaner applied to error output
        """
        self.context = context if context is not None else NamespaceContext()
        self.last_evaluation_variable = last_evaluation_variable
        self.cleaner = cleaner or default_cleaner()

    def evaluate(self, source: str) -> str:
        """
        Evaluate source in the bound context.

        Returns:
            "=> <repr>" on success, or the formatted error with its backtrace
        """
        try:
            output = f"=> {self.context.evaluate(source)!r}\n"
        except FATAL_ERRORS:
            raise
        except (Exception, SystemExit) as exc:
            return self._format_exception(exc, self._caller_frames())

        self._set_last_evaluation(source)
        return output

    def _set_last_evaluation(self, source: str) -> None:
        if not source.strip():
            return
        try:
            self.context.assign(self.last_evaluation_variable, source)
        except FATAL_ERRORS:
            raise
        except (Exception, SystemExit) as exc:
            logger.debug(
                f"Could not bind {self.last_evaluation_variable} after evaluation: "
                f"{error_type_name(exc)}: {exc}"
            )

    @staticmethod
    def _caller_frames() -> Set[int]:
        frames = set()
        frame = inspect.currentframe().f_back
        while frame is not None:
            frames.add(id(frame))
            frame = frame.f_back
        return frames

    def _format_exception(self, exc: BaseException, caller_frames: Set[int]) -> str:
        backtrace = self._backtrace(exc.__traceback__, caller_frames)

        output = f"{error_type_name(exc)}: {exc}\n"
        output += "".join(f"\tfrom {line}\n" for line in backtrace)
        return output

    def _backtrace(self, tb: Optional[TracebackType], caller_frames: Set[int]) -> List[str]:
        lines = []
        for frame, lineno in traceback.walk_tb(tb):
            if id(frame) in caller_frames:
                continue
            lines.append(format_frame(frame.f_code.co_filename, lineno, frame.f_code.co_name))
        # Innermost frame first, like the error pages render it.
        lines.reverse()
        return self.cleaner.clean(lines)
