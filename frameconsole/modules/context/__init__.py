"""
Context Module - Black Box Interface

Purpose: Represent a point of program execution that code can be evaluated in
Interface: ExecutionContext, FrameContext, NamespaceContext, ContextInspector
Hidden: Frame namespaces, compilation modes, locals snapshotting

Contexts are only meaningful inside the process that created them.
"""

from .context import (
    ExecutionContext,
    FrameContext,
    NamespaceContext,
    SourceLocation,
)
from .inspector import ContextInspector

__all__ = [
    "ContextInspector",
    "ExecutionContext",
    "FrameContext",
    "NamespaceContext",
    "SourceLocation",
]
