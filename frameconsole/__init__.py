"""
Frameconsole - Interactive consoles bound to points of program execution

Opens a read-eval-print session on a live frame, or on any frame captured
along an exception's cause chain, and keeps it resumable across requests.

Architecture:
- Each module is self-contained with clear interfaces
- Stores and mappers are passed in explicitly, never held as globals
- All communication through defined interfaces

Modules:
- context: Execution contexts and their inspection
- evaluator: Evaluation and error formatting
- exceptions: Cause chain to context group mapping
- session: Console session lifecycle and switching
- storage: Local and Redis-backed session storage
- api: HTTP endpoints for the browser console
- config: Environment configuration
"""

__version__ = "1.0.0"
