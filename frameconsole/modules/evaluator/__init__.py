"""
Evaluator Module - Black Box Interface

Purpose: Run console input against one execution context
Interface: Evaluator.evaluate(), BacktraceCleaner
Hidden: Compilation, last-value bookkeeping, traceback cleaning

evaluate() always returns text; errors raised by user input never escape it.
"""

from .evaluator import BacktraceCleaner, Evaluator, default_cleaner

__all__ = ["BacktraceCleaner", "Evaluator", "default_cleaner"]
