"""
Exceptions Module - Black Box Interface

Purpose: Turn a raised error and its causes into groups of execution contexts
Interface: ExceptionChainMapper.follow(), ExceptionChainMapper.find_contexts()
Hidden: Cause/context chain walking, traceback frame collection

One ContextGroup is produced per error in the chain, outermost error first.
"""

from .mapper import ContextGroup, ErrorRecord, ExceptionChainMapper

__all__ = ["ContextGroup", "ErrorRecord", "ExceptionChainMapper"]
