"""Workspace file commands."""

from .dispatcher import FileCommandDispatcher

__all__ = ["FileCommandDispatcher"]
