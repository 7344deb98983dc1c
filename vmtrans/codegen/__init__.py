"""Hack assembly generation."""

from .codegen import CodeWriter, ScopedLabel

__all__ = ['CodeWriter', 'ScopedLabel']
