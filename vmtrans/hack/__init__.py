"""Hack target machine definitions."""

from .memory import (
    SP, LCL, ARG, THIS, THAT,
    POINTER_BASE, POINTER_SIZE, TEMP_BASE, TEMP_SIZE,
    POP_ADDRESS, FRAME, RETURN_ADDRESS,
    STACK_BASE, FRAME_SIZE, ENTRY_FUNCTION,
)

__all__ = [
    'SP', 'LCL', 'ARG', 'THIS', 'THAT',
    'POINTER_BASE', 'POINTER_SIZE', 'TEMP_BASE', 'TEMP_SIZE',
    'POP_ADDRESS', 'FRAME', 'RETURN_ADDRESS',
    'STACK_BASE', 'FRAME_SIZE', 'ENTRY_FUNCTION',
]
