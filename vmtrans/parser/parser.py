"""
VM Parser - Turns VM source text into opcodes.

Handles:
- // line comments and blank lines
- Stack arithmetic (add, sub, neg, eq, gt, lt, and, or, not)
- Memory access (push/pop segment index)
- Program flow (label, goto, if-goto)
- Function commands (function, call, return)
"""

import re
from pathlib import Path
from typing import List, Optional

from ..hack.memory import POINTER_SIZE, TEMP_SIZE
from .opcodes import (
    OpCode, ArithmeticCommand, ArithmeticOp, Segment, PushOp, PopOp,
    LabelOp, GotoOp, IfGotoOp, FunctionOp, CallOp, ReturnOp,
)

# Symbols may not start with a digit; '$' is reserved for scoped labels
SYMBOL_RE = re.compile(r'^[A-Za-z_.:][A-Za-z0-9_.:]*$')
NUMBER_RE = re.compile(r'^\d+$')

# Largest value the A-instruction can load
MAX_CONSTANT = 32767

SEGMENTS = {segment.value: segment for segment in Segment}
ARITHMETIC = {command.value: command for command in ArithmeticCommand}


class Parser:
    """Parses VM source text into a list of opcodes."""

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.line = 0

    def error(self, message: str):
        """Raise a parser error with location information."""
        raise SyntaxError(f"{self.filename}:{self.line}: {message}")

    def parse(self) -> List[OpCode]:
        """Parse the entire source."""
        opcodes: List[OpCode] = []

        for line_num, raw in enumerate(self.source.splitlines(), start=1):
            self.line = line_num
            opcode = self.parse_line(raw)
            if opcode is not None:
                opcodes.append(opcode)

        return opcodes

    def parse_line(self, raw: str) -> Optional[OpCode]:
        """Parse a single line. Returns None for blank and comment-only lines."""
        instruction = raw.split('//', 1)[0].strip()
        if not instruction:
            return None

        parts = instruction.split()
        keyword = parts[0]

        if keyword in ARITHMETIC:
            self._expect_arity(parts, 0)
            return ArithmeticOp(ARITHMETIC[keyword])

        if keyword == 'return':
            self._expect_arity(parts, 0)
            return ReturnOp()

        if keyword in ('push', 'pop'):
            return self.parse_memory_access(parts)

        if keyword in ('label', 'goto', 'if-goto'):
            self._expect_arity(parts, 1)
            name = self._symbol(parts[1])
            if keyword == 'label':
                return LabelOp(name)
            if keyword == 'goto':
                return GotoOp(name)
            return IfGotoOp(name)

        if keyword in ('function', 'call'):
            self._expect_arity(parts, 2)
            name = self._symbol(parts[1])
            count = self._number(parts[2])
            if keyword == 'function':
                return FunctionOp(name, count)
            return CallOp(name, count)

        self.error(f"Invalid instruction '{instruction}'")

    def parse_memory_access(self, parts: List[str]) -> OpCode:
        """Parse push/pop segment index."""
        self._expect_arity(parts, 2)
        keyword, segment_name, index_text = parts

        segment = SEGMENTS.get(segment_name)
        if segment is None:
            self.error(f"Unknown segment '{segment_name}'")

        offset = self._number(index_text)

        if segment == Segment.CONSTANT:
            if keyword == 'pop':
                self.error("Cannot pop to the constant segment")
            if offset > MAX_CONSTANT:
                self.error(f"Constant {offset} out of range (max {MAX_CONSTANT})")
        elif segment == Segment.POINTER and offset >= POINTER_SIZE:
            self.error(f"Pointer index {offset} out of range (0-{POINTER_SIZE - 1})")
        elif segment == Segment.TEMP and offset >= TEMP_SIZE:
            self.error(f"Temp index {offset} out of range (0-{TEMP_SIZE - 1})")

        if keyword == 'push':
            return PushOp(segment, offset)
        return PopOp(segment, offset)

    def _expect_arity(self, parts: List[str], count: int):
        if len(parts) - 1 != count:
            self.error(f"'{parts[0]}' expects {count} argument(s), got {len(parts) - 1}")

    def _symbol(self, text: str) -> str:
        if not SYMBOL_RE.match(text):
            self.error(f"Invalid symbol '{text}'")
        return text

    def _number(self, text: str) -> int:
        if not NUMBER_RE.match(text):
            self.error(f"Expected a non-negative integer, got '{text}'")
        return int(text)


def parse_file(path) -> List[OpCode]:
    """Read and parse a .vm file."""
    path = Path(path)
    with open(path, 'r', encoding='utf-8') as f:
        source = f.read()
    return Parser(source, str(path)).parse()
