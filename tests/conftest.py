"""
Test fixtures and helpers for VM translator tests.

This module provides a pytest-based testing framework for the generated
assembly. The key abstractions are:

- HackMachine: Assembles Hack assembly text and executes it
- translate_units(): Runs VM source for one or more units through the translator
- AssertVM: Fluent API for checking generated code and execution results
"""

import io
import re
import sys
from typing import Dict, List, Optional, Tuple
from pathlib import Path

import pytest

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from vmtrans.parser import Parser
from vmtrans.translator import VMTranslator
from vmtrans.hack.memory import STACK_BASE


PREDEFINED_SYMBOLS = {
    "SP": 0, "LCL": 1, "ARG": 2, "THIS": 3, "THAT": 4,
    "SCREEN": 16384, "KBD": 24576,
    **{f"R{i}": i for i in range(16)},
}

FIRST_VARIABLE = 16
RAM_SIZE = 32768

COMP = {
    "0": lambda a, d, m: 0,
    "1": lambda a, d, m: 1,
    "-1": lambda a, d, m: -1,
    "D": lambda a, d, m: d,
    "A": lambda a, d, m: a,
    "M": lambda a, d, m: m,
    "!D": lambda a, d, m: ~d,
    "!A": lambda a, d, m: ~a,
    "!M": lambda a, d, m: ~m,
    "-D": lambda a, d, m: -d,
    "-A": lambda a, d, m: -a,
    "-M": lambda a, d, m: -m,
    "D+1": lambda a, d, m: d + 1,
    "A+1": lambda a, d, m: a + 1,
    "M+1": lambda a, d, m: m + 1,
    "D-1": lambda a, d, m: d - 1,
    "A-1": lambda a, d, m: a - 1,
    "M-1": lambda a, d, m: m - 1,
    "D+A": lambda a, d, m: d + a,
    "D+M": lambda a, d, m: d + m,
    "D-A": lambda a, d, m: d - a,
    "D-M": lambda a, d, m: d - m,
    "A-D": lambda a, d, m: a - d,
    "M-D": lambda a, d, m: m - d,
    "D&A": lambda a, d, m: d & a,
    "D&M": lambda a, d, m: d & m,
    "D|A": lambda a, d, m: d | a,
    "D|M": lambda a, d, m: d | m,
}

JUMPS = {
    "": lambda v: False,
    "JGT": lambda v: v > 0,
    "JEQ": lambda v: v == 0,
    "JGE": lambda v: v >= 0,
    "JLT": lambda v: v < 0,
    "JNE": lambda v: v != 0,
    "JLE": lambda v: v <= 0,
    "JMP": lambda v: True,
}

# Registers as the standard VM test scripts initialise them
DEFAULT_RAM = {0: 256, 1: 300, 2: 400, 3: 3000, 4: 3010}


def to_signed(value: int) -> int:
    """Wrap to a 16-bit two's complement value."""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value


class AssemblyError(Exception):
    """Generated assembly could not be assembled."""
    pass


class HackMachine:
    """
    Minimal Hack assembler and CPU.

    Label definitions and comments occupy no ROM address; @symbol
    references to unknown names allocate variables from RAM[16].
    A two-instruction infinite loop (@X / 0;JMP back to X) halts the run.
    """

    def __init__(self, asm: str, ram: Optional[Dict[int, int]] = None):
        self.program, self.symbols = self.assemble(asm)
        self.ram = [0] * RAM_SIZE
        for address, value in (ram or {}).items():
            self.ram[address] = value
        self.a = 0
        self.d = 0
        self.pc = 0
        self.steps = 0
        self.halted = False

    @staticmethod
    def assemble(asm: str) -> Tuple[List[tuple], Dict[str, int]]:
        symbols = dict(PREDEFINED_SYMBOLS)
        instructions = []

        for raw in asm.splitlines():
            line = raw.split('//', 1)[0].strip()
            if not line:
                continue
            if line.startswith('(') and line.endswith(')'):
                name = line[1:-1]
                if name in symbols:
                    raise AssemblyError(f"Duplicate label: {name}")
                symbols[name] = len(instructions)
            else:
                instructions.append(line)

        next_variable = FIRST_VARIABLE
        program = []
        for line in instructions:
            if line.startswith('@'):
                value = line[1:]
                if value.isdigit():
                    program.append(('A', int(value)))
                    continue
                if value not in symbols:
                    symbols[value] = next_variable
                    next_variable += 1
                program.append(('A', symbols[value]))
                continue

            dest, comp, jump = '', line, ''
            if '=' in comp:
                dest, comp = comp.split('=', 1)
            if ';' in comp:
                comp, jump = comp.split(';', 1)
            if comp not in COMP or jump not in JUMPS or set(dest) - set('AMD'):
                raise AssemblyError(f"Invalid instruction: {line}")
            program.append(('C', dest, comp, jump))

        return program, symbols

    def step(self):
        instruction = self.program[self.pc]
        if instruction[0] == 'A':
            self.a = instruction[1]
            self.pc += 1
            return

        _, dest, comp, jump = instruction
        address = self.a & 0x7FFF
        m = self.ram[address] if 'M' in comp else 0
        value = to_signed(COMP[comp](self.a, self.d, m))

        target = self.a
        if 'M' in dest:
            self.ram[address] = value
        if 'A' in dest:
            self.a = value
        if 'D' in dest:
            self.d = value

        if JUMPS[jump](value):
            if jump == 'JMP' and target == self.pc - 1:
                self.halted = True
            self.pc = target
        else:
            self.pc += 1

    def run(self, max_steps: int = 200000) -> 'HackMachine':
        """Run until the program falls off the end or enters a halt loop."""
        while not self.halted and 0 <= self.pc < len(self.program):
            self.step()
            self.steps += 1
            if self.steps > max_steps:
                raise RuntimeError(f"Step limit exceeded at pc={self.pc}")
        return self

    @property
    def sp(self) -> int:
        return self.ram[0]

    def stack(self) -> List[int]:
        """Values from the stack base up to SP."""
        return self.ram[STACK_BASE:self.sp]

    def address_of(self, symbol: str) -> int:
        return self.symbols[symbol]

    def value_of(self, symbol: str) -> int:
        return self.ram[self.symbols[symbol]]


def translate_units(units: Dict[str, str], bootstrap: bool = False) -> str:
    """Translate {unit name: VM source} in insertion order through one writer."""
    translator = VMTranslator()
    parsed = [(name, Parser(source, f"{name}.vm").parse())
              for name, source in units.items()]
    output = io.StringIO()
    translator.translate_units(parsed, output, bootstrap=bootstrap)
    return output.getvalue()


def run_units(units: Dict[str, str], bootstrap: bool = False,
              ram: Optional[Dict[int, int]] = None) -> HackMachine:
    asm = translate_units(units, bootstrap=bootstrap)
    if ram is None:
        ram = {} if bootstrap else DEFAULT_RAM
    return HackMachine(asm, ram).run()


class AssertVM:
    """
    Fluent assertions over a single VM unit.

    Usage:
        AssertVM("push constant 2", "push constant 3", "add").leaves_stack(5)
        AssertVM("eq").generates_code_matching(r"D;JEQ")
    """

    def __init__(self, *lines: str):
        self.source = "\n".join(lines)
        self.unit = "Main"
        self.ram = dict(DEFAULT_RAM)

    def in_unit(self, name: str) -> 'AssertVM':
        self.unit = name
        return self

    def with_ram(self, **cells: int) -> 'AssertVM':
        """Set RAM cells by predefined symbol name, e.g. with_ram(LCL=256)."""
        for name, value in cells.items():
            self.ram[PREDEFINED_SYMBOLS[name]] = value
        return self

    def translate(self) -> str:
        return translate_units({self.unit: self.source})

    def run(self) -> HackMachine:
        return HackMachine(self.translate(), self.ram).run()

    def leaves_stack(self, *expected: int) -> HackMachine:
        machine = self.run()
        assert machine.stack() == list(expected), \
            f"Expected stack {list(expected)}, got {machine.stack()}"
        return machine

    def generates_code_matching(self, pattern: str) -> 'AssertVM':
        asm = self.translate()
        assert re.search(pattern, asm), \
            f"Generated code did not match {pattern!r}:\n{asm}"
        return self

    def generates_code_not_matching(self, pattern: str) -> 'AssertVM':
        asm = self.translate()
        assert not re.search(pattern, asm), \
            f"Generated code unexpectedly matched {pattern!r}:\n{asm}"
        return self


@pytest.fixture
def translator():
    return VMTranslator()
