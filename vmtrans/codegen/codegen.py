"""
Code generator - converts VM opcodes to Hack assembly.

The generator is fed one opcode at a time and writes assembly text to an
output stream. All machine state it threads between opcodes (instruction
counter, function scope, call-site counter, current unit) lives on the
CodeWriter instance.
"""

import sys
from typing import Dict, List, NamedTuple, Optional, TextIO

from ..hack.memory import (
    SP, LCL, ARG, THIS, THAT,
    POINTER_BASE, TEMP_BASE,
    POP_ADDRESS, FRAME, RETURN_ADDRESS,
    STACK_BASE, FRAME_SIZE, ENTRY_FUNCTION,
)
from ..parser.opcodes import OpCode, OpType, ArithmeticCommand, Segment

SEGMENT_BASES: Dict[Segment, str] = {
    Segment.LOCAL: LCL,
    Segment.ARGUMENT: ARG,
    Segment.THIS: THIS,
    Segment.THAT: THAT,
}

# comp field applied after the operands are loaded (right in D, left in M)
BINARY_COMP: Dict[ArithmeticCommand, str] = {
    ArithmeticCommand.ADD: "D=D+M",
    ArithmeticCommand.SUB: "D=M-D",
    ArithmeticCommand.AND: "D=D&M",
    ArithmeticCommand.OR: "D=D|M",
}

UNARY_COMP: Dict[ArithmeticCommand, str] = {
    ArithmeticCommand.NEG: "D=-D",
    ArithmeticCommand.NOT: "D=!D",
}

COMPARISON_JUMP: Dict[ArithmeticCommand, str] = {
    ArithmeticCommand.EQ: "JEQ",
    ArithmeticCommand.GT: "JGT",
    ArithmeticCommand.LT: "JLT",
}

# Registers saved by call, in push order
SAVED_REGISTERS = (LCL, ARG, THIS, THAT)

# Scope used for labels emitted before any unit is selected
DEFAULT_UNIT = "Sys"


class ScopedLabel(NamedTuple):
    """A label owned by a function. '$' never occurs in VM symbols."""
    function: str
    label: str

    def __str__(self):
        return f"{self.function}${self.label}"


class CodeWriter:
    """Generates Hack assembly from VM opcodes."""

    def __init__(self, output: TextIO, bootstrap: bool = False, verbose: bool = False):
        self.output = output
        self.verbose = verbose

        # Number of instructions emitted so far, i.e. the ROM address of the next one
        self.lines_written = 0

        self.unit_name = DEFAULT_UNIT
        self.function_stack: List[str] = []
        # Function whose return last closed a scope, until the next function
        self.closed_function: Optional[str] = None
        self.call_count = 0

        if bootstrap:
            self.write_init()

    def log(self, message: str):
        """Print log message if verbose mode is enabled."""
        if self.verbose:
            print(f"[vmtrans] {message}", file=sys.stderr)

    def write_init(self):
        """Emit the bootstrap code: SP = 256, call Sys.init."""
        if self.lines_written:
            raise ValueError("Bootstrap must be the first code in the stream")
        self.comment("bootstrap")
        self.write(f"@{STACK_BASE}")
        self.write("D=A")
        self.write(f"@{SP}")
        self.write("M=D")

        self.comment(f"call {ENTRY_FUNCTION} 0")
        self.write_call(ENTRY_FUNCTION, 0)

    def set_unit(self, unit_name: str):
        """Select the translation unit whose statics subsequent code addresses."""
        self.log(f"Unit {unit_name}")
        self.unit_name = unit_name
        self.closed_function = None

    @property
    def current_scope(self) -> str:
        """
        Name owning labels emitted now.

        The most recently declared function: between a return and the next
        function, the function that return closed (code after an early
        return still belongs to it), otherwise the open function. Before
        any function in the unit, the unit itself.
        """
        if self.closed_function is not None:
            return self.closed_function
        if self.function_stack:
            return self.function_stack[-1]
        return self.unit_name

    def scoped(self, label: str) -> ScopedLabel:
        return ScopedLabel(self.current_scope, label)

    def write_command(self, opcode: OpCode):
        """Emit a source comment followed by the code for one opcode."""
        self.comment(str(opcode))

        op_type = opcode.op_type
        if op_type == OpType.ARITHMETIC:
            self.write_arithmetic(opcode.command)
        elif op_type == OpType.PUSH:
            self.write_push(opcode.segment, opcode.offset)
        elif op_type == OpType.POP:
            self.write_pop(opcode.segment, opcode.offset)
        elif op_type == OpType.LABEL:
            self.write_label(opcode.name)
        elif op_type == OpType.GOTO:
            self.write_goto(opcode.name)
        elif op_type == OpType.IF_GOTO:
            self.write_if(opcode.name)
        elif op_type == OpType.FUNCTION:
            self.write_function(opcode.name, opcode.local_count)
        elif op_type == OpType.CALL:
            self.write_call(opcode.function_name, opcode.arg_count)
        elif op_type == OpType.RETURN:
            self.write_return()
        else:
            raise ValueError(f"Unknown opcode: {opcode!r}")

    # ------------------------------------------------------------------
    # Stack arithmetic

    def write_arithmetic(self, command: ArithmeticCommand):
        """Emit code for add, sub, neg, eq, gt, lt, and, or, not."""
        if not isinstance(command, ArithmeticCommand):
            raise ValueError(f"Not an arithmetic command: {command!r}")

        if command.is_binary:
            self.write_double_operand()
            self.write(BINARY_COMP[command])
        elif command.is_unary:
            self.pop_stack()
            self.write(UNARY_COMP[command])
        else:
            self.write_comparison(COMPARISON_JUMP[command])

        self.write_to_stack()

    def write_comparison(self, jump: str):
        """
        Leave -1 in D if (left - right) satisfies jump, else 0.

        Jump targets are absolute ROM addresses taken from lines_written.
        With base = address of the first instruction below:

            base+0  @base+5
            base+1  D;<jump>
            base+2  D=0
            base+3  @base+6
            base+4  0;JMP
            base+5  D=-1
            base+6  (first instruction after this block)
        """
        self.write_double_operand()
        self.write("D=M-D")
        self.write("M=0")

        base = self.lines_written
        self.write(f"@{base + 5}")
        self.write(f"D;{jump}")
        self.write("D=0")
        self.write(f"@{base + 6}")
        self.write("0;JMP")
        self.write("D=-1")

    # ------------------------------------------------------------------
    # Memory access

    def write_push(self, segment: Segment, offset: int):
        """Emit code for push segment offset."""
        if segment.is_scoped:
            self.write(f"@{SEGMENT_BASES[segment]}")
            self.write("D=M")
            self.write(f"@{offset}")
            self.write("A=D+A")
            self.write("D=M")
        elif segment == Segment.CONSTANT:
            self.write(f"@{offset}")
            self.write("D=A")
        else:
            self.write(f"@{self.fixed_address(segment, offset)}")
            self.write("D=M")

        self.write_to_stack()

    def write_pop(self, segment: Segment, offset: int):
        """Emit code for pop segment offset."""
        if segment.is_scoped:
            self.write(f"@{SEGMENT_BASES[segment]}")
            self.write("D=M")
            self.write(f"@{offset}")
            self.write("D=D+A")
        elif segment == Segment.CONSTANT:
            raise ValueError("Cannot pop to the constant segment")
        else:
            self.write(f"@{self.fixed_address(segment, offset)}")
            self.write("D=A")

        # Destination address survives the SP decrement in R13
        self.write(f"@{POP_ADDRESS}")
        self.write("M=D")

        self.pop_stack()

        self.write(f"@{POP_ADDRESS}")
        self.write("A=M")
        self.write("M=D")

    def fixed_address(self, segment: Segment, offset: int) -> str:
        """Address symbol for the temp, pointer and static segments."""
        if segment == Segment.TEMP:
            return str(TEMP_BASE + offset)
        if segment == Segment.POINTER:
            return str(POINTER_BASE + offset)
        if segment == Segment.STATIC:
            return f"{self.unit_name}.{offset}"
        raise ValueError(f"Segment {segment.value} has no fixed address")

    # ------------------------------------------------------------------
    # Program flow

    def write_label(self, label: str):
        self.label(str(self.scoped(label)))

    def write_goto(self, label: str):
        self.write(f"@{self.scoped(label)}")
        self.write("0;JMP")

    def write_if(self, label: str):
        """Pop the top of the stack and jump to label if it is non-zero."""
        self.pop_stack()
        self.write(f"@{self.scoped(label)}")
        self.write("D;JNE")

    # ------------------------------------------------------------------
    # Function calls

    def write_call(self, function_name: str, arg_count: int):
        """
        Emit the calling sequence for function_name with arg_count arguments.

        Frame layout pushed by the caller (return reads it back relative to LCL):

            ARG  -> argument 0 .. argument n-1
                    return address   (LCL - 5)
                    saved LCL        (LCL - 4)
                    saved ARG        (LCL - 3)
                    saved THIS       (LCL - 2)
                    saved THAT       (LCL - 1)
            LCL  -> local 0 ..
        """
        return_label = self.scoped(f"ret${self.call_count}")
        self.call_count += 1

        self.write(f"@{return_label}")
        self.write("D=A")
        self.write_to_stack()

        for register in SAVED_REGISTERS:
            self.write(f"@{register}")
            self.write("D=M")
            self.write_to_stack()

        # ARG = SP - n - 5
        self.write(f"@{SP}")
        self.write("D=M")
        self.write(f"@{arg_count}")
        self.write("D=D-A")
        self.write(f"@{FRAME_SIZE}")
        self.write("D=D-A")
        self.write(f"@{ARG}")
        self.write("M=D")

        # LCL = SP
        self.write(f"@{SP}")
        self.write("D=M")
        self.write(f"@{LCL}")
        self.write("M=D")

        self.write(f"@{function_name}")
        self.write("0;JMP")

        self.label(str(return_label))

    def write_return(self):
        """Emit the return sequence and close the current function scope."""
        # FRAME = LCL
        self.write(f"@{LCL}")
        self.write("D=M")
        self.write(f"@{FRAME}")
        self.write("M=D")

        # RET = *(FRAME - 5), saved before *ARG can overwrite it
        self.write(f"@{FRAME_SIZE}")
        self.write("A=D-A")
        self.write("D=M")
        self.write(f"@{RETURN_ADDRESS}")
        self.write("M=D")

        # *ARG = pop()
        self.pop_stack()
        self.write(f"@{ARG}")
        self.write("A=M")
        self.write("M=D")

        # SP = ARG + 1
        self.write(f"@{ARG}")
        self.write("D=M+1")
        self.write(f"@{SP}")
        self.write("M=D")

        # THAT, THIS, ARG, LCL = *(FRAME - 1) .. *(FRAME - 4)
        for distance, register in enumerate(reversed(SAVED_REGISTERS), start=1):
            self.write(f"@{FRAME}")
            self.write("D=M")
            self.write(f"@{distance}")
            self.write("A=D-A")
            self.write("D=M")
            self.write(f"@{register}")
            self.write("M=D")

        self.write(f"@{RETURN_ADDRESS}")
        self.write("A=M")
        self.write("0;JMP")

        if self.function_stack:
            self.closed_function = self.function_stack.pop()

    def write_function(self, function_name: str, local_count: int):
        """Open a function scope, emit its entry label and zero its locals."""
        self.function_stack.append(function_name)
        self.closed_function = None
        self.label(function_name)

        # LCL == SP on entry, so each push lands in local k
        for _ in range(local_count):
            self.write("@0")
            self.write("D=A")
            self.write_to_stack()

    # ------------------------------------------------------------------
    # Output

    def comment(self, comment: str):
        self.output.write(f"// {comment}\n")

    def write(self, instruction: str):
        """Write one instruction; advances the ROM address."""
        self.output.write(f"\t{instruction}\n")
        self.lines_written += 1

    def label(self, name: str):
        """Write a label definition; occupies no ROM address."""
        self.output.write(f"({name})\n")

    def flush(self):
        self.output.flush()

    # ------------------------------------------------------------------
    # Stack helpers

    def write_to_stack(self):
        """*SP = D; SP++"""
        self.write(f"@{SP}")
        self.write("A=M")
        self.write("M=D")
        self.write(f"@{SP}")
        self.write("M=M+1")

    def pop_stack(self):
        """SP--; D = *SP; *SP = 0"""
        self.write(f"@{SP}")
        self.write("AM=M-1")
        self.write("D=M")
        self.write("M=0")

    def write_double_operand(self):
        """Pop the right operand into D and point A at the left operand."""
        self.pop_stack()
        self.write(f"@{SP}")
        self.write("AM=M-1")
