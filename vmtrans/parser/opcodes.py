"""
VM opcode definitions.

Each opcode is an immutable value produced by the parser and consumed
once by the code generator. str() renders the canonical source text.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Union


class OpType(Enum):
    """VM opcode categories."""
    ARITHMETIC = auto()  # add, sub, neg, eq, gt, lt, and, or, not
    PUSH = auto()        # push segment index
    POP = auto()         # pop segment index
    LABEL = auto()       # label name
    GOTO = auto()        # goto name
    IF_GOTO = auto()     # if-goto name
    FUNCTION = auto()    # function name nLocals
    CALL = auto()        # call name nArgs
    RETURN = auto()      # return


class ArithmeticCommand(Enum):
    """Stack arithmetic and logical commands."""
    ADD = "add"
    SUB = "sub"
    NEG = "neg"
    EQ = "eq"
    GT = "gt"
    LT = "lt"
    AND = "and"
    OR = "or"
    NOT = "not"

    @property
    def is_binary(self) -> bool:
        return self in (ArithmeticCommand.ADD, ArithmeticCommand.SUB,
                        ArithmeticCommand.AND, ArithmeticCommand.OR)

    @property
    def is_unary(self) -> bool:
        return self in (ArithmeticCommand.NEG, ArithmeticCommand.NOT)

    @property
    def is_comparison(self) -> bool:
        return self in (ArithmeticCommand.EQ, ArithmeticCommand.GT,
                        ArithmeticCommand.LT)


class Segment(Enum):
    """Virtual memory segments."""
    ARGUMENT = "argument"
    LOCAL = "local"
    THIS = "this"
    THAT = "that"
    POINTER = "pointer"
    STATIC = "static"
    TEMP = "temp"
    CONSTANT = "constant"

    @property
    def is_scoped(self) -> bool:
        """True for segments addressed through a base pointer cell."""
        return self in (Segment.ARGUMENT, Segment.LOCAL, Segment.THIS, Segment.THAT)


@dataclass(frozen=True)
class ArithmeticOp:
    """add, sub, neg, eq, gt, lt, and, or, not"""
    command: ArithmeticCommand

    op_type = OpType.ARITHMETIC

    def __str__(self):
        return self.command.value


@dataclass(frozen=True)
class PushOp:
    """push segment index"""
    segment: Segment
    offset: int

    op_type = OpType.PUSH

    def __str__(self):
        return f"push {self.segment.value} {self.offset}"


@dataclass(frozen=True)
class PopOp:
    """pop segment index"""
    segment: Segment
    offset: int

    op_type = OpType.POP

    def __str__(self):
        return f"pop {self.segment.value} {self.offset}"


@dataclass(frozen=True)
class LabelOp:
    """label name"""
    name: str

    op_type = OpType.LABEL

    def __str__(self):
        return f"label {self.name}"


@dataclass(frozen=True)
class GotoOp:
    """goto name"""
    name: str

    op_type = OpType.GOTO

    def __str__(self):
        return f"goto {self.name}"


@dataclass(frozen=True)
class IfGotoOp:
    """if-goto name"""
    name: str

    op_type = OpType.IF_GOTO

    def __str__(self):
        return f"if-goto {self.name}"


@dataclass(frozen=True)
class FunctionOp:
    """function name nLocals"""
    name: str
    local_count: int

    op_type = OpType.FUNCTION

    def __str__(self):
        return f"function {self.name} {self.local_count}"


@dataclass(frozen=True)
class CallOp:
    """call name nArgs"""
    function_name: str
    arg_count: int

    op_type = OpType.CALL

    def __str__(self):
        return f"call {self.function_name} {self.arg_count}"


@dataclass(frozen=True)
class ReturnOp:
    """return"""

    op_type = OpType.RETURN

    def __str__(self):
        return "return"


OpCode = Union[ArithmeticOp, PushOp, PopOp, LabelOp, GotoOp, IfGotoOp,
               FunctionOp, CallOp, ReturnOp]
