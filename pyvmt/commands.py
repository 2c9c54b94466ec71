"""
VM Command Definitions

Defines the commands of the stack-based VM language consumed by the code
generator. Segment and arithmetic operator names are closed enumerations;
every command renders back to its VM source form via `str()`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Segment(Enum):
    """Memory segments addressable by push/pop"""
    CONSTANT = "constant"
    STATIC = "static"
    LOCAL = "local"
    ARGUMENT = "argument"
    THIS = "this"
    THAT = "that"
    TEMP = "temp"
    POINTER = "pointer"


class ArithmeticOp(Enum):
    """Arithmetic and logical stack operators"""
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
    def is_unary(self) -> bool:
        return self in (ArithmeticOp.NEG, ArithmeticOp.NOT)

    @property
    def is_comparison(self) -> bool:
        return self in (ArithmeticOp.EQ, ArithmeticOp.GT, ArithmeticOp.LT)


def _name(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


# ============== Commands ==============

@dataclass(frozen=True)
class Command:
    """Base class for all VM commands"""


@dataclass(frozen=True)
class Arithmetic(Command):
    op: Union[ArithmeticOp, str]

    def __str__(self) -> str:
        return _name(self.op)


@dataclass(frozen=True)
class Push(Command):
    segment: Union[Segment, str]
    index: int

    def __str__(self) -> str:
        return f"push {_name(self.segment)} {self.index}"


@dataclass(frozen=True)
class Pop(Command):
    segment: Union[Segment, str]
    index: int

    def __str__(self) -> str:
        return f"pop {_name(self.segment)} {self.index}"


@dataclass(frozen=True)
class Label(Command):
    name: str

    def __str__(self) -> str:
        return f"label {self.name}"


@dataclass(frozen=True)
class Goto(Command):
    name: str

    def __str__(self) -> str:
        return f"goto {self.name}"


@dataclass(frozen=True)
class IfGoto(Command):
    name: str

    def __str__(self) -> str:
        return f"if-goto {self.name}"


@dataclass(frozen=True)
class Function(Command):
    """Function declaration; `name` is normally `Module.function`"""
    name: str
    n_locals: int

    def __str__(self) -> str:
        return f"function {self.name} {self.n_locals}"


@dataclass(frozen=True)
class Call(Command):
    name: str
    n_args: int

    def __str__(self) -> str:
        return f"call {self.name} {self.n_args}"


@dataclass(frozen=True)
class Return(Command):
    def __str__(self) -> str:
        return "return"
