"""pyvmt.codegen

Hack assembly code generator for VM commands.

Each `translate_*` call maps one VM command to a self-contained fragment of
target assembly. Fragments can be concatenated in command order; none of them
depends on the command that follows.

Target machine conventions:
- RAM[0..4] are SP, LCL, ARG, THIS, THAT
- temp segment occupies RAM[5..12]
- R13/R14 are scratch registers used by pop, gt/lt and return
- true is -1 (all ones), false is 0

Label scheme (one flat namespace per output program):
- comparisons: TRUE_n / FALSE_n, n from `comparison_counter`;
  gt/lt also use XNEG_n / SAME_n / CMP_n to compare by sign first
- label/goto/if-goto: Module.function$name
- return addresses: Module.function$ret.n, n from `call_counter`;
  a call made outside any function (bootstrap) uses Callee$ret.n
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union
import logging

from pyvmt.commands import (
    Arithmetic,
    ArithmeticOp,
    Call,
    Command,
    Function,
    Goto,
    IfGoto,
    Label,
    Pop,
    Push,
    Return,
    Segment,
)

logger = logging.getLogger(__name__)

TRUE = -1
FALSE = 0

TEMP_BASE = 5
TEMP_SIZE = 8
MAX_CONSTANT = 32767

HALT_LABEL = "HALT"

_BASE_POINTERS = {
    Segment.LOCAL: "LCL",
    Segment.ARGUMENT: "ARG",
    Segment.THIS: "THIS",
    Segment.THAT: "THAT",
}

_POINTER_REGISTERS = ("THIS", "THAT")

_BINARY_COMP = {
    ArithmeticOp.ADD: "D+M",
    ArithmeticOp.SUB: "M-D",
    ArithmeticOp.AND: "D&M",
    ArithmeticOp.OR: "D|M",
}

_UNARY_COMP = {
    ArithmeticOp.NEG: "-D",
    ArithmeticOp.NOT: "!D",
}

_JUMPS = {
    ArithmeticOp.EQ: "JEQ",
    ArithmeticOp.GT: "JGT",
    ArithmeticOp.LT: "JLT",
}


class CodeGenError(Exception):
    """Code generation error carrying the offending command text"""
    def __init__(self, message: str, command: str = ""):
        self.message = message
        self.command = command
        if command:
            super().__init__(f"{message} (in '{command}')")
        else:
            super().__init__(message)


class InvalidSegmentIndex(CodeGenError):
    """Segment index outside the range the segment can address"""


class InvalidOperation(CodeGenError):
    """Operation not allowed on the given segment, or unknown segment"""


class UnknownArithmeticOp(CodeGenError):
    """Arithmetic command with an operator outside the recognized set"""


@dataclass
class TranslationState:
    """Mutable state shared by every translate call of one output program"""
    module_name: str = ""
    current_function: Optional[str] = None
    comparison_counter: int = 0
    call_counter: int = 0


class CodeGenerator:
    """Generates Hack assembly from VM commands"""

    def __init__(self, module_name: str = "", *, state: Optional[TranslationState] = None,
                 annotate: bool = True):
        self.state = state if state is not None else TranslationState()
        self.annotate = annotate
        if module_name:
            self.begin_module(module_name)

    def begin_module(self, module_name: str) -> None:
        """Switch to a new source module; counters carry over."""
        self.state.module_name = module_name
        self.state.current_function = None

    def translate(self, command: Command) -> str:
        """Translate one command to an assembly fragment"""
        if isinstance(command, Arithmetic):
            return self.translate_arithmetic(command.op)
        if isinstance(command, Push):
            return self.translate_push(command.segment, command.index)
        if isinstance(command, Pop):
            return self.translate_pop(command.segment, command.index)
        if isinstance(command, Label):
            return self.translate_label(command.name)
        if isinstance(command, Goto):
            return self.translate_goto(command.name)
        if isinstance(command, IfGoto):
            return self.translate_if_goto(command.name)
        if isinstance(command, Function):
            return self.translate_function(command.name, command.n_locals)
        if isinstance(command, Call):
            return self.translate_call(command.name, command.n_args)
        if isinstance(command, Return):
            return self.translate_return()
        raise InvalidOperation(f"Unsupported command type {type(command).__name__}", str(command))

    # -----------------
    # Arithmetic / logic
    # -----------------

    def translate_arithmetic(self, op: Union[ArithmeticOp, str]) -> str:
        text = op.value if isinstance(op, ArithmeticOp) else str(op)
        try:
            op = ArithmeticOp(op)
        except ValueError:
            raise UnknownArithmeticOp(f"Unknown arithmetic operator {text!r}", text) from None

        out = self._pop_d()
        if op.is_unary:
            out += [f"M={_UNARY_COMP[op]}"]
        elif op.is_comparison:
            n = self.state.comparison_counter
            self.state.comparison_counter += 1
            if op is ArithmeticOp.EQ:
                out += ["@SP", "AM=M-1", "D=M-D"]
            else:
                out += self._signed_difference(n)
            out += [
                f"@TRUE_{n}",
                f"D;{_JUMPS[op]}",
                "@SP",
                "A=M",
                f"M={FALSE}",
                f"@FALSE_{n}",
                "0;JMP",
                f"(TRUE_{n})",
                "@SP",
                "A=M",
                f"M={TRUE}",
                f"(FALSE_{n})",
            ]
        else:
            out += ["@SP", "AM=M-1", f"M={_BINARY_COMP[op]}"]
        out += ["@SP", "M=M+1"]
        return self._fragment(text, out)

    def _signed_difference(self, n: int) -> List[str]:
        """Leave a value in D whose sign is the sign of (x - y).

        Entered with y in D; leaves SP at x's slot. Operands of opposite
        sign are decided by sign alone.
        """
        return [
            "@R13",
            "M=D",
            "@SP",
            "AM=M-1",
            "D=M",
            "@R14",
            "M=D",
            f"@XNEG_{n}",
            "D;JLT",
            # x >= 0
            "@R13",
            "D=M",
            f"@SAME_{n}",
            "D;JGE",
            "D=1",
            f"@CMP_{n}",
            "0;JMP",
            f"(XNEG_{n})",
            "@R13",
            "D=M",
            f"@SAME_{n}",
            "D;JLT",
            "D=-1",
            f"@CMP_{n}",
            "0;JMP",
            f"(SAME_{n})",
            "@R14",
            "D=M",
            "@R13",
            "D=D-M",
            f"(CMP_{n})",
        ]

    # -----------------
    # Memory segments
    # -----------------

    def translate_push(self, segment: Union[Segment, str], index: int) -> str:
        text = f"push {getattr(segment, 'value', segment)} {index}"
        seg = self._segment(segment, text)
        self._check_index(seg, index, text)

        if seg is Segment.CONSTANT:
            out = [f"@{index}", "D=A"]
        elif seg in _BASE_POINTERS:
            out = [f"@{_BASE_POINTERS[seg]}", "D=M", f"@{index}", "A=D+A", "D=M"]
        else:
            out = [f"@{self._direct_address(seg, index, text)}", "D=M"]
        out += self._push_d()
        return self._fragment(text, out)

    def translate_pop(self, segment: Union[Segment, str], index: int) -> str:
        text = f"pop {getattr(segment, 'value', segment)} {index}"
        seg = self._segment(segment, text)
        if seg is Segment.CONSTANT:
            raise InvalidOperation("Cannot pop to the constant segment", text)
        self._check_index(seg, index, text)

        if seg in _BASE_POINTERS:
            out = [
                f"@{_BASE_POINTERS[seg]}",
                "D=M",
                f"@{index}",
                "D=D+A",
                "@R13",
                "M=D",
            ]
            out += self._pop_d()
            out += ["@R13", "A=M", "M=D"]
        else:
            address = self._direct_address(seg, index, text)
            out = self._pop_d() + [f"@{address}", "M=D"]
        return self._fragment(text, out)

    def _segment(self, segment: Union[Segment, str], text: str) -> Segment:
        try:
            return Segment(segment)
        except ValueError:
            raise InvalidOperation(f"Unknown segment {segment!r}", text) from None

    def _check_index(self, seg: Segment, index: int, text: str) -> None:
        if not isinstance(index, int) or isinstance(index, bool) or index < 0:
            raise InvalidSegmentIndex(f"Index must be a non-negative integer, got {index!r}", text)
        if seg is Segment.POINTER and index not in (0, 1):
            raise InvalidSegmentIndex(f"Pointer index must be 0 or 1, got {index}", text)
        if seg is Segment.TEMP and index >= TEMP_SIZE:
            raise InvalidSegmentIndex(f"Temp index must be below {TEMP_SIZE}, got {index}", text)
        if seg is Segment.CONSTANT and index > MAX_CONSTANT:
            raise InvalidSegmentIndex(f"Constant {index} exceeds {MAX_CONSTANT}", text)

    def _direct_address(self, seg: Segment, index: int, text: str) -> str:
        """Symbol or address for the single-indirection segments"""
        if seg is Segment.TEMP:
            return str(TEMP_BASE + index)
        if seg is Segment.POINTER:
            return _POINTER_REGISTERS[index]
        if not self.state.module_name:
            raise InvalidOperation("Static segment used outside a module", text)
        return f"{self.state.module_name}.{index}"

    # -----------------
    # Control flow
    # -----------------

    def translate_label(self, name: str) -> str:
        return self._fragment(f"label {name}", [f"({self._scoped(name)})"])

    def translate_goto(self, name: str) -> str:
        return self._fragment(f"goto {name}", [f"@{self._scoped(name)}", "0;JMP"])

    def translate_if_goto(self, name: str) -> str:
        out = self._pop_d() + [f"@{self._scoped(name)}", "D;JNE"]
        return self._fragment(f"if-goto {name}", out)

    def _scope(self) -> str:
        parts = (self.state.module_name, self.state.current_function)
        return ".".join(p for p in parts if p)

    def _scoped(self, name: str) -> str:
        return f"{self._scope()}${name}"

    # -----------------
    # Function protocol
    # -----------------

    def qualify(self, name: str) -> str:
        """Qualify a bare function name with the current module"""
        if "." in name or not self.state.module_name:
            return name
        return f"{self.state.module_name}.{name}"

    def translate_function(self, name: str, n_locals: int) -> str:
        text = f"function {name} {n_locals}"
        if not isinstance(n_locals, int) or n_locals < 0:
            raise InvalidOperation(f"Local count must be a non-negative integer, got {n_locals!r}", text)

        qualified = self.qualify(name)
        out = [f"({qualified})"]
        for _ in range(n_locals):
            out += ["@SP", "A=M", "M=0", "@SP", "M=M+1"]

        self.state.current_function = qualified.split(".", 1)[-1]
        return self._fragment(text, out)

    def translate_call(self, name: str, n_args: int) -> str:
        text = f"call {name} {n_args}"
        if not isinstance(n_args, int) or n_args < 0:
            raise InvalidOperation(f"Argument count must be a non-negative integer, got {n_args!r}", text)

        target = self.qualify(name)
        self.state.call_counter += 1
        n = self.state.call_counter
        if self.state.current_function is None:
            return_label = f"{target}$ret.{n}"
        else:
            return_label = f"{self._scope()}$ret.{n}"
        logger.debug("call %s %d -> return label %s", target, n_args, return_label)

        out = [f"@{return_label}", "D=A"] + self._push_d()
        for register in ("LCL", "ARG", "THIS", "THAT"):
            out += [f"@{register}", "D=M"] + self._push_d()
        out += [
            # ARG = SP - 5 - n_args
            "@SP",
            "D=M",
            "@5",
            "D=D-A",
            f"@{n_args}",
            "D=D-A",
            "@ARG",
            "M=D",
            # LCL = SP
            "@SP",
            "D=M",
            "@LCL",
            "M=D",
            f"@{target}",
            "0;JMP",
            f"({return_label})",
        ]
        return self._fragment(text, out)

    def translate_return(self) -> str:
        out = [
            # frame = LCL
            "@LCL",
            "D=M",
            "@R13",
            "M=D",
            # return address = *(frame - 5)
            "@5",
            "A=D-A",
            "D=M",
            "@R14",
            "M=D",
        ]
        # *ARG = pop()
        out += self._pop_d() + ["@ARG", "A=M", "M=D"]
        # SP = ARG + 1
        out += ["@ARG", "D=M+1", "@SP", "M=D"]
        # THAT, THIS, ARG, LCL = *(frame - 1) .. *(frame - 4)
        for register in ("THAT", "THIS", "ARG", "LCL"):
            out += ["@R13", "AM=M-1", "D=M", f"@{register}", "M=D"]
        out += ["@R14", "A=M", "0;JMP"]
        return self._fragment("return", out)

    # -----------------
    # Program framing
    # -----------------

    def translate_bootstrap(self, entry_point: str = "Sys.init", stack_base: int = 256) -> str:
        """Initialize SP and call the entry point."""
        if not isinstance(stack_base, int) or not 0 <= stack_base <= MAX_CONSTANT:
            raise InvalidOperation(f"Stack base must be within 0..{MAX_CONSTANT}, got {stack_base!r}",
                                   "bootstrap")
        init = self._fragment("bootstrap", [f"@{stack_base}", "D=A", "@SP", "M=D"])
        return init + self.translate_call(entry_point, 0)

    def translate_halt(self) -> str:
        return self._fragment("halt", [f"({HALT_LABEL})", f"@{HALT_LABEL}", "0;JMP"])

    # -----------------
    # Emission helpers
    # -----------------

    def _push_d(self) -> List[str]:
        return ["@SP", "A=M", "M=D", "@SP", "M=M+1"]

    def _pop_d(self) -> List[str]:
        return ["@SP", "AM=M-1", "D=M"]

    def _fragment(self, comment: str, lines: List[str]) -> str:
        if self.annotate:
            lines = [f"// {comment}"] + lines
        return "\n".join(lines) + "\n"
